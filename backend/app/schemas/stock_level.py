from datetime import datetime

from pydantic import BaseModel, Field


class StockLevelRead(BaseModel):
    product_id: str
    product_name: str
    warehouse_id: str
    warehouse_name: str
    quantity: int
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class StockLevelCreate(BaseModel):
    product_id: str = Field(min_length=1, max_length=36)
    warehouse_id: str = Field(min_length=1, max_length=36)
    quantity: int = Field(ge=0)


class StockLevelUpdate(BaseModel):
    # négatif accepté ici : le service le ramène à 0
    quantity: int
