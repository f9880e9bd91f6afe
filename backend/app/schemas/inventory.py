from pydantic import BaseModel

from backend.app.schemas.stock_level import StockLevelRead


class ProductInStockRead(BaseModel):
    id: str
    name: str
    unit: str

    class Config:
        from_attributes = True


class WarehouseInStockRead(BaseModel):
    id: str
    name: str
    location: str

    class Config:
        from_attributes = True


class LowStockRead(StockLevelRead):
    min_stock: int
