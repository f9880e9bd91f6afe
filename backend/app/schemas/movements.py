from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from backend.app.db.models.core_types import DestinationType, SourceType, TransferStatus


# ---------- Inbound ----------
class StockInWrite(BaseModel):
    date: datetime
    product_id: str = Field(min_length=1, max_length=36)
    warehouse_id: str = Field(min_length=1, max_length=36)
    quantity: int = Field(gt=0)
    source_type: SourceType | None = None
    source_detail: str | None = Field(default=None, max_length=255)
    reference_code: str = Field(min_length=1, max_length=255)
    notes: str | None = None


class StockInRead(BaseModel):
    id: str
    date: datetime
    product_id: str
    product_name: str
    warehouse_id: str
    warehouse_name: str
    quantity: int
    source_type: SourceType | None
    source_detail: str | None
    reference_code: str
    notes: str | None

    class Config:
        from_attributes = True


# ---------- Outbound ----------
class StockOutWrite(BaseModel):
    date: datetime
    product_id: str = Field(min_length=1, max_length=36)
    warehouse_id: str = Field(min_length=1, max_length=36)
    quantity: int = Field(gt=0)
    destination_type: DestinationType | None = None
    destination_detail: str | None = Field(default=None, max_length=255)
    reference_code: str = Field(min_length=1, max_length=255)
    notes: str | None = None


class StockOutRead(BaseModel):
    id: str
    date: datetime
    product_id: str
    product_name: str
    warehouse_id: str
    warehouse_name: str
    quantity: int
    destination_type: DestinationType | None
    destination_detail: str | None
    reference_code: str
    notes: str | None

    class Config:
        from_attributes = True


# ---------- Transfer ----------
class StockTransferWrite(BaseModel):
    date: datetime
    product_id: str = Field(min_length=1, max_length=36)
    from_warehouse_id: str = Field(min_length=1, max_length=36)
    to_warehouse_id: str = Field(min_length=1, max_length=36)
    quantity: int = Field(gt=0)
    reference_code: str = Field(min_length=1, max_length=255)
    status: TransferStatus = TransferStatus.pending

    @model_validator(mode="after")
    def _distinct_warehouses(self):
        if self.from_warehouse_id == self.to_warehouse_id:
            raise ValueError("from_warehouse_id and to_warehouse_id must differ")
        return self


class StockTransferRead(BaseModel):
    id: str
    date: datetime
    product_id: str
    product_name: str
    from_warehouse_id: str
    from_warehouse_name: str
    to_warehouse_id: str
    to_warehouse_name: str
    quantity: int
    reference_code: str
    status: TransferStatus

    class Config:
        from_attributes = True


class DeletedRead(BaseModel):
    id: str
