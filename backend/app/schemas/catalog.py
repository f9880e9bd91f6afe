from pydantic import BaseModel, Field


class CategoryWrite(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class CategoryRead(BaseModel):
    id: str
    name: str
    description: str | None

    class Config:
        from_attributes = True


class ProductWrite(BaseModel):
    sku: str | None = Field(default=None, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    category_id: str = Field(min_length=1, max_length=36)
    unit: str = Field(min_length=1, max_length=64)
    description: str | None = None
    min_stock: int = Field(default=0, ge=0)


class ProductRead(BaseModel):
    id: str
    sku: str | None
    name: str
    category_id: str
    unit: str
    description: str | None
    min_stock: int

    class Config:
        from_attributes = True


class WarehouseWrite(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)


class WarehouseRead(BaseModel):
    id: str
    name: str
    location: str

    class Config:
        from_attributes = True
