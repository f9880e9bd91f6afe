import enum

class Role(str, enum.Enum):
    admin = "admin"
    guest = "guest"

class SourceType(str, enum.Enum):
    supplier = "supplier"
    warehouse = "warehouse"
    return_ = "return"
    adjustment = "adjustment"

class DestinationType(str, enum.Enum):
    customer = "customer"
    warehouse = "warehouse"
    scrap = "scrap"
    adjustment = "adjustment"

class TransferStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"
