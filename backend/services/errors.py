"""
Erreurs métier typées du ledger.

Chaque erreur porte un ``code`` stable (exposé tel quel par l'API) et ses
données structurées en attributs, pour que l'appelant attrape par type et
jamais en parsant le message.

    LedgerError
    +-- ValidationError
    +-- NotFoundError
    +-- DuplicateError
    |   +-- DuplicateReferenceError
    |   +-- DuplicatePairError
    |   +-- DuplicateNameError
    +-- InsufficientStockError
    +-- StillReferencedError
    +-- AuthenticationError
    +-- AlreadySignedInError
    +-- PermissionDeniedError
"""

from __future__ import annotations


class LedgerError(Exception):
    code: str = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(LedgerError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class DuplicateError(LedgerError):
    code = "DUPLICATE"


class DuplicateReferenceError(DuplicateError):
    code = "DUPLICATE_REFERENCE"

    def __init__(self, kind: str, reference_code: str):
        self.kind = kind
        self.reference_code = reference_code
        super().__init__(f"Duplicate reference code '{reference_code}' for {kind}")


class DuplicatePairError(DuplicateError):
    code = "DUPLICATE_PAIR"

    def __init__(self, product_id: str, warehouse_id: str):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__("Stock level already exists for this product and warehouse")


class DuplicateNameError(DuplicateError):
    def __init__(self, entity: str, name: str):
        self.entity = entity
        self.name = name
        super().__init__(f"Duplicate {entity.lower()} '{name}'")


class InsufficientStockError(LedgerError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, warehouse_id: str, available: int, requested: int):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock (available={available}, requested={requested})")


class StillReferencedError(LedgerError):
    code = "STILL_REFERENCED"

    def __init__(self, entity: str, referenced_by: str):
        self.entity = entity
        self.referenced_by = referenced_by
        super().__init__(f"{entity} still in use by {referenced_by}")


class AuthenticationError(LedgerError):
    code = "UNAUTHENTICATED"


class AlreadySignedInError(LedgerError):
    code = "ALREADY_SIGNED_IN"

    def __init__(self):
        super().__init__("You are already signed in")


class PermissionDeniedError(LedgerError):
    code = "FORBIDDEN"
