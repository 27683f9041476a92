"""Custom exceptions for ledger-split."""


class LedgerSplitError(Exception):
    """Base exception for all ledger-split errors."""

    pass


class ConfigurationError(LedgerSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidArgumentError(LedgerSplitError):
    """Raised when an input value is malformed or out of range."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class NotFoundError(LedgerSplitError):
    """Raised when a referenced account, transaction or expense does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class PermissionDeniedError(LedgerSplitError):
    """Raised when an entity exists but belongs to another principal.

    The message never includes the entity id or its owner.
    """

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"Access denied to this {entity}")
