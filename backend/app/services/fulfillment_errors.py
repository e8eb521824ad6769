from typing import Optional


class FulfillmentError(Exception):
    """Base exception for the requirement fulfillment engine."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        requirement_id: Optional[str] = None,
        node_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.entity_id = entity_id
        self.requirement_id = requirement_id
        self.node_id = node_id


class NotFoundError(FulfillmentError):
    """Raised when a program, requirement or user id cannot be resolved."""
    pass


class ValidationError(FulfillmentError):
    """Raised for caller errors such as a malformed semester token."""
    pass


class IntegrityError(FulfillmentError):
    """Raised when stored reference data is corrupt (missing nodes, cycles, bad documents).
    Never recovered from; the data needs operator correction."""
    pass
