"""Error taxonomy shared by the ledger, analytics and CLI layers.

Ledger mutations raise these from inside a unit of work, so raising any of
them rolls back the triggering transaction write. Analytics code does not
raise for degenerate inputs (zero denominators return 0).
"""

from __future__ import annotations

from typing import Any


class StakeholdError(Exception):
    """Base class for all domain errors."""


class NotFoundError(StakeholdError):
    """A transaction, position, account or property id could not be resolved."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class UnauthorizedError(StakeholdError):
    """The entity exists but does not belong to the requesting user."""

    def __init__(self, entity: str, entity_id: str, user_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.user_id = user_id
        super().__init__(f"{entity} {entity_id} does not belong to user {user_id}")


class InvalidStateError(StakeholdError):
    """Stored state is corrupt or incomplete (e.g. a position without a price)."""


class ValidationError(StakeholdError):
    """Malformed input, with field-level detail.

    ``errors`` is a list of ``{"field": ..., "message": ...}`` dicts.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Build from a ``pydantic.ValidationError``."""
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return cls("Validation error", errors)


class OversellError(ValidationError):
    """A SELL would drive a position's share count below zero."""

    def __init__(self, position_id: str, shares: Any) -> None:
        self.position_id = position_id
        self.shares = shares
        super().__init__(
            f"Sell exceeds held shares for position {position_id} "
            f"(resulting shares: {shares})",
            [{"field": "shares", "message": "sell quantity exceeds shares held"}],
        )
