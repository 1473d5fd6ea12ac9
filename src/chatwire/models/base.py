"""Shared pydantic base for chatwire's configuration and status models.

Connection options and status snapshots are values: once built they never
change, and an unknown option name is an error rather than a silent no-op.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class ChatwireBaseModel(BaseModel):
    """Frozen, closed pydantic model.

    Example:
        >>> class Limits(ChatwireBaseModel):
        ...     messages: int = 20
        >>> Limits(mesages=5)
        Traceback (most recent call last):
        ...
        pydantic_core._pydantic_core.ValidationError: ...
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )

    def log_fields(self) -> dict[str, Any]:
        """Fields as JSON-safe keyword context for structlog, ``None`` values dropped."""
        return self.model_dump(mode="json", exclude_none=True)
