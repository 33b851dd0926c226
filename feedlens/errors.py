# feedlens/errors.py
from __future__ import annotations

from typing import Any, Optional, Sequence


class FeedlensError(Exception):
    """Base class for domain errors raised by feedlens services."""

    status_code = 400

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "detail": str(self)}


class OutOfBoundsValue(FeedlensError):
    """A settings write carried a value outside the field's declared bounds."""

    status_code = 422

    def __init__(
        self,
        field: str,
        value: Any,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
        choices: Optional[Sequence[str]] = None,
    ):
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        self.choices = list(choices) if choices is not None else None
        if self.choices is not None:
            msg = f"{field}={value!r} is not one of {self.choices}"
        else:
            msg = f"{field}={value!r} is outside [{minimum}, {maximum}]"
        super().__init__(msg)

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"field": self.field, "value": self.value})
        if self.choices is not None:
            out["choices"] = self.choices
        else:
            out.update({"minimum": self.minimum, "maximum": self.maximum})
        return out


class UnknownSettingsField(FeedlensError):
    status_code = 422

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unknown settings field: {field!r}")

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["field"] = self.field
        return out


class UnknownScope(FeedlensError):
    """The target scope does not exist or is not owned by the caller."""

    status_code = 404

    def __init__(self, scope: str, scope_id: Any):
        self.scope = scope
        self.scope_id = scope_id
        super().__init__(f"Unknown {scope} scope: {scope_id!r}")

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"scope": self.scope, "scope_id": str(self.scope_id)})
        return out


class CorruptSettingsValue(FeedlensError):
    """A stored override holds a value outside its bounds (write-path bug)."""

    status_code = 500

    def __init__(self, field: str, value: Any, scope: str):
        self.field = field
        self.value = value
        self.scope = scope
        super().__init__(f"Stored {scope} override {field}={value!r} violates its bounds")


class SettingsWriteConflict(FeedlensError):
    """Other writers kept changing the scope override while this write retried."""

    status_code = 409

    def __init__(self, scope: str, scope_id: Any):
        self.scope = scope
        self.scope_id = scope_id
        super().__init__(f"Concurrent writes to {scope} scope {scope_id!r}; try again")


class ConcurrentResetRace(FeedlensError):
    """A feedback write overlapped a reset of the same user's learning."""

    status_code = 409

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Learning for user {user_id!r} was reset during ingestion")


class InvalidRecencyParameters(FeedlensError):
    status_code = 422

    def __init__(self, recency_weight: float, recency_decay_days: float):
        self.recency_weight = recency_weight
        self.recency_decay_days = recency_decay_days
        super().__init__(
            "recency_weight must be within [0, 1] and recency_decay_days must be > 0 "
            f"(got {recency_weight!r}, {recency_decay_days!r})"
        )

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"recency_weight": self.recency_weight, "recency_decay_days": self.recency_decay_days})
        return out
