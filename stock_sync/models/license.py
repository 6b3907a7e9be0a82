"""License state models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class LicenseStatus(str, Enum):
    """Canonical license status. ``active`` is the only status that authorizes a sync."""

    ABSENT = "absent"
    ACTIVE = "active"
    EXPIRED = "expired"
    INVALID = "invalid"
    INACTIVE = "inactive"

    @classmethod
    def from_stored(cls, value: str | None) -> "LicenseStatus":
        """Map a persisted value (including older vocabularies) onto the canonical enum."""
        if not value:
            return cls.ABSENT
        if value == "not_activated":
            return cls.INACTIVE
        try:
            return cls(value)
        except ValueError:
            return cls.INVALID

    @property
    def is_negative(self) -> bool:
        return self in (LicenseStatus.EXPIRED, LicenseStatus.INVALID, LicenseStatus.INACTIVE)


class LicenseData(BaseModel):
    """License details returned by the license API (extra fields are kept for display)."""

    model_config = ConfigDict(extra="allow")

    valid: Optional[bool] = None
    activated: Optional[bool] = None
    status: Optional[str] = None
    expires_at: Optional[str] = None
    activations: Optional[dict[str, Any]] = None
    product: Optional[str] = None
    package: Optional[str] = None


class LicenseState(BaseModel):
    """Persisted license state; mutated only by LicenseGuard."""

    key: Optional[str] = None
    status: LicenseStatus = LicenseStatus.ABSENT
    data: Optional[LicenseData] = None
    last_check_at: Optional[datetime] = None
    grace_period_started_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> LicenseStatus:
        if isinstance(value, LicenseStatus):
            return value
        return LicenseStatus.from_stored(value)


class LicenseResult(BaseModel):
    """Outcome of a license operation (activate, check, deactivate)."""

    success: bool
    status: LicenseStatus
    message: str
    data: Optional[LicenseData] = None
    grace_days_remaining: Optional[int] = None


class LicenseInfo(BaseModel):
    """License state as shown to the operator (key masked)."""

    key: Optional[str] = None
    status: LicenseStatus
    is_valid: bool
    data: Optional[LicenseData] = None
    last_check_at: Optional[datetime] = None
    grace_period_started_at: Optional[datetime] = None
    grace_days_remaining: Optional[int] = None
    remaining_days: Optional[int] = None
    is_expired: bool = False


def mask_key(key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}{'*' * (len(key) - 8)}{key[-4:]}"
