"""License gate: is this installation authorized to run a sync?

Owns the persisted ``LicenseState`` and its transitions::

    absent --activate--> active
    active --network error--> active (grace started)
    active (grace) --success--> active
    active (grace) --grace expired--> inactive
    active (grace) --definitive negative--> invalid | expired | inactive
    any --deactivate--> absent

Only ``active`` with a stored key authorizes a run.
"""

import math
from datetime import datetime, timedelta
from typing import Optional, Protocol

from opentelemetry.trace import SpanKind

from stock_sync.config import LICENSE_GRACE_PERIOD_DAYS
from stock_sync.license.client import ApiResponse, LicenseApiClient
from stock_sync.models.license import LicenseData, LicenseResult, LicenseState, LicenseStatus
from stock_sync.models.logs import LogEntryCreate
from stock_sync.state.store import Clock, StateStore, from_iso, utcnow
from stock_sync.utils.logger import get_logger
from stock_sync.utils.tracing import get_tracer

logger = get_logger("stock_sync.license.guard")

LICENSE_KEY = "license"
DISABLED_BY_LICENSE_KEY = "sync_disabled_by_license"

_DAY_SECONDS = 86400


class SyncSwitch(Protocol):
    """What the daily check needs from the scheduler."""

    def is_enabled(self) -> bool: ...

    def disable_sync(self) -> None: ...

    def enable_sync(self) -> bool: ...


class RunLogWriter(Protocol):
    def append(self, entry: LogEntryCreate) -> object: ...


def status_from_reason(message: str) -> LicenseStatus:
    """Classify a definitive rejection by its message text."""
    text = (message or "").lower()
    if "expired" in text:
        return LicenseStatus.EXPIRED
    if "not activated" in text or "inactive" in text:
        return LicenseStatus.INACTIVE
    return LicenseStatus.INVALID


def _data_of(response: ApiResponse) -> Optional[LicenseData]:
    if response.data is None:
        return None
    return LicenseData.model_validate(response.data)


class LicenseGuard:
    """License state machine with a grace period for license-server outages."""

    def __init__(
        self,
        client: LicenseApiClient,
        store: StateStore,
        run_log: RunLogWriter,
        now: Clock = utcnow,
        grace_period_days: int = LICENSE_GRACE_PERIOD_DAYS,
    ):
        self._client = client
        self._store = store
        self._run_log = run_log
        self._now = now
        self._grace = timedelta(days=grace_period_days)
        self.grace_period_days = grace_period_days

    # State

    @property
    def state(self) -> LicenseState:
        raw = self._store.get(LICENSE_KEY)
        if not raw:
            return LicenseState()
        return LicenseState.model_validate(raw)

    def _save(self, state: LicenseState) -> None:
        self._store.set(LICENSE_KEY, state.model_dump(mode="json"))

    def is_valid(self) -> bool:
        state = self.state
        return state.status is LicenseStatus.ACTIVE and bool(state.key)

    # Operations

    def activate(self, license_key: str) -> LicenseResult:
        key = (license_key or "").strip()
        if not key:
            return LicenseResult(success=False, status=self.state.status, message="License key is required.")

        with get_tracer().start_as_current_span("license.activate", kind=SpanKind.CLIENT):
            response = self._client.activate(key)

        if response.network_error:
            logger.warning("license.activate.network_error", error=response.message)
            return LicenseResult(success=False, status=self.state.status, message=response.message)

        now = self._now()
        if response.success:
            data = _data_of(response)
            self._save(LicenseState(key=key, status=LicenseStatus.ACTIVE, data=data, last_check_at=now))
            logger.info("license.activated")
            return LicenseResult(
                success=True,
                status=LicenseStatus.ACTIVE,
                message="License activated successfully.",
                data=data,
            )

        status = status_from_reason(response.message)
        self._save(LicenseState(key=key, status=status, data=None, last_check_at=now))
        logger.info("license.activate.rejected", status=status.value, message=response.message)
        return LicenseResult(success=False, status=status, message=response.message)

    def check(self, license_key: Optional[str] = None) -> LicenseResult:
        """Re-validate the stored (or supplied) key against the license server."""
        state = self.state
        key = (license_key or "").strip() or state.key
        if not key:
            return LicenseResult(success=False, status=state.status, message="No license key found.")

        with get_tracer().start_as_current_span(
            "license.check", kind=SpanKind.CLIENT, attributes={"license.status": state.status.value}
        ) as span:
            response = self._client.validate(key)
            if response.network_error:
                result = self._on_network_error(state, response)
            elif response.success:
                result = self._on_validated(state, key, response)
            else:
                result = self._on_rejected(state, key, response)
            span.set_attribute("license.result_status", result.status.value)
        return result

    def deactivate(self) -> LicenseResult:
        """Release the activation remotely (best effort); local state is always cleared."""
        state = self.state
        response: Optional[ApiResponse] = None
        if state.key:
            response = self._client.deactivate(state.key)
        self._store.delete(LICENSE_KEY)
        logger.info("license.deactivated", remote_success=bool(response and response.success))
        if response is None:
            return LicenseResult(success=False, status=LicenseStatus.ABSENT, message="No license key found.")
        if response.success:
            return LicenseResult(success=True, status=LicenseStatus.ABSENT, message="License deactivated.")
        return LicenseResult(success=False, status=LicenseStatus.ABSENT, message=response.message)

    def daily_check(self, switch: SyncSwitch) -> Optional[LicenseResult]:
        """Re-validate; disable sync when the license is no longer valid, restore it when it is again."""
        if not self.state.key:
            return None

        result = self.check()
        if self.is_valid():
            self._maybe_restore_sync(switch)
            return result

        if switch.is_enabled():
            self._store.set(DISABLED_BY_LICENSE_KEY, True)
        switch.disable_sync()
        reason = self._disable_reason(result)
        self._run_log.append(
            LogEntryCreate(type="license", status="error", message=f"{reason} Sync has been disabled.")
        )
        logger.warning("license.daily_check.sync_disabled", status=result.status.value)
        return result

    # Accessors

    def expires_at(self) -> Optional[datetime]:
        data = self.state.data
        if data is None or not data.expires_at:
            return None
        return from_iso(data.expires_at)

    def is_expired(self) -> bool:
        expiry = self.expires_at()
        return expiry is not None and expiry < self._now()

    def remaining_days(self) -> Optional[int]:
        """Whole days until expiry, 0 once expired, None for lifetime licenses."""
        expiry = self.expires_at()
        if expiry is None:
            return None
        return max(0, math.floor((expiry - self._now()).total_seconds() / _DAY_SECONDS))

    def grace_days_remaining(self) -> Optional[int]:
        started = self.state.grace_period_started_at
        if started is None:
            return None
        return max(0, self._grace_days_left(started))

    # Transitions

    def _grace_days_left(self, started: datetime) -> int:
        remaining = (started + self._grace - self._now()).total_seconds()
        return math.ceil(remaining / _DAY_SECONDS)

    def _on_network_error(self, state: LicenseState, response: ApiResponse) -> LicenseResult:
        status = state.status
        if status is LicenseStatus.ACTIVE:
            return self._grace_tick(state, response)
        if status in (
            LicenseStatus.ABSENT,
            LicenseStatus.EXPIRED,
            LicenseStatus.INVALID,
            LicenseStatus.INACTIVE,
        ):
            logger.warning("license.check.network_error", status=status.value, error=response.message)
            return LicenseResult(success=False, status=status, message=response.message)
        raise AssertionError(f"unhandled license status {status!r}")

    def _grace_tick(self, state: LicenseState, response: ApiResponse) -> LicenseResult:
        now = self._now()
        if state.grace_period_started_at is None:
            self._save(state.model_copy(update={"grace_period_started_at": now}))
            logger.warning("license.grace.started", days=self.grace_period_days, error=response.message)
            return LicenseResult(
                success=False,
                status=LicenseStatus.ACTIVE,
                message=(
                    "Could not reach the license server. "
                    f"Grace period started: {self.grace_period_days} days remaining."
                ),
                data=state.data,
                grace_days_remaining=self.grace_period_days,
            )

        days_left = self._grace_days_left(state.grace_period_started_at)
        if days_left <= 0:
            self._save(state.model_copy(update={
                "status": LicenseStatus.INACTIVE,
                "grace_period_started_at": None,
            }))
            logger.warning("license.grace.expired")
            return LicenseResult(
                success=False,
                status=LicenseStatus.INACTIVE,
                message="Could not reach the license server and the grace period has ended. License is inactive.",
                grace_days_remaining=0,
            )

        logger.warning("license.grace.continuing", days_remaining=days_left)
        return LicenseResult(
            success=False,
            status=LicenseStatus.ACTIVE,
            message=f"Could not reach the license server. Grace period: {days_left} days remaining.",
            data=state.data,
            grace_days_remaining=days_left,
        )

    def _on_validated(self, state: LicenseState, key: str, response: ApiResponse) -> LicenseResult:
        now = self._now()
        data = _data_of(response) or LicenseData()

        if data.valid and data.activated:
            expiry = from_iso(data.expires_at) if data.expires_at else None
            status = LicenseStatus.EXPIRED if expiry is not None and expiry < now else LicenseStatus.ACTIVE
            self._save(LicenseState(key=key, status=status, data=data, last_check_at=now))
            if status is LicenseStatus.ACTIVE:
                return LicenseResult(success=True, status=status, message="License is valid.", data=data)
            return LicenseResult(success=False, status=status, message="License has expired.", data=data)

        if data.valid:
            if state.status.is_negative:
                reactivated = self._try_reactivate(key, now)
                if reactivated is not None:
                    return reactivated
            self._save(LicenseState(key=key, status=LicenseStatus.INACTIVE, data=data, last_check_at=now))
            return LicenseResult(
                success=False,
                status=LicenseStatus.INACTIVE,
                message="License is not activated on this domain.",
                data=data,
            )

        status = LicenseStatus.EXPIRED if (data.status or "").lower() == "expired" else LicenseStatus.INVALID
        self._save(LicenseState(key=key, status=status, data=data, last_check_at=now))
        return LicenseResult(
            success=False,
            status=status,
            message=f"License is {data.status or 'invalid'}.",
            data=data,
        )

    def _try_reactivate(self, key: str, now: datetime) -> Optional[LicenseResult]:
        response = self._client.activate(key)
        if not response.success:
            logger.info("license.reactivate.failed", message=response.message)
            return None
        data = _data_of(response)
        self._save(LicenseState(key=key, status=LicenseStatus.ACTIVE, data=data, last_check_at=now))
        logger.info("license.reactivated")
        return LicenseResult(
            success=True,
            status=LicenseStatus.ACTIVE,
            message="License was re-activated on this domain.",
            data=data,
        )

    def _on_rejected(self, state: LicenseState, key: str, response: ApiResponse) -> LicenseResult:
        status = status_from_reason(response.message)
        self._save(LicenseState(key=key, status=status, data=None, last_check_at=self._now()))
        logger.info(
            "license.check.rejected",
            previous=state.status.value,
            status=status.value,
            status_code=response.status_code,
        )
        return LicenseResult(success=False, status=status, message=response.message)

    # Sync on/off around license changes

    def _disable_reason(self, result: LicenseResult) -> str:
        data = result.data
        if data is not None and data.valid is False:
            return f"License is {data.status or 'unknown'}."
        if result.status is LicenseStatus.INACTIVE and data is not None:
            return "License is not activated on this domain."
        return "License validation failed."

    def _maybe_restore_sync(self, switch: SyncSwitch) -> None:
        if not self._store.get(DISABLED_BY_LICENSE_KEY):
            return
        self._store.delete(DISABLED_BY_LICENSE_KEY)
        if not switch.enable_sync():
            return
        self._run_log.append(
            LogEntryCreate(
                type="license",
                status="success",
                message="License is now valid. Sync has been automatically re-enabled.",
            )
        )
        logger.info("license.daily_check.sync_restored")
