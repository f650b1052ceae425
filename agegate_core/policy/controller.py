"""Policy state machine, verification window and consent gate.

States: UNSET -> ENFORCED (verdict MINOR) / CLEARED (verdict MAJOR).
The sink is only called on an actual state change; a locked sink leaves the
state where it was so the next cycle retries, but the verdict and the
verification window are still recorded.

The state is persisted under ``policyActive`` only after the sink accepted
it, separately from the last verdict (``isMinor``), so a new process also
retries a change that was refused earlier.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import ConsentMissing, PolicyLockedError
from ..pipeline.contracts import Verdict
from .sink import PolicySink
from .store import (
    CONSENT_GIVEN,
    CONSENT_TIMESTAMP,
    IS_MINOR,
    POLICY_ACTIVE,
    VERIFICATION_ALLOWED_UNTIL,
    KeyValueStore,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class PolicyConfig:
    verification_window_s: float = 3600.0


class PolicyState(str, enum.Enum):
    UNSET = "unset"
    ENFORCED = "enforced"
    CLEARED = "cleared"


@dataclass(frozen=True)
class ConsentRecord:
    given: bool
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class PolicyOutcome:
    state: PolicyState
    changed: bool
    allowed_until: float
    error: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.error is None


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000.0))


def read_consent(store: KeyValueStore) -> ConsentRecord:
    given = store.get(CONSENT_GIVEN) is True
    ts = store.get(CONSENT_TIMESTAMP)
    return ConsentRecord(given=given, timestamp=None if ts is None else float(ts) / 1000.0)


def record_consent(store: KeyValueStore, clock: Clock = time.time) -> ConsentRecord:
    """Write consent once. Used by the external consent flow, never by a cycle."""
    existing = read_consent(store)
    if existing.given:
        return existing
    now = clock()
    store.update({CONSENT_GIVEN: True, CONSENT_TIMESTAMP: _to_ms(now)})
    logger.info("Consent recorded")
    return ConsentRecord(given=True, timestamp=now)


class PolicyController:
    def __init__(self, store: KeyValueStore, sink: PolicySink,
                 cfg: PolicyConfig = PolicyConfig(), clock: Clock = time.time):
        self.store = store
        self.sink = sink
        self.cfg = cfg
        self.clock = clock
        self.state = self._load_state()

    def _load_state(self) -> PolicyState:
        active = self.store.get(POLICY_ACTIVE)
        if active is True:
            return PolicyState.ENFORCED
        if active is False:
            return PolicyState.CLEARED
        return PolicyState.UNSET

    @property
    def last_is_minor(self) -> Optional[bool]:
        value = self.store.get(IS_MINOR)
        return value if isinstance(value, bool) else None

    def consent(self) -> ConsentRecord:
        return read_consent(self.store)

    def require_consent(self) -> ConsentRecord:
        record = self.consent()
        if not record.given:
            raise ConsentMissing("Consent has not been given; analysis refused")
        return record

    def allowed_until(self) -> Optional[float]:
        value = self.store.get(VERIFICATION_ALLOWED_UNTIL)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return None
        return float(value) / 1000.0

    def verification_active(self, now: Optional[float] = None) -> bool:
        """True while a previous verdict may be reused without re-verifying."""
        until = self.allowed_until()
        if until is None:
            return False
        now = self.clock() if now is None else now
        return now <= until

    def _switch(self, target: PolicyState) -> None:
        if target is PolicyState.ENFORCED:
            self.sink.enable_protection()
        else:
            self.sink.disable_protection()

    def apply(self, verdict: Verdict) -> PolicyOutcome:
        """Drive the sink from a verdict, then record verdict and window."""
        target = PolicyState.ENFORCED if verdict.is_minor else PolicyState.CLEARED
        changed = False
        error = None

        if self.state is target:
            logger.info("Protective policy already %s", target.value)
        else:
            logger.info("Updating protective policy: %s -> %s", self.state.value, target.value)
            try:
                self._switch(target)
            except PolicyLockedError as e:
                error = str(e)
                logger.warning("Protective policy update failed: %s", e)
            else:
                self.state = target
                self.store.update({POLICY_ACTIVE: target is PolicyState.ENFORCED})
                changed = True

        allowed_until = self.clock() + self.cfg.verification_window_s
        self.store.update({
            IS_MINOR: verdict.is_minor,
            VERIFICATION_ALLOWED_UNTIL: _to_ms(allowed_until),
        })
        return PolicyOutcome(state=self.state, changed=changed,
                             allowed_until=allowed_until, error=error)

    def restore(self) -> bool:
        """Re-assert the policy for the last verdict at startup. Returns False if the sink is locked."""
        is_minor = self.last_is_minor
        if is_minor is None:
            target = self.state
        else:
            target = PolicyState.ENFORCED if is_minor else PolicyState.CLEARED
        if target is PolicyState.UNSET:
            return True
        try:
            self._switch(target)
        except PolicyLockedError as e:
            logger.warning("Could not restore protective policy (%s): %s", target.value, e)
            return False
        self.state = target
        self.store.update({POLICY_ACTIVE: target is PolicyState.ENFORCED})
        return True
