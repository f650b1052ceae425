"""Policy sink: the external switch for the protective policy.

A sink must tolerate redundant calls; the controller avoids them anyway.
Both calls raise ``PolicyLockedError`` when the policy cannot be changed
(e.g. SafeSearch enforced by browser or OS settings).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable

from ..errors import PolicyLockedError

logger = logging.getLogger(__name__)

LOCKED_MESSAGE = "SafeSearch is locked by browser settings"


@runtime_checkable
class PolicySink(Protocol):
    def enable_protection(self) -> None: ...

    def disable_protection(self) -> None: ...


def _check_response(response: Any, action: str) -> None:
    """Accept ``None``/``True`` or a ``{"success": bool, "error": str}`` dict."""
    if response is None or response is True:
        return
    if response is False:
        raise PolicyLockedError(f"Could not {action} protection: {LOCKED_MESSAGE}")
    if isinstance(response, dict):
        if response.get("success", response.get("ok", False)):
            return
        raise PolicyLockedError(f"Could not {action} protection: {response.get('error') or LOCKED_MESSAGE}")
    raise PolicyLockedError(f"Unexpected response from policy sink while trying to {action}: {response!r}")


class CallbackPolicySink:
    """Adapts two callables (enable, disable) to the PolicySink interface."""

    def __init__(self, enable_fn: Callable[[], Any], disable_fn: Callable[[], Any]):
        self._enable_fn = enable_fn
        self._disable_fn = disable_fn

    def _call(self, fn: Callable[[], Any], action: str) -> None:
        try:
            response = fn()
        except PolicyLockedError:
            raise
        except Exception as e:
            raise PolicyLockedError(f"Could not {action} protection: {str(e) or LOCKED_MESSAGE}") from e
        _check_response(response, action)

    def enable_protection(self) -> None:
        self._call(self._enable_fn, "enable")

    def disable_protection(self) -> None:
        self._call(self._disable_fn, "disable")


class LoggingPolicySink:
    """Records the requested state in the log only; used by the CLI."""

    def __init__(self):
        self.protection_enabled = None

    def enable_protection(self) -> None:
        self.protection_enabled = True
        logger.info("Protective policy requested: ON")

    def disable_protection(self) -> None:
        self.protection_enabled = False
        logger.info("Protective policy requested: OFF")
