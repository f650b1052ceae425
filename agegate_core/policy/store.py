"""Persistent key-value store for consent, last verdict and verification window.

Keys mirror the extension storage layout so external collaborators (consent
page, page gatekeeper) can share the same state:

- ``consentGiven``: bool
- ``consentTimestamp``: epoch milliseconds
- ``isMinor``: bool, last verdict
- ``verificationAllowedUntil``: epoch milliseconds
- ``policyActive``: bool, last protective policy the sink accepted
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

CONSENT_GIVEN = "consentGiven"
CONSENT_TIMESTAMP = "consentTimestamp"
IS_MINOR = "isMinor"
VERIFICATION_ALLOWED_UNTIL = "verificationAllowedUntil"
POLICY_ACTIVE = "policyActive"


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def update(self, values: Mapping[str, Any]) -> None: ...


class InMemoryStore:
    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, values: Mapping[str, Any]) -> None:
        self._data.update(values)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._data)


class JsonFileStore:
    """Single JSON object on disk, rewritten atomically on every update."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("State file %s unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("State file %s does not hold an object, starting empty", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def update(self, values: Mapping[str, Any]) -> None:
        data = self._read()
        data.update(values)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def snapshot(self) -> Dict[str, Any]:
        return self._read()
