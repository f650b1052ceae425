"""Protective policy: persisted state, sink adapters and the verdict-driven controller."""

from .controller import (
    ConsentRecord,
    PolicyConfig,
    PolicyController,
    PolicyOutcome,
    PolicyState,
    read_consent,
    record_consent,
)
from .sink import CallbackPolicySink, LoggingPolicySink, PolicySink
from .store import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "ConsentRecord",
    "PolicyConfig",
    "PolicyController",
    "PolicyOutcome",
    "PolicyState",
    "read_consent",
    "record_consent",
    "CallbackPolicySink",
    "LoggingPolicySink",
    "PolicySink",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
]
