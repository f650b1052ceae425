"""Shared fixtures: fake capabilities (classifier, detector, sink, camera) and a seeded store."""

from __future__ import annotations

from typing import Any, List, Sequence

import numpy as np
import pytest

from agegate_core.capture import CaptureConfig
from agegate_core.config import AgeGateConfig
from agegate_core.errors import PolicyLockedError
from agegate_core.gate import AgeGate, PipelineContext
from agegate_core.inference.orchestrator import EnsembleConfig
from agegate_core.pipeline.contracts import FaceBox, Frame
from agegate_core.policy.store import CONSENT_GIVEN, CONSENT_TIMESTAMP, InMemoryStore

FIXED_NOW = 1_700_000_000.0


class FakeClassifier:
    """Returns scripted outputs in call order; an Exception entry is raised instead.

    The last entry repeats once the script runs out.
    """

    def __init__(self, outputs: Sequence[Any]):
        self.outputs = list(outputs)
        self.calls: List[tuple] = []

    def infer(self, tensor: np.ndarray):
        self.calls.append(tuple(tensor.shape))
        out = self.outputs[min(len(self.calls), len(self.outputs)) - 1]
        if isinstance(out, Exception):
            raise out
        return np.asarray(out, dtype=np.float32)


class AsyncFakeClassifier(FakeClassifier):
    async def infer(self, tensor: np.ndarray):
        return super().infer(tensor)


class FakeDetector:
    def __init__(self, boxes: Sequence[FaceBox] = (), error: Exception = None):
        self.boxes = list(boxes)
        self.error = error
        self.calls = 0

    def detect(self, frame: Frame) -> List[FaceBox]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.boxes)


class RecordingSink:
    def __init__(self, locked: bool = False):
        self.locked = locked
        self.calls: List[str] = []

    def enable_protection(self) -> None:
        self.calls.append("enable")
        if self.locked:
            raise PolicyLockedError("SafeSearch is locked by browser settings")

    def disable_protection(self) -> None:
        self.calls.append("disable")
        if self.locked:
            raise PolicyLockedError("SafeSearch is locked by browser settings")


class FakeCamera:
    def __init__(self, frame: Frame):
        self.frame = frame
        self.opened = 0
        self.closed = 0
        self.reads = 0

    def open(self):
        self.opened += 1

    def read_frame(self):
        self.reads += 1
        return self.frame

    def close(self):
        self.closed += 1

    @property
    def active(self) -> bool:
        return self.opened > self.closed


def make_frame(height: int = 240, width: int = 320, value: int = 128) -> Frame:
    rng = np.random.default_rng(0)
    pixels = np.clip(rng.normal(value, 20, size=(height, width, 3)), 0, 255).astype(np.uint8)
    return Frame(pixels=pixels, timestamp=FIXED_NOW)


@pytest.fixture
def fxt_frame() -> Frame:
    return make_frame()


@pytest.fixture
def fxt_config() -> AgeGateConfig:
    return AgeGateConfig(
        ensemble=EnsembleConfig(inter_pass_delay=0.0),
        capture=CaptureConfig(auto_stop_delay=0.05, frame_timeout=1.0),
    )


@pytest.fixture
def fxt_store() -> InMemoryStore:
    return InMemoryStore({CONSENT_GIVEN: True, CONSENT_TIMESTAMP: int(FIXED_NOW * 1000)})


@pytest.fixture
def fxt_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fxt_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def fxt_make_gate(fxt_store, fxt_sink, fxt_config, fxt_clock):
    def _make(classifier, detector=None, store=None, sink=None, config=None) -> AgeGate:
        kwargs = {}
        if detector is not None:
            kwargs["detector"] = detector
        context = PipelineContext(
            classifier=classifier,
            store=fxt_store if store is None else store,
            sink=fxt_sink if sink is None else sink,
            config=fxt_config if config is None else config,
            clock=fxt_clock,
            **kwargs,
        )
        return AgeGate(context)

    return _make
