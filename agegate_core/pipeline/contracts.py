"""Pipeline contracts and per-cycle artifacts.

Frame, FaceBox and Region flow through region selection and preprocessing;
InferencePass, AggregatedResult and Verdict are produced by inference and
decision. AnalysisResult is what a completed cycle hands back to its caller.
"""

from __future__ import annotations

import enum
import math
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..errors import InputError


@dataclass(frozen=True)
class Frame:
    """Immutable RGB uint8 image (H, W, 3) with its capture timestamp (seconds)."""

    pixels: np.ndarray
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        arr = np.asarray(self.pixels)
        if arr.ndim != 3 or arr.shape[2] != 3:
            raise InputError(f"Frame must be (H, W, 3) RGB, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        # read-only view; the caller's buffer is left untouched
        view = arr.view()
        view.setflags(write=False)
        object.__setattr__(self, "pixels", view)

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0


@dataclass(frozen=True)
class FaceBox:
    """Axis-aligned face rectangle in frame pixel coordinates."""

    x: float
    y: float
    width: float
    height: float
    confidence: Optional[float] = None

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def pixel_bounds(self) -> Tuple[int, int, int, int]:
        """Integer (x1, y1, x2, y2), expanded outward to whole pixels."""
        x1 = int(math.floor(self.x))
        y1 = int(math.floor(self.y))
        x2 = int(math.ceil(self.x + self.width))
        y2 = int(math.ceil(self.y + self.height))
        return x1, y1, x2, y2

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float,
                     confidence: Optional[float] = None) -> "FaceBox":
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1, confidence=confidence)


class RegionSource(str, enum.Enum):
    FACE = "face"
    FULL_FRAME = "full_frame"


@dataclass(frozen=True)
class Region:
    """Rectangular view into a Frame selected for analysis."""

    pixels: np.ndarray
    x: int
    y: int
    width: int
    height: int
    source: RegionSource
    reason_code: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass
class InferencePass:
    """One preprocess + infer cycle for a single augmentation variant."""

    padding_pct: float
    tensor: Optional[np.ndarray]
    raw_output: Optional[np.ndarray] = None
    probability: Optional[float] = None
    flip: bool = False
    brightness: float = 1.0
    fallback: bool = False
    region_source: Optional[RegionSource] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "padding_pct": self.padding_pct,
            "raw_output": None if self.raw_output is None else [float(v) for v in self.raw_output],
            "probability": self.probability,
            "flip": self.flip,
            "brightness": self.brightness,
            "fallback": self.fallback,
            "region_source": None if self.region_source is None else self.region_source.value,
        }


@dataclass(frozen=True)
class AggregatedResult:
    """Combined probability of the adult class and a confidence score."""

    probability: float
    confidence: float
    pass_count: int
    agreement: Optional[float] = None
    stddev: Optional[float] = None
    spread: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class VerdictLabel(str, enum.Enum):
    MINOR = "MINOR"
    MAJOR = "MAJOR"


@dataclass(frozen=True)
class Verdict:
    label: VerdictLabel
    aggregate: AggregatedResult
    confidence: float
    threshold: float
    boundary_distance: float
    reason_codes: Tuple[str, ...] = ()

    @property
    def is_minor(self) -> bool:
        return self.label is VerdictLabel.MINOR

    @property
    def probability(self) -> float:
        return self.aggregate.probability

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label.value,
            "is_minor": self.is_minor,
            "probability": self.probability,
            "confidence": self.confidence,
            "threshold": self.threshold,
            "boundary_distance": self.boundary_distance,
            "pass_count": self.aggregate.pass_count,
            "aggregate": self.aggregate.to_dict(),
            "reason_codes": list(self.reason_codes),
        }


@dataclass
class AnalysisResult:
    """Outcome of one completed analysis cycle."""

    verdict: Verdict
    passes: List[InferencePass]
    policy_applied: bool
    policy_changed: bool
    allowed_until: float
    policy_error: Optional[str] = None
    reason_codes: List[str] = field(default_factory=list)

    @property
    def policy_locked(self) -> bool:
        return self.policy_error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict.to_dict(),
            "passes": [p.to_dict() for p in self.passes],
            "policy_applied": self.policy_applied,
            "policy_changed": self.policy_changed,
            "policy_error": self.policy_error,
            "allowed_until": self.allowed_until,
            "reason_codes": list(self.reason_codes),
        }
