"""Face detection capability and detection filtering.

The detector is optional. It is always queried through the ``Detector``
interface, which has two shipped variants:

1) ``PresentDetector`` wrapping any callable ``frame -> boxes`` (or
   ``MediaPipeDetector`` when ``mediapipe`` is installed).
2) ``AbsentDetector`` which reports no faces, so region selection falls
   back to the full frame.

Detector failures never abort a cycle; they are logged and treated as
"no face".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, runtime_checkable

from ..errors import DetectionError
from ..reason_codes import CODES
from .contracts import FaceBox, Frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceDetectorConfig:
    enabled: bool = True

    # Detections at or below this score are dropped, unless that drops all of them
    min_confidence: float = 0.5

    # Passed to mediapipe when that backend is used
    model_selection: int = 0


@runtime_checkable
class Detector(Protocol):
    def detect(self, frame: Frame) -> List[FaceBox]: ...


class AbsentDetector:
    """No detector available: every frame is analyzed whole."""

    def detect(self, frame: Frame) -> List[FaceBox]:
        return []

    def __repr__(self) -> str:
        return "AbsentDetector()"


class PresentDetector:
    """Adapter around a detection callable."""

    def __init__(self, detect_fn: Callable[[Frame], Sequence[FaceBox]]):
        self._detect_fn = detect_fn

    def detect(self, frame: Frame) -> List[FaceBox]:
        try:
            boxes = self._detect_fn(frame)
        except Exception as e:
            raise DetectionError(f"Face detector failed: {e}") from e
        return list(boxes or [])


class MediaPipeDetector:
    """BlazeFace short-range detector via mediapipe.

    mediapipe is imported lazily; when it is missing, ``detect`` raises
    ``DetectionError`` and the cycle continues on the full frame.
    """

    def __init__(self, cfg: FaceDetectorConfig = FaceDetectorConfig()):
        self.cfg = cfg
        self._detector = None

    def _lazy_init(self):
        if self._detector is None:
            try:
                import mediapipe as mp
            except ImportError as e:
                raise DetectionError(
                    "mediapipe is required for MediaPipeDetector. Install with: pip install mediapipe"
                ) from e
            self._detector = mp.solutions.face_detection.FaceDetection(
                model_selection=self.cfg.model_selection,
                min_detection_confidence=0.0,
            )

    def detect(self, frame: Frame) -> List[FaceBox]:
        self._lazy_init()
        h, w = frame.height, frame.width
        try:
            results = self._detector.process(frame.pixels)
        except Exception as e:
            raise DetectionError(f"mediapipe detection failed: {e}") from e

        boxes: List[FaceBox] = []
        if results and results.detections:
            for det in results.detections:
                score = float(det.score[0]) if det.score else None
                b = det.location_data.relative_bounding_box
                boxes.append(FaceBox(
                    x=b.xmin * w,
                    y=b.ymin * h,
                    width=b.width * w,
                    height=b.height * h,
                    confidence=score,
                ))
        return boxes

    def close(self):
        if self._detector is not None:
            self._detector.close()
            self._detector = None


def filter_detections(boxes: Sequence[FaceBox], min_confidence: float) -> List[FaceBox]:
    """Drop low-confidence detections.

    Boxes without a score are kept. If every box falls below the threshold the
    unfiltered list is returned, since a weak face crop still beats the full frame.
    """
    kept = [b for b in boxes if b.confidence is None or b.confidence > min_confidence]
    if not kept and boxes:
        return list(boxes)
    return kept


def detect_faces(frame: Frame, detector: Optional[Detector],
                 cfg: FaceDetectorConfig = FaceDetectorConfig(),
                 reason_codes: Optional[List[str]] = None) -> List[FaceBox]:
    """Run the detector with full-frame fallback on any failure."""
    if detector is None or not cfg.enabled:
        return []
    try:
        boxes = detector.detect(frame)
    except Exception as e:
        # DetectionError or anything a third-party detector throws
        logger.warning("Face detection unavailable, using full frame: %s", e)
        if reason_codes is not None:
            reason_codes.append(CODES.DETECTOR_FAILED)
        return []

    boxes = filter_detections(boxes, cfg.min_confidence)
    if boxes and all(b.confidence is not None and b.confidence <= cfg.min_confidence for b in boxes):
        logger.info("Only low-confidence faces detected, keeping them")
        if reason_codes is not None:
            reason_codes.append(CODES.LOW_FACE_CONF)
    logger.info("Detected %d face(s)", len(boxes))
    return boxes
