"""Region selection: padded crop around the largest face, or the full frame."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..reason_codes import CODES
from .contracts import FaceBox, Frame, Region, RegionSource

logger = logging.getLogger(__name__)

MAX_PADDING_PCT = 50.0


@dataclass(frozen=True)
class RegionConfig:
    # Percentage of the face width/height added on each side
    padding_pct: float = 25.0

    # Faces narrower or shorter than this (pixels) are ignored
    min_face_size: int = 50


def clamp_padding(padding_pct: float) -> float:
    return max(0.0, min(MAX_PADDING_PCT, float(padding_pct)))


def select_largest_face(faces: Optional[Sequence[FaceBox]]) -> Optional[FaceBox]:
    """Largest-area box; the earliest one wins ties."""
    if not faces:
        return None
    largest = faces[0]
    for face in faces[1:]:
        if face.area > largest.area:
            largest = face
    return largest


def full_frame_region(frame: Frame, reason_code: Optional[str] = None) -> Region:
    return Region(
        pixels=frame.pixels,
        x=0,
        y=0,
        width=frame.width,
        height=frame.height,
        source=RegionSource.FULL_FRAME,
        reason_code=reason_code,
    )


def select_region(frame: Frame, faces: Optional[Sequence[FaceBox]],
                  padding_pct: float = RegionConfig.padding_pct,
                  min_face_size: int = RegionConfig.min_face_size) -> Region:
    """Compute the region to analyze. Never fails; falls back to the full frame."""
    face = select_largest_face(faces)
    if face is None:
        return full_frame_region(frame, CODES.NO_FACE)

    x1, y1, x2, y2 = face.pixel_bounds()
    face_w = x2 - x1
    face_h = y2 - y1
    if face_w < min_face_size or face_h < min_face_size:
        logger.info("Face too small (%dx%d), using full frame", face_w, face_h)
        return full_frame_region(frame, CODES.FACE_TOO_SMALL)

    padding = clamp_padding(padding_pct) / 100.0
    pad_x = int(face_w * padding)
    pad_y = int(face_h * padding)

    crop_x = max(0, x1 - pad_x)
    crop_y = max(0, y1 - pad_y)
    crop_w = min(frame.width - crop_x, face_w + 2 * pad_x)
    crop_h = min(frame.height - crop_y, face_h + 2 * pad_y)

    if crop_w <= 0 or crop_h <= 0:
        # box lies entirely outside the frame
        return full_frame_region(frame, CODES.NO_FACE)

    logger.debug(
        "Cropping face region: x=%d, y=%d, w=%d, h=%d (padding: %.1f%%)",
        crop_x, crop_y, crop_w, crop_h, padding * 100.0,
    )
    return Region(
        pixels=frame.pixels[crop_y:crop_y + crop_h, crop_x:crop_x + crop_w, :],
        x=crop_x,
        y=crop_y,
        width=crop_w,
        height=crop_h,
        source=RegionSource.FACE,
    )
