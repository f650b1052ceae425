"""Authoritative still-image decoding into a Frame.

Uploaded images and saved captures enter the pipeline here:
- file integrity check
- supported format allowlist
- EXIF orientation
- alpha handling policy
- minimum size (too small to hold a face)
- RGB channel order
"""

from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageOps

from ..errors import DecodeError, InputError
from ..reason_codes import CODES
from .contracts import Frame

logger = logging.getLogger(__name__)

SupportedFormat = Literal["jpeg", "png", "webp", "bmp"]


@dataclass(frozen=True)
class DecodeConfig:
    allowed_formats: Tuple[SupportedFormat, ...] = ("jpeg", "png", "webp", "bmp")

    # - "reject": fail if alpha exists
    # - "composite_black" / "composite_white": flatten over a solid background
    alpha_policy: Literal["reject", "composite_black", "composite_white"] = "composite_white"

    # Images with a shorter side (after EXIF rotation) cannot hold a usable face
    min_side: int = 32


def detect_format(pil_image: Image.Image) -> Optional[SupportedFormat]:
    fmt = (pil_image.format or "").lower()
    if fmt in ("jpeg", "jpg", "mpo"):
        return "jpeg"
    if fmt in ("png", "webp", "bmp"):
        return fmt
    return None


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _to_rgb(img: Image.Image, alpha_policy: str) -> Image.Image:
    if not _has_alpha(img):
        return img.convert("RGB")
    if alpha_policy == "reject":
        raise DecodeError("Alpha channel rejected by policy", CODES.ALPHA_POLICY_REJECTED)
    fill = (0, 0, 0, 255) if alpha_policy == "composite_black" else (255, 255, 255, 255)
    rgba = img.convert("RGBA")
    return Image.alpha_composite(Image.new("RGBA", rgba.size, fill), rgba).convert("RGB")


def decode_image_bytes(data: bytes, cfg: DecodeConfig = DecodeConfig(),
                       timestamp: Optional[float] = None) -> Frame:
    """Decode an uploaded or saved still image into an upright RGB Frame.

    Raises DecodeError for unreadable, disallowed or alpha-rejected input and
    InputError (EMPTY_FRAME) when the image is too small to analyze.
    """
    if not data:
        raise InputError("Empty image payload", CODES.EMPTY_FRAME)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Exception as e:
        raise DecodeError(f"Corrupt/invalid image: {e}", CODES.CORRUPT_FILE) from e

    fmt = detect_format(img)
    if fmt not in cfg.allowed_formats:
        raise DecodeError(f"Unsupported format: {img.format}", CODES.UNSUPPORTED_FORMAT)

    # camera uploads are often stored sideways with an orientation tag
    upright = ImageOps.exif_transpose(img)
    if min(upright.size) < cfg.min_side:
        raise InputError(
            f"Image too small to analyze: {upright.size[0]}x{upright.size[1]} "
            f"(minimum side {cfg.min_side}px)",
            CODES.EMPTY_FRAME,
        )

    pixels = np.asarray(_to_rgb(upright, cfg.alpha_policy), dtype=np.uint8)
    logger.debug("Decoded %s image %dx%d", fmt, pixels.shape[1], pixels.shape[0])
    return Frame(pixels=pixels, timestamp=time.time() if timestamp is None else timestamp)


def decode_image_file(path: Union[str, Path], cfg: DecodeConfig = DecodeConfig()) -> Frame:
    path = Path(path)
    if not path.exists():
        raise DecodeError(f"Image not found: {path}", CODES.CORRUPT_FILE)
    return decode_image_bytes(path.read_bytes(), cfg, timestamp=path.stat().st_mtime)
