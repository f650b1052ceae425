"""Deterministic preprocessing (augment + resize + normalize).

The classifier was trained on ImageNet-normalized 224x224 crops; every pass
goes through exactly this path so that ensemble variants differ only in the
augmentation parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple

import numpy as np
from PIL import Image

from ..errors import InputError
from .contracts import Region


@dataclass(frozen=True)
class PreprocessConfig:
    target_size: int = 224
    resize_kernel: Literal["bilinear", "bicubic", "lanczos"] = "bicubic"

    # normalization mean/std in RGB order (ImageNet)
    mean: Tuple[float, float, float] = (0.485, 0.456, 0.406)
    std: Tuple[float, float, float] = (0.229, 0.224, 0.225)


def _pil_resample(kernel: str) -> int:
    if kernel == "bilinear":
        return Image.BILINEAR
    if kernel == "bicubic":
        return Image.BICUBIC
    if kernel == "lanczos":
        return Image.LANCZOS
    raise ValueError(f"Unsupported resize kernel: {kernel}")


def augment_rgb_uint8(rgb: np.ndarray, flip: bool = False, brightness: float = 1.0) -> np.ndarray:
    """Optional horizontal flip and brightness scaling. Returns a new array."""
    out = rgb
    if flip:
        out = out[:, ::-1, :]
    if brightness != 1.0:
        out = np.clip(out.astype(np.float32) * float(brightness), 0, 255).astype(np.uint8)
    return np.ascontiguousarray(out, dtype=np.uint8)


def resize_rgb_uint8(rgb: np.ndarray, cfg: PreprocessConfig) -> np.ndarray:
    """Resize RGB uint8 (H,W,3) to (S,S,3)."""
    img = Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8))
    size = int(cfg.target_size)
    img = img.resize((size, size), resample=_pil_resample(cfg.resize_kernel))
    return np.array(img, dtype=np.uint8)


def normalize_rgb_uint8(resized_rgb: np.ndarray, cfg: PreprocessConfig) -> np.ndarray:
    """Normalize to a float32 CHW tensor."""
    x = resized_rgb.astype(np.float32) / 255.0
    mean = np.array(cfg.mean, dtype=np.float32)
    std = np.array(cfg.std, dtype=np.float32)
    x = (x - mean) / std
    # HWC -> CHW
    x = np.transpose(x, (2, 0, 1))
    return np.ascontiguousarray(x, dtype=np.float32)


def preprocess_region(region: Region, cfg: PreprocessConfig = PreprocessConfig(),
                      flip: bool = False, brightness: float = 1.0) -> np.ndarray:
    """Region -> (3, S, S) float32 tensor. Zero-area regions raise InputError."""
    if region.is_empty or region.pixels.size == 0:
        raise InputError(f"Cannot preprocess empty region ({region.width}x{region.height})")
    rgb = augment_rgb_uint8(region.pixels, flip=flip, brightness=brightness)
    return normalize_rgb_uint8(resize_rgb_uint8(rgb, cfg), cfg)


def as_batch(tensor: np.ndarray) -> np.ndarray:
    """(3, S, S) -> (1, 3, S, S) for the classifier."""
    return np.expand_dims(tensor, axis=0)
