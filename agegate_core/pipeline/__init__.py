"""Pipeline package: decode + face detection + region selection + preprocess.

This package owns the pixel contract: everything up to the classifier input tensor.
"""

from .contracts import (
    AggregatedResult,
    AnalysisResult,
    FaceBox,
    Frame,
    InferencePass,
    Region,
    RegionSource,
    Verdict,
    VerdictLabel,
)
from .decode import DecodeConfig, decode_image_bytes, decode_image_file
from .face import (
    AbsentDetector,
    Detector,
    FaceDetectorConfig,
    MediaPipeDetector,
    PresentDetector,
    detect_faces,
    filter_detections,
)
from .preprocess import PreprocessConfig, as_batch, normalize_rgb_uint8, preprocess_region, resize_rgb_uint8
from .region import RegionConfig, clamp_padding, full_frame_region, select_largest_face, select_region

__all__ = [
    "AggregatedResult",
    "AnalysisResult",
    "FaceBox",
    "Frame",
    "InferencePass",
    "Region",
    "RegionSource",
    "Verdict",
    "VerdictLabel",
    "DecodeConfig",
    "decode_image_bytes",
    "decode_image_file",
    "AbsentDetector",
    "Detector",
    "FaceDetectorConfig",
    "MediaPipeDetector",
    "PresentDetector",
    "detect_faces",
    "filter_detections",
    "PreprocessConfig",
    "as_batch",
    "normalize_rgb_uint8",
    "preprocess_region",
    "resize_rgb_uint8",
    "RegionConfig",
    "clamp_padding",
    "full_frame_region",
    "select_largest_face",
    "select_region",
]
