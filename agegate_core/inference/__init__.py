"""Inference: classifier adapters, output interpretation and the multi-pass orchestrator."""

from .classifier import Classifier, OnnxClassifier
from .interpret import interpret_output, sigmoid, softmax
from .orchestrator import EnsembleConfig, InferenceOrchestrator, cooperative_yield

__all__ = [
    "Classifier",
    "OnnxClassifier",
    "interpret_output",
    "sigmoid",
    "softmax",
    "EnsembleConfig",
    "InferenceOrchestrator",
    "cooperative_yield",
]
