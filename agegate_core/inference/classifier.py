"""Classifier capability.

The orchestrator only needs ``infer(tensor) -> raw_output``. ``OnnxClassifier``
is the shipped implementation, backed by ONNX Runtime on CPU.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np

from ..errors import InferenceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS = ("CPUExecutionProvider",)


@runtime_checkable
class Classifier(Protocol):
    """Opaque inference capability.

    ``infer`` receives a float32 (1, 3, S, S) batch and returns a 1- or
    2-element vector, or an awaitable resolving to one. It must not keep state
    between calls, and signals failure by raising.
    """

    def infer(self, tensor: np.ndarray) -> Any: ...


class OnnxClassifier:
    """ONNX Runtime session wrapper with lazy loading and provider fallback."""

    def __init__(self, model_path: Union[str, Path],
                 providers: Sequence[str] = DEFAULT_PROVIDERS,
                 intra_op_num_threads: int = 1):
        self.model_path = Path(model_path)
        self.providers = tuple(providers)
        self.intra_op_num_threads = intra_op_num_threads
        self._session = None
        self.input_name: Optional[str] = None
        self.output_name: Optional[str] = None

    @property
    def loaded(self) -> bool:
        return self._session is not None

    def load(self):
        """Create the inference session, trying each provider in order."""
        if self._session is not None:
            return self._session

        import onnxruntime as rt

        if not self.model_path.exists():
            raise InferenceUnavailable(f"Model not found at {self.model_path}")
        if self.model_path.stat().st_size < 4:
            raise InferenceUnavailable(f"Model file is empty or corrupt: {self.model_path}")

        opts = rt.SessionOptions()
        opts.intra_op_num_threads = self.intra_op_num_threads

        available = set(rt.get_available_providers())
        last_error: Optional[Exception] = None
        for provider in self.providers:
            if provider not in available:
                logger.info("Execution provider %s not available, skipping", provider)
                continue
            try:
                self._session = rt.InferenceSession(
                    str(self.model_path), sess_options=opts, providers=[provider]
                )
            except Exception as e:
                logger.warning("Failed to load model with %s: %s", provider, e)
                last_error = e
                continue
            self.input_name = self._session.get_inputs()[0].name
            self.output_name = self._session.get_outputs()[0].name
            logger.info("ONNX model loaded with %s: %s (input=%s, output=%s)",
                        provider, self.model_path, self.input_name, self.output_name)
            return self._session

        raise InferenceUnavailable(
            f"Could not create inference session for {self.model_path}: {last_error}"
        )

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        session = self.load()
        batch = np.asarray(tensor, dtype=np.float32)
        outputs = session.run([self.output_name], {self.input_name: batch})
        if not outputs:
            raise InferenceUnavailable("Model returned no outputs")
        return np.asarray(outputs[0]).reshape(-1)
