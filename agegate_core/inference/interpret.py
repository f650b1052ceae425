"""Raw classifier output -> probability of the adult (MAJOR) class."""

from __future__ import annotations

import numpy as np

from ..errors import InvalidModelOutput, UnsupportedOutputShape


def sigmoid(x: float) -> float:
    # split by sign to avoid overflow in exp
    if x >= 0:
        return float(1.0 / (1.0 + np.exp(-x)))
    z = np.exp(x)
    return float(z / (1.0 + z))


def softmax(logits: np.ndarray) -> np.ndarray:
    z = np.asarray(logits, dtype=np.float64)
    exps = np.exp(z - np.max(z))
    return exps / np.sum(exps)


def interpret_output(raw_output) -> float:
    """Convert a length-1 or length-2 output vector into P(adult).

    - one value inside [0, 1] is taken as a probability, otherwise as a logit
    - two values are [minor, adult] logits
    """
    data = np.asarray(raw_output, dtype=np.float64).reshape(-1)
    if data.size not in (1, 2):
        raise UnsupportedOutputShape(f"Unexpected model output length: {data.size}")
    if not np.all(np.isfinite(data)):
        raise InvalidModelOutput(f"Non-finite model output: {data.tolist()}")

    if data.size == 1:
        value = float(data[0])
        probability = value if 0.0 <= value <= 1.0 else sigmoid(value)
    else:
        probability = float(softmax(data)[1])

    return float(min(1.0, max(0.0, probability)))
