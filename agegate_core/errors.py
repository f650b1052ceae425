"""Error taxonomy for the age gate pipeline.

Every error carries a reason code from :mod:`agegate_core.reason_codes`
so that callers can map failures to user-visible states.
"""

from __future__ import annotations

from typing import Optional

from .reason_codes import CODES


class AgeGateError(Exception):
    reason_code: str = CODES.INFERENCE_UNAVAILABLE

    def __init__(self, message: str, reason_code: Optional[str] = None):
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = reason_code


class InputError(AgeGateError, ValueError):
    """Degenerate frame or region (zero area). Aborts the cycle."""

    reason_code = CODES.EMPTY_FRAME


class DecodeError(InputError):
    reason_code = CODES.CORRUPT_FILE


class DetectionError(AgeGateError):
    """Face detector unavailable or failed. Recovered with a full-frame region."""

    reason_code = CODES.DETECTOR_FAILED


class InvalidModelOutput(AgeGateError):
    """Raw classifier output that cannot be turned into a probability."""

    reason_code = CODES.NON_FINITE_OUTPUT


class UnsupportedOutputShape(InvalidModelOutput):
    reason_code = CODES.UNSUPPORTED_OUTPUT


class InferenceUnavailable(AgeGateError):
    """No inference pass succeeded, fallback included."""

    reason_code = CODES.INFERENCE_UNAVAILABLE


class AnalysisCancelled(AgeGateError):
    reason_code = CODES.CANCELLED


class PolicyLockedError(AgeGateError):
    """The policy sink refused to change the protective policy."""

    reason_code = CODES.POLICY_LOCKED


class ConsentMissing(AgeGateError):
    reason_code = CODES.CONSENT_MISSING
