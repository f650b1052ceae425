"""Reason code taxonomy.

These codes are attached to analysis results and errors so that callers
(popup UI, page gatekeeper, CLI) can explain an outcome without parsing
log messages.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReasonCodes:
    # Region selection
    NO_FACE: str = "RG-001"
    FACE_TOO_SMALL: str = "RG-002"
    LOW_FACE_CONF: str = "RG-003"
    DETECTOR_FAILED: str = "RG-004"

    # Input
    EMPTY_FRAME: str = "IN-001"
    CORRUPT_FILE: str = "IN-002"
    UNSUPPORTED_FORMAT: str = "IN-003"
    ALPHA_POLICY_REJECTED: str = "IN-004"

    # Inference
    PASS_FAILED: str = "IF-001"
    UNSUPPORTED_OUTPUT: str = "IF-002"
    NON_FINITE_OUTPUT: str = "IF-003"
    FALLBACK_USED: str = "IF-004"
    INFERENCE_UNAVAILABLE: str = "IF-005"
    CANCELLED: str = "IF-006"

    # Decision
    NEAR_BOUNDARY: str = "DC-001"
    INCONSISTENT_PASSES: str = "DC-002"

    # Policy
    POLICY_LOCKED: str = "PL-001"
    CONSENT_MISSING: str = "PL-002"


CODES = ReasonCodes()
