#!/usr/bin/env python3
"""Command-line entry point.

Usage:
    agegate consent --state state.json
    agegate analyze photo.jpg --model swin_face_classifier.onnx --state state.json
    agegate status --state state.json

``analyze`` prints the result as JSON. Exit codes: 0 success, 1 analysis
failed, 2 consent missing.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .errors import AgeGateError, ConsentMissing
from .gate import AgeGate, PipelineContext
from .inference.classifier import OnnxClassifier
from .pipeline.decode import decode_image_file
from .pipeline.face import AbsentDetector, MediaPipeDetector
from .policy.controller import PolicyController, record_consent
from .policy.sink import LoggingPolicySink
from .policy.store import JsonFileStore

logger = logging.getLogger(__name__)

DEFAULT_STATE = Path.home() / ".agegate" / "state.json"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def cmd_consent(args: argparse.Namespace) -> int:
    record = record_consent(JsonFileStore(args.state))
    print(json.dumps({"consentGiven": record.given, "timestamp": record.timestamp}))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.state)
    controller = PolicyController(store, LoggingPolicySink())
    status = {
        "consentGiven": controller.consent().given,
        "isMinor": controller.last_is_minor,
        "policyState": controller.state.value,
        "verificationAllowedUntil": controller.allowed_until(),
        "verificationActive": controller.verification_active(time.time()),
    }
    print(json.dumps(status, indent=2))
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if args.no_face_detection:
        detector = AbsentDetector()
    else:
        detector = MediaPipeDetector(config.face)

    context = PipelineContext(
        classifier=OnnxClassifier(args.model),
        store=JsonFileStore(args.state),
        sink=LoggingPolicySink(),
        detector=detector,
        config=config,
    )
    gate = AgeGate(context)

    try:
        frame = decode_image_file(args.image, config.decode)
        result = asyncio.run(gate.analyze(frame))
    except ConsentMissing as e:
        logger.error("%s. Run 'agegate consent' first.", e)
        return 2
    except AgeGateError as e:
        logger.error("Analysis failed: %s", e)
        print(json.dumps({"error": str(e), "reason_code": e.reason_code}))
        return 1
    finally:
        if isinstance(detector, MediaPipeDetector):
            detector.close()

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agegate", description="Face age gate")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_consent = sub.add_parser("consent", help="Record user consent")
    p_consent.add_argument("--state", type=Path, default=DEFAULT_STATE)
    p_consent.set_defaults(func=cmd_consent)

    p_status = sub.add_parser("status", help="Show stored verdict and verification window")
    p_status.add_argument("--state", type=Path, default=DEFAULT_STATE)
    p_status.set_defaults(func=cmd_status)

    p_analyze = sub.add_parser("analyze", help="Analyze a still image")
    p_analyze.add_argument("image", type=Path)
    p_analyze.add_argument("--model", type=Path, required=True, help="ONNX classifier")
    p_analyze.add_argument("--state", type=Path, default=DEFAULT_STATE)
    p_analyze.add_argument("--config", type=Path, default=None, help="YAML config overrides")
    p_analyze.add_argument("--no-face-detection", action="store_true",
                           help="Analyze the full frame without face cropping")
    p_analyze.set_defaults(func=cmd_analyze)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
