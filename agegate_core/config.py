"""Configuration loading utilities.

Every component owns a frozen dataclass config with production defaults;
``AgeGateConfig`` groups them and can be overridden section by section from
a YAML file.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .capture import CaptureConfig
from .decision.aggregate import AggregationConfig
from .decision.verdict import VerdictConfig
from .inference.orchestrator import EnsembleConfig
from .pipeline.decode import DecodeConfig
from .pipeline.face import FaceDetectorConfig
from .pipeline.preprocess import PreprocessConfig
from .pipeline.region import RegionConfig
from .policy.controller import PolicyConfig


@dataclass(frozen=True)
class AgeGateConfig:
    region: RegionConfig = field(default_factory=RegionConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    ensemble: EnsembleConfig = field(default_factory=EnsembleConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    verdict: VerdictConfig = field(default_factory=VerdictConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    face: FaceDetectorConfig = field(default_factory=FaceDetectorConfig)
    decode: DecodeConfig = field(default_factory=DecodeConfig)


_SECTIONS = {f.name: f for f in dataclasses.fields(AgeGateConfig)}


def _build_section(name: str, values: Optional[Dict[str, Any]]):
    cls = _SECTIONS[name].default_factory
    if values is None:
        return cls()
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {sorted(unknown)}")
    kwargs = {k: tuple(v) if isinstance(v, list) else v for k, v in values.items()}
    return cls(**kwargs)


def config_from_dict(data: Optional[Dict[str, Any]]) -> AgeGateConfig:
    data = data or {}
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")
    return AgeGateConfig(**{name: _build_section(name, data.get(name)) for name in _SECTIONS})


def config_to_dict(config: AgeGateConfig) -> Dict[str, Any]:
    def _plain(value):
        if isinstance(value, (tuple, list)):
            return [_plain(v) for v in value]
        if isinstance(value, dict):
            return {k: _plain(v) for k, v in value.items()}
        return value

    return _plain(dataclasses.asdict(config))


def load_config(config_path: Union[str, Path, None] = None) -> AgeGateConfig:
    """Load configuration from YAML. ``None`` returns the built-in defaults.

    Args:
        config_path: Path to a YAML file with optional sections
            (region, preprocess, ensemble, aggregation, verdict, policy,
            capture, face, decode).

    Returns:
        AgeGateConfig
    """
    if config_path is None:
        return AgeGateConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f)

    return config_from_dict(data)


def save_config(config: AgeGateConfig, output_path: Union[str, Path]) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.safe_dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)
