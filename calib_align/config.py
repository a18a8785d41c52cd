from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .ca_types import DEFAULT_PRECISION, resolve_dtype

ALIGN_METHODS = ("auto", "pairwise", "multiway")


@dataclass
class AlignConfig:
    """Configuration for one alignment run over N camera record directories."""

    data_dirs: list[str] = field(default_factory=list)
    camera_names: Optional[list[str]] = None
    keep_empty_intersections: bool = False
    detected_only: bool = False
    method: str = "auto"  # "auto", "pairwise", "multiway"
    precision: str = DEFAULT_PRECISION  # "float32" or "float64"
    output_root: str = "data/aligned"
    session_name: str = "session"
    save_observations: bool = True

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "AlignConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self

    def camera_name(self, index: int) -> str:
        if self.camera_names and index < len(self.camera_names):
            return self.camera_names[index]
        return f"cam{index}"


@dataclass
class PreprocessConfig:
    """Configuration for marker detection over one camera's image directory."""

    camera_name: str = "cam0"
    image_dir: str = "data/images/cam0"
    output_dir: str = "data/records/cam0"
    target_path: str = "config/target.yaml"
    target_prefix: str = ""
    aruco_dict: str = "apriltag_36h11"
    precision: str = DEFAULT_PRECISION

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "PreprocessConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _normalize_str_list(value: Any, key: str) -> Optional[list[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ValueError(f"{key} must be a string or a list of strings")


def load_mapping(path: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML file whose root is a mapping."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        with p.open("r", encoding="utf-8") as fp:
            raw = yaml.safe_load(fp) or {}
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")
    return raw


def load_config(path: str | Path) -> AlignConfig:
    raw = load_mapping(path)

    cfg = AlignConfig()
    cfg.data_dirs = _normalize_str_list(raw.get("data_dirs", cfg.data_dirs), "data_dirs") or []
    cfg.camera_names = _normalize_str_list(raw.get("camera_names", cfg.camera_names), "camera_names")
    cfg.keep_empty_intersections = bool(
        raw.get("keep_empty_intersections", cfg.keep_empty_intersections)
    )
    cfg.detected_only = bool(raw.get("detected_only", cfg.detected_only))
    cfg.method = str(raw.get("method", cfg.method)).lower()
    if cfg.method not in ALIGN_METHODS:
        raise ValueError(f"method must be one of {ALIGN_METHODS}, got {cfg.method!r}")
    cfg.precision = str(raw.get("precision", cfg.precision))
    resolve_dtype(cfg.precision)
    cfg.output_root = str(raw.get("output_root", cfg.output_root))
    cfg.session_name = str(raw.get("session_name", cfg.session_name))
    cfg.save_observations = bool(raw.get("save_observations", cfg.save_observations))

    if cfg.camera_names is not None and len(cfg.camera_names) != len(cfg.data_dirs):
        raise ValueError("camera_names must have one entry per data_dirs entry")
    return cfg


def load_preprocess_config(path: str | Path) -> PreprocessConfig:
    raw = load_mapping(path)

    cfg = PreprocessConfig()
    cfg.camera_name = str(raw.get("camera_name", cfg.camera_name))
    cfg.image_dir = str(raw.get("image_dir", cfg.image_dir))
    cfg.output_dir = str(raw.get("output_dir", cfg.output_dir))
    cfg.target_path = str(raw.get("target_path", cfg.target_path))
    cfg.target_prefix = str(raw.get("target_prefix", cfg.target_prefix))
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.precision = str(raw.get("precision", cfg.precision))
    resolve_dtype(cfg.precision)
    return cfg
