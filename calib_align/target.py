"""Calibration target (AprilGrid-style tag board) description."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any

import numpy as np

from .ca_types import DEFAULT_PRECISION, resolve_dtype
from .config import load_mapping

_TARGET_FIELDS = ("target_type", "tag_rows", "tag_cols", "tag_size", "tag_spacing")


@dataclass
class CalibTarget:
    target_type: str = "aprilgrid"
    tag_rows: int = 6
    tag_cols: int = 6
    tag_size: float = 0.088  # m
    tag_spacing: float = 0.3  # gap as a fraction of tag_size

    @property
    def num_tags(self) -> int:
        return self.tag_rows * self.tag_cols

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def object_points(self, tag_id: int, precision=DEFAULT_PRECISION) -> np.ndarray:
        """
        Corners of one tag in the target frame, shape (4, 3), z = 0.

        Tags are numbered row-major from the board origin. Corner order is
        the detector's: top-left, top-right, bottom-right, bottom-left.

        Args:
            tag_id: Tag number on the board
            precision: Point dtype name or numpy dtype

        Returns:
            (4, 3) array of corner positions in metres
        """
        if tag_id < 0 or tag_id >= self.num_tags:
            raise ValueError(f"Tag id {tag_id} outside target with {self.num_tags} tags")
        row = tag_id // self.tag_cols
        col = tag_id % self.tag_cols
        pitch = self.tag_size * (1.0 + self.tag_spacing)
        x = col * pitch
        y = row * pitch
        s = self.tag_size
        pts = np.array(
            [
                [x, y + s, 0.0],
                [x + s, y + s, 0.0],
                [x + s, y, 0.0],
                [x, y, 0.0],
            ],
            dtype=resolve_dtype(precision),
        )
        return pts

    def __str__(self) -> str:
        return "\n".join(f"{k}: {getattr(self, k)}" for k in _TARGET_FIELDS)


def load_target(path: str | Path, prefix: str = "") -> CalibTarget:
    """Load a target from YAML/JSON; prefix selects a nested section such as "calib_target"."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Target file not found: {p}")

    raw: Any = load_mapping(p)
    for part in [s for s in prefix.split(".") if s]:
        if not isinstance(raw, dict) or part not in raw:
            raise ValueError(f"Section {prefix!r} missing in target file {p}")
        raw = raw[part]
    if not isinstance(raw, dict):
        raise ValueError(f"Section {prefix!r} in {p} is not a mapping")

    missing = [k for k in _TARGET_FIELDS if k not in raw]
    if missing:
        raise ValueError(f"Target file {p} missing keys: {', '.join(missing)}")

    target = CalibTarget(
        target_type=str(raw["target_type"]),
        tag_rows=int(raw["tag_rows"]),
        tag_cols=int(raw["tag_cols"]),
        tag_size=float(raw["tag_size"]),
        tag_spacing=float(raw["tag_spacing"]),
    )
    if target.tag_rows <= 0 or target.tag_cols <= 0 or target.tag_size <= 0:
        raise ValueError(f"Invalid target geometry in {p}: {target.as_dict()}")
    return target
