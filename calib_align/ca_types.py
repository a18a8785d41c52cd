from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

CORNERS_PER_MARKER = 4
DEFAULT_PRECISION = "float64"

_PRECISIONS = {
    "float32": np.float32,
    "float64": np.float64,
}


def resolve_dtype(precision: str | np.dtype | type = DEFAULT_PRECISION) -> np.dtype:
    """Map a precision name ("float32" / "float64") to a numpy dtype."""
    if isinstance(precision, str):
        key = precision.strip().lower()
        if key not in _PRECISIONS:
            raise ValueError(
                f"Unsupported precision {precision!r}; expected one of {sorted(_PRECISIONS)}"
            )
        return np.dtype(_PRECISIONS[key])
    dtype = np.dtype(precision)
    if dtype not in {np.dtype(t) for t in _PRECISIONS.values()}:
        raise ValueError(f"Unsupported precision dtype: {dtype}")
    return dtype


@dataclass(frozen=True, eq=False)
class Observation:
    """One camera's marker detections at one timestamp.

    keypoints[4*i:4*i+4] and object_points[4*i:4*i+4] belong to marker_ids[i].
    """

    camera_index: int
    timestamp: int  # ns
    marker_ids: tuple[int, ...]
    keypoints: np.ndarray  # (4n, 2) measured image points
    object_points: np.ndarray  # (4n, 3) reference target points

    @property
    def detected(self) -> bool:
        return len(self.marker_ids) > 0

    @property
    def num_markers(self) -> int:
        return len(self.marker_ids)

    @property
    def dtype(self) -> np.dtype:
        return self.keypoints.dtype

    def corners_of(self, marker_id: int) -> tuple[np.ndarray, np.ndarray]:
        i = self.marker_ids.index(marker_id)
        sl = slice(CORNERS_PER_MARKER * i, CORNERS_PER_MARKER * (i + 1))
        return self.keypoints[sl], self.object_points[sl]

    @classmethod
    def empty(cls, camera_index: int, timestamp: int, precision=DEFAULT_PRECISION) -> "Observation":
        dtype = resolve_dtype(precision)
        return cls(
            camera_index,
            int(timestamp),
            (),
            np.zeros((0, 2), dtype=dtype),
            np.zeros((0, 3), dtype=dtype),
        )


@dataclass(frozen=True, eq=False)
class AlignedFrame:
    """Observations from every stream at one timestamp, reduced to a common marker set."""

    timestamp: int
    observations: tuple[Observation, ...]

    @property
    def marker_ids(self) -> tuple[int, ...]:
        if not self.observations:
            return ()
        return self.observations[0].marker_ids

    @property
    def num_cameras(self) -> int:
        return len(self.observations)

    @property
    def is_empty(self) -> bool:
        return len(self.marker_ids) == 0


def validate_observation(obs: Observation) -> None:
    """Raise ValueError if obs breaks the record invariants."""
    ids = obs.marker_ids
    for i, mid in enumerate(ids):
        if mid < 0:
            raise ValueError(
                f"camera {obs.camera_index} ts={obs.timestamp}: negative marker id {mid}"
            )
        if i > 0 and ids[i - 1] >= mid:
            raise ValueError(
                f"camera {obs.camera_index} ts={obs.timestamp}: marker ids not strictly ascending {list(ids)}"
            )

    expected = CORNERS_PER_MARKER * len(ids)
    kp = obs.keypoints
    op = obs.object_points
    if kp.ndim != 2 or kp.shape != (expected, 2):
        raise ValueError(
            f"camera {obs.camera_index} ts={obs.timestamp}: keypoints shape {kp.shape}, expected ({expected}, 2)"
        )
    if op.ndim != 2 or op.shape != (expected, 3):
        raise ValueError(
            f"camera {obs.camera_index} ts={obs.timestamp}: object_points shape {op.shape}, expected ({expected}, 3)"
        )
    if kp.dtype != op.dtype:
        raise ValueError(
            f"camera {obs.camera_index} ts={obs.timestamp}: keypoint dtype {kp.dtype} != object point dtype {op.dtype}"
        )


def validate_stream(stream: Sequence[Observation]) -> None:
    """Validate every record and check timestamps strictly increase."""
    prev = None
    for obs in stream:
        validate_observation(obs)
        if prev is not None and obs.timestamp <= prev:
            raise ValueError(
                f"camera {obs.camera_index}: timestamps not strictly increasing ({prev} then {obs.timestamp})"
            )
        prev = obs.timestamp
