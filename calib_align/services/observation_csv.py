import csv
from pathlib import Path

import numpy as np

from ..ca_types import CORNERS_PER_MARKER, DEFAULT_PRECISION, Observation, resolve_dtype

# One row per marker corner; a header-only file is a failed detection.
HEADER = [
    "timestamp",
    "marker_id", "corner_index",
    "kp_x", "kp_y",
    "p_x", "p_y", "p_z",
]


def record_name(timestamp: int) -> str:
    return f"{int(timestamp)}.csv"


def _rows(obs: Observation):
    for i, mid in enumerate(obs.marker_ids):
        for c in range(CORNERS_PER_MARKER):
            r = CORNERS_PER_MARKER * i + c
            kp = obs.keypoints[r]
            p = obs.object_points[r]
            yield [
                obs.timestamp,
                mid, c,
                repr(float(kp[0])), repr(float(kp[1])),
                repr(float(p[0])), repr(float(p[1])), repr(float(p[2])),
            ]


def write_observation(path, obs: Observation) -> str:
    """Write obs to path, replacing any existing file."""
    p = Path(path)
    with open(p, "w", newline="") as fh:
        w = csv.writer(fh)
        w.writerow(HEADER)
        for row in _rows(obs):
            w.writerow(row)
    return str(p)


def read_observation(
    path,
    camera_index: int = 0,
    precision=DEFAULT_PRECISION,
    timestamp: int | None = None,
) -> Observation:
    """
    Parse one observation record.

    timestamp, when given, is authoritative (it comes from the filename) and
    every row must agree with it. Raises ValueError on malformed content.
    """
    p = Path(path)
    dtype = resolve_dtype(precision)
    with open(p, "r", newline="") as fh:
        rows = list(csv.reader(fh))

    if not rows or [h.strip() for h in rows[0]] != HEADER:
        raise ValueError(f"{p}: missing or unexpected header")

    ids: list[int] = []
    kps: list[list[float]] = []
    pts: list[list[float]] = []
    ts = timestamp
    for lineno, row in enumerate(rows[1:], start=2):
        if not row:
            continue
        if len(row) != len(HEADER):
            raise ValueError(f"{p}:{lineno}: expected {len(HEADER)} columns, got {len(row)}")
        try:
            row_ts = int(row[0])
            mid = int(row[1])
            corner = int(row[2])
            kp = [float(row[3]), float(row[4])]
            pt = [float(row[5]), float(row[6]), float(row[7])]
        except ValueError as exc:
            raise ValueError(f"{p}:{lineno}: {exc}") from exc

        if ts is None:
            ts = row_ts
        elif row_ts != ts:
            raise ValueError(f"{p}:{lineno}: timestamp {row_ts} does not match {ts}")

        expected_corner = len(kps) % CORNERS_PER_MARKER
        if corner != expected_corner:
            raise ValueError(f"{p}:{lineno}: corner index {corner}, expected {expected_corner}")
        if expected_corner == 0:
            ids.append(mid)
        elif mid != ids[-1]:
            raise ValueError(f"{p}:{lineno}: marker {ids[-1]} has fewer than {CORNERS_PER_MARKER} corners")
        kps.append(kp)
        pts.append(pt)

    if len(kps) % CORNERS_PER_MARKER != 0:
        raise ValueError(f"{p}: truncated marker {ids[-1]}")
    if ts is None:
        raise ValueError(f"{p}: empty record and no timestamp given")

    return Observation(
        camera_index,
        int(ts),
        tuple(ids),
        np.asarray(kps, dtype=dtype).reshape(-1, 2),
        np.asarray(pts, dtype=dtype).reshape(-1, 3),
    )
