"""Reduce a group of same-timestamp observations to their common markers."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .ca_types import CORNERS_PER_MARKER, Observation, validate_observation


def _common_positions(id_lists: Sequence[Sequence[int]]) -> list[list[int]]:
    """
    k-way sorted intersection.

    Returns, for each input list, the positions of the common ids in it.
    Every list must be strictly ascending.
    """
    k = len(id_lists)
    cursors = [0] * k
    positions: list[list[int]] = [[] for _ in range(k)]

    while all(cursors[j] < len(id_lists[j]) for j in range(k)):
        current = [id_lists[j][cursors[j]] for j in range(k)]
        lo = min(current)
        if lo == max(current):
            for j in range(k):
                positions[j].append(cursors[j])
                cursors[j] += 1
            continue
        # Only the cursors sitting on the minimum can move.
        for j in range(k):
            if current[j] == lo:
                cursors[j] += 1

    return positions


def common_marker_ids(id_lists: Sequence[Sequence[int]]) -> tuple[int, ...]:
    """Ascending ids present in every list."""
    if not id_lists:
        return ()
    positions = _common_positions(id_lists)
    return tuple(id_lists[0][p] for p in positions[0])


def _corner_rows(marker_positions: list[int]) -> np.ndarray:
    if not marker_positions:
        return np.zeros(0, dtype=np.intp)
    base = np.asarray(marker_positions, dtype=np.intp) * CORNERS_PER_MARKER
    return (base[:, None] + np.arange(CORNERS_PER_MARKER, dtype=np.intp)).reshape(-1)


def intersect_observations(observations: Sequence[Observation]) -> list[Observation]:
    """
    Restrict every observation to the markers all of them share.

    The inputs must share one timestamp and one point dtype. New
    Observations are returned in input order; the inputs are left untouched.
    Whether an empty result is kept is up to the caller.
    """
    if len(observations) < 2:
        raise ValueError(f"Need at least 2 observations to intersect, got {len(observations)}")

    ts = observations[0].timestamp
    dtype = observations[0].dtype
    for obs in observations:
        validate_observation(obs)
        if obs.timestamp != ts:
            raise ValueError(
                f"Cannot intersect observations with different timestamps ({ts} vs {obs.timestamp})"
            )
        if obs.dtype != dtype:
            raise ValueError(f"Mixed point precision in group ({dtype} vs {obs.dtype})")

    positions = _common_positions([obs.marker_ids for obs in observations])

    out: list[Observation] = []
    for obs, pos in zip(observations, positions):
        rows = _corner_rows(pos)
        out.append(
            Observation(
                obs.camera_index,
                obs.timestamp,
                tuple(obs.marker_ids[p] for p in pos),
                obs.keypoints[rows].copy(),
                obs.object_points[rows].copy(),
            )
        )
    return out
