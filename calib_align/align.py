"""Timestamp alignment of per-camera observation streams."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from .ca_types import AlignedFrame, Observation, validate_stream
from .intersect import intersect_observations

log = logging.getLogger(__name__)


def _make_frame(group: Sequence[Observation], keep_empty: bool) -> AlignedFrame | None:
    common = intersect_observations(group)
    if not common[0].marker_ids and not keep_empty:
        log.debug("ts=%d: no common markers, frame dropped", group[0].timestamp)
        return None
    return AlignedFrame(group[0].timestamp, tuple(common))


def align_pair(
    seq_a: Sequence[Observation],
    seq_b: Sequence[Observation],
    *,
    keep_empty: bool,
) -> list[AlignedFrame]:
    """
    Merge-join two camera streams on exact timestamp.

    Each matched pair is reduced to its common markers. Pairs with no common
    marker are emitted only when keep_empty is True.
    """
    validate_stream(seq_a)
    validate_stream(seq_b)

    frames: list[AlignedFrame] = []
    i = j = 0
    while i < len(seq_a) and j < len(seq_b):
        ts_a = seq_a[i].timestamp
        ts_b = seq_b[j].timestamp
        if ts_a < ts_b:
            i += 1
            continue
        if ts_b < ts_a:
            j += 1
            continue

        frame = _make_frame((seq_a[i], seq_b[j]), keep_empty)
        i += 1
        j += 1
        if frame is not None:
            frames.append(frame)

    log.debug("pairwise: %d frames from %d x %d observations", len(frames), len(seq_a), len(seq_b))
    return frames


def extract_common(seq_a: Sequence[Observation], seq_b: Sequence[Observation]) -> list[AlignedFrame]:
    """Pairwise alignment that also keeps frames whose marker sets are disjoint."""
    return align_pair(seq_a, seq_b, keep_empty=True)


def feasible_timestamps(streams: Sequence[Sequence[Observation]]) -> list[int]:
    """Ascending timestamps that occur somewhere in every stream."""
    counts: Counter[int] = Counter()
    for stream in streams:
        counts.update({obs.timestamp for obs in stream})
    n = len(streams)
    return sorted(ts for ts, c in counts.items() if c == n)


def align_multi(
    streams: Sequence[Sequence[Observation]],
    *,
    keep_empty: bool,
) -> list[AlignedFrame]:
    """
    Align N >= 2 camera streams on exact timestamp.

    Candidates are the timestamps present in every stream. For each
    candidate, streams whose cursor is behind are stepped forward until all
    cursors sit on the candidate, at which point the group is intersected and
    every cursor advances. Alignment stops as soon as any stream runs out.
    """
    n = len(streams)
    if n < 2:
        raise ValueError(f"Multiway alignment needs at least 2 streams, got {n}")
    for stream in streams:
        validate_stream(stream)

    candidates = feasible_timestamps(streams)
    lengths = [len(s) for s in streams]
    cursors = [0] * n
    frames: list[AlignedFrame] = []

    for ts in candidates:
        if any(cursors[k] >= lengths[k] for k in range(n)):
            log.debug("stream exhausted before ts=%d, stopping", ts)
            return frames

        while True:
            ready = [streams[k][cursors[k]].timestamp == ts for k in range(n)]
            if all(ready):
                frame = _make_frame([streams[k][cursors[k]] for k in range(n)], keep_empty)
                for k in range(n):
                    cursors[k] += 1
                if frame is not None:
                    frames.append(frame)
                break

            advanced = False
            for k in range(n):
                if streams[k][cursors[k]].timestamp < ts:
                    cursors[k] += 1
                    advanced = True
                    if cursors[k] >= lengths[k]:
                        log.debug("camera %d exhausted while waiting for ts=%d", k, ts)
                        return frames

            if not advanced:
                # Every stream is at or past ts; cannot happen with ordered input.
                log.debug("ts=%d unreachable from current cursors, skipped", ts)
                break

    log.debug("multiway: %d frames from %d streams", len(frames), n)
    return frames


def align_streams(
    streams: Sequence[Sequence[Observation]],
    *,
    keep_empty: bool,
    method: str = "auto",
) -> list[AlignedFrame]:
    """Dispatch to the pairwise or multiway aligner."""
    method = (method or "auto").strip().lower()
    if method == "auto":
        method = "pairwise" if len(streams) == 2 else "multiway"
    if method == "pairwise":
        if len(streams) != 2:
            raise ValueError(f"Pairwise alignment needs exactly 2 streams, got {len(streams)}")
        return align_pair(streams[0], streams[1], keep_empty=keep_empty)
    if method == "multiway":
        return align_multi(streams, keep_empty=keep_empty)
    raise ValueError(f"Unknown alignment method: {method!r}")


def split_by_camera(frames: Sequence[AlignedFrame]) -> list[list[Observation]]:
    """Co-indexed per-camera sequences, one list per stream."""
    if not frames:
        return []
    n = frames[0].num_cameras
    out: list[list[Observation]] = [[] for _ in range(n)]
    for frame in frames:
        if frame.num_cameras != n:
            raise ValueError(f"Inconsistent camera count in frames ({n} vs {frame.num_cameras})")
        for k, obs in enumerate(frame.observations):
            out[k].append(obs)
    return out
