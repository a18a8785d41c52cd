"""Load per-camera observation records from disk and align them."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .align import align_multi, align_pair
from .ca_types import DEFAULT_PRECISION, AlignedFrame, Observation, validate_observation
from .services.observation_csv import read_observation

log = logging.getLogger(__name__)

RECORD_SUFFIX = ".csv"


class LoadError(RuntimeError):
    """A camera's record directory could not be loaded."""


def parse_timestamp(filename: str | Path) -> int:
    """Timestamp (ns) encoded as the decimal stem of a record or image filename."""
    stem = Path(filename).stem
    if not (stem.isascii() and stem.isdigit()):
        raise LoadError(f"Filename does not encode a timestamp: {filename}")
    return int(stem)


def list_record_paths(data_dir: str | Path, suffix: str = RECORD_SUFFIX) -> list[Path]:
    """
    Record files in data_dir ordered by numeric timestamp.

    Sorting numerically keeps "999.csv" ahead of "1000.csv" regardless of
    digit width. Two files naming the same timestamp are rejected.
    """
    d = Path(data_dir)
    if not d.is_dir():
        raise LoadError(f"Data dir [{d}] does not exist!")

    keyed: dict[int, Path] = {}
    for p in d.iterdir():
        if not p.is_file() or p.suffix.lower() != suffix:
            continue
        ts = parse_timestamp(p.name)
        if ts in keyed:
            raise LoadError(f"Duplicate timestamp {ts} in [{d}]: {keyed[ts].name}, {p.name}")
        keyed[ts] = p
    return [keyed[ts] for ts in sorted(keyed)]


def load_camera_data(
    data_dir: str | Path,
    camera_index: int = 0,
    *,
    detected_only: bool = False,
    precision=DEFAULT_PRECISION,
) -> list[Observation]:
    """
    Load one camera's records in ascending timestamp order.

    With detected_only, records from failed detections (no markers) are
    dropped. Any unreadable record aborts the whole load.
    """
    paths = list_record_paths(data_dir)

    observations: list[Observation] = []
    for p in paths:
        ts = parse_timestamp(p.name)
        try:
            obs = read_observation(p, camera_index, precision, timestamp=ts)
            validate_observation(obs)
        except (OSError, ValueError) as exc:
            raise LoadError(f"Failed to load record [{p}]: {exc}") from exc

        if obs.detected or not detected_only:
            observations.append(obs)

    log.debug(
        "camera %d: loaded %d of %d records from %s",
        camera_index, len(observations), len(paths), data_dir,
    )
    return observations


def load_streams(
    data_dirs: Sequence[str | Path],
    *,
    detected_only: bool = False,
    precision=DEFAULT_PRECISION,
) -> list[list[Observation]]:
    """Load every camera; the first failure aborts the batch."""
    streams: list[list[Observation]] = []
    for cam_idx, data_dir in enumerate(data_dirs):
        try:
            streams.append(
                load_camera_data(
                    data_dir, cam_idx, detected_only=detected_only, precision=precision
                )
            )
        except LoadError:
            log.error("Failed to load calib data [%s]!", data_dir)
            raise
    return streams


def load_stereo_data(
    cam0_dir: str | Path,
    cam1_dir: str | Path,
    *,
    keep_empty: bool = False,
    detected_only: bool = False,
    precision=DEFAULT_PRECISION,
) -> list[AlignedFrame]:
    streams = load_streams(
        [cam0_dir, cam1_dir], detected_only=detected_only, precision=precision
    )
    return align_pair(streams[0], streams[1], keep_empty=keep_empty)


def load_multicam_data(
    data_dirs: Sequence[str | Path],
    *,
    keep_empty: bool = False,
    detected_only: bool = False,
    precision=DEFAULT_PRECISION,
) -> list[AlignedFrame]:
    if len(data_dirs) < 2:
        raise ValueError(f"Need at least 2 camera data dirs, got {len(data_dirs)}")
    streams = load_streams(data_dirs, detected_only=detected_only, precision=precision)
    return align_multi(streams, keep_empty=keep_empty)
