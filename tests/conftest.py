import numpy as np
import pytest

from calib_align.ca_types import Observation
from calib_align.services.observation_csv import record_name, write_observation


def build_observation(camera_index, timestamp, marker_ids, dtype=np.float64):
    """Observation whose corner values encode (camera, marker, corner) for easy checking."""
    ids = tuple(marker_ids)
    kps = []
    pts = []
    for mid in ids:
        for c in range(4):
            kps.append([100.0 * mid + c, float(camera_index)])
            pts.append([float(mid), float(c), 0.0])
    return Observation(
        camera_index,
        timestamp,
        ids,
        np.asarray(kps, dtype=dtype).reshape(-1, 2),
        np.asarray(pts, dtype=dtype).reshape(-1, 3),
    )


def build_stream(camera_index, timestamps, marker_ids, dtype=np.float64):
    return [build_observation(camera_index, ts, marker_ids, dtype) for ts in timestamps]


@pytest.fixture
def make_obs():
    return build_observation


@pytest.fixture
def make_stream():
    return build_stream


@pytest.fixture
def write_records(tmp_path):
    """Write a camera's observations as a record directory and return its path."""

    def _write(name, observations):
        d = tmp_path / name
        d.mkdir(parents=True, exist_ok=True)
        for obs in observations:
            write_observation(d / record_name(obs.timestamp), obs)
        return d

    return _write
