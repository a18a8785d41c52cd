import numpy as np
import pytest

from calib_align.ca_types import Observation
from calib_align.loader import (
    LoadError,
    list_record_paths,
    load_camera_data,
    load_multicam_data,
    load_stereo_data,
    load_streams,
    parse_timestamp,
)


def test_parse_timestamp():
    assert parse_timestamp("1403715273262142976.csv") == 1403715273262142976
    assert parse_timestamp("/data/cam0/0042.png") == 42
    with pytest.raises(LoadError):
        parse_timestamp("frame_001.csv")


def test_records_sorted_numerically_not_lexicographically(tmp_path):
    d = tmp_path / "cam0"
    d.mkdir()
    for name in ["1000.csv", "999.csv", "20.csv", "3.csv"]:
        (d / name).write_text("")
    (d / "notes.txt").write_text("ignored")

    names = [p.name for p in list_record_paths(d)]

    assert names == ["3.csv", "20.csv", "999.csv", "1000.csv"]


def test_duplicate_numeric_timestamp_rejected(tmp_path):
    d = tmp_path / "cam0"
    d.mkdir()
    (d / "7.csv").write_text("")
    (d / "007.csv").write_text("")
    with pytest.raises(LoadError, match="Duplicate"):
        list_record_paths(d)


def test_missing_dir_is_load_error(tmp_path):
    with pytest.raises(LoadError, match="does not exist"):
        load_camera_data(tmp_path / "nope")


def test_load_camera_data_roundtrip(write_records, make_obs):
    written = [make_obs(0, ts, [1, 3]) for ts in (999, 1000, 1001)]
    d = write_records("cam0", written)

    loaded = load_camera_data(d, camera_index=2)

    assert [o.timestamp for o in loaded] == [999, 1000, 1001]
    for obs, src in zip(loaded, written):
        assert obs.camera_index == 2
        assert obs.marker_ids == (1, 3)
        np.testing.assert_array_equal(obs.keypoints, src.keypoints)
        np.testing.assert_array_equal(obs.object_points, src.object_points)


def test_detected_only_drops_failed_detections(write_records, make_obs):
    d = write_records("cam0", [
        make_obs(0, 1, [1]),
        Observation.empty(0, 2),
        make_obs(0, 3, [2]),
    ])

    assert [o.timestamp for o in load_camera_data(d)] == [1, 2, 3]
    assert [o.timestamp for o in load_camera_data(d, detected_only=True)] == [1, 3]


def test_precision_is_applied(write_records, make_obs):
    d = write_records("cam0", [make_obs(0, 1, [1])])
    obs = load_camera_data(d, precision="float32")[0]
    assert obs.keypoints.dtype == np.float32
    assert obs.object_points.dtype == np.float32


def test_corrupt_record_aborts_load(write_records, make_obs):
    d = write_records("cam0", [make_obs(0, 1, [1]), make_obs(0, 2, [1])])
    (d / "3.csv").write_text("not,a,record\n")

    with pytest.raises(LoadError, match="3.csv"):
        load_camera_data(d)


def test_record_with_wrong_timestamp_rejected(write_records, make_obs):
    d = write_records("cam0", [make_obs(0, 5, [1])])
    (d / "5.csv").rename(d / "6.csv")
    with pytest.raises(LoadError):
        load_camera_data(d)


def test_load_streams_fails_fast(write_records, make_obs, tmp_path):
    good = write_records("cam0", [make_obs(0, 1, [1])])
    with pytest.raises(LoadError):
        load_streams([good, tmp_path / "missing"])


def test_load_stereo_data(write_records, make_obs):
    cam0 = write_records("cam0", [make_obs(0, t, [1, 2]) for t in (1, 2, 3)])
    cam1 = write_records("cam1", [make_obs(1, 1, [2, 3]), make_obs(1, 2, [5]), make_obs(1, 4, [1])])

    dropped = load_stereo_data(cam0, cam1)
    kept = load_stereo_data(cam0, cam1, keep_empty=True)

    assert [f.timestamp for f in dropped] == [1]
    assert dropped[0].marker_ids == (2,)
    assert [f.timestamp for f in kept] == [1, 2]


def test_load_multicam_data(write_records, make_obs):
    dirs = [
        write_records("cam0", [make_obs(0, t, [1, 2, 3]) for t in (10, 20, 30, 40)]),
        write_records("cam1", [make_obs(1, t, [2, 3]) for t in (20, 30, 40)]),
        write_records("cam2", [make_obs(2, t, [3, 4]) for t in (5, 30, 40, 50)]),
    ]

    frames = load_multicam_data(dirs)

    assert [f.timestamp for f in frames] == [30, 40]
    for frame in frames:
        assert [o.camera_index for o in frame.observations] == [0, 1, 2]
        assert frame.marker_ids == (3,)


def test_load_multicam_needs_two_dirs(write_records, make_obs):
    d = write_records("cam0", [make_obs(0, 1, [1])])
    with pytest.raises(ValueError):
        load_multicam_data([d])
