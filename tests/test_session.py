import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from calib_align import run as run_mod
from calib_align.config import AlignConfig
from calib_align.launch import build_commands
from calib_align.loader import LoadError, load_camera_data
from calib_align.output import NullOutput
from calib_align.session import AlignSession


def _three_cameras(write_records, make_obs):
    return [
        str(write_records("cam0", [make_obs(0, t, [1, 2, 3]) for t in (10, 20, 30, 40)])),
        str(write_records("cam1", [make_obs(1, 10, [7])] + [make_obs(1, t, [2, 3]) for t in (20, 30, 40)])),
        str(write_records("cam2", [make_obs(2, t, [3, 4]) for t in (5, 10, 30, 40, 50)])),
    ]


def test_session_writes_aligned_frames(tmp_path, write_records, make_obs):
    cfg = AlignConfig(
        data_dirs=_three_cameras(write_records, make_obs),
        camera_names=["left", "right", "top"],
        output_root=str(tmp_path / "out"),
    )

    summary = AlignSession(cfg).run()

    assert summary.num_cameras == 3
    assert summary.observations == [4, 4, 5]
    assert summary.frames_aligned == 2
    session = Path(summary.session_path)
    assert Path(summary.log_path).exists()
    assert json.loads((session / "config.json").read_text())["camera_names"] == ["left", "right", "top"]

    lines = Path(summary.index_path).read_text().strip().splitlines()
    assert lines[0] == "timestamp,num_markers,marker_ids"
    assert lines[1:] == ["30,1,3", "40,1,3"]

    # Per-camera records can be loaded back as aligned input.
    right = load_camera_data(session / "right")
    assert [o.timestamp for o in right] == [30, 40]
    assert all(o.marker_ids == (3,) for o in right)


def test_session_keep_empty_policy(tmp_path, write_records, make_obs):
    dirs = _three_cameras(write_records, make_obs)
    cfg = AlignConfig(
        data_dirs=dirs,
        keep_empty_intersections=True,
        output_root=str(tmp_path / "out"),
    )
    summary = AlignSession(cfg, outputs=[NullOutput()]).run()
    # ts=10 is seen by every camera but shares no marker.
    assert summary.frames_aligned == 3


def test_session_load_failure_propagates(tmp_path, write_records, make_obs):
    good = str(write_records("cam0", [make_obs(0, 1, [1])]))
    cfg = AlignConfig(data_dirs=[good, str(tmp_path / "missing")], output_root=str(tmp_path / "out"))
    with pytest.raises(LoadError):
        AlignSession(cfg).run()


def test_session_needs_two_cameras(tmp_path):
    with pytest.raises(ValueError):
        AlignSession(AlignConfig(data_dirs=["a"], output_root=str(tmp_path))).run()


def test_run_main_with_overrides(tmp_path, write_records, make_obs, capsys):
    cam0 = str(write_records("cam0", [make_obs(0, t, [1, 2]) for t in (1, 2, 3)]))
    cam1 = str(write_records("cam1", [make_obs(1, 1, [2]), make_obs(1, 2, [3]), make_obs(1, 3, [1])]))
    cfg_path = tmp_path / "align.json"
    cfg_path.write_text(json.dumps({"data_dirs": [cam0, cam1]}), encoding="utf-8")
    out = tmp_path / "out"

    code = run_mod.main([
        "--config", str(cfg_path),
        "--out", str(out),
        "--method", "pairwise",
        "--keep-empty",
        "--no-save-observations",
    ])

    assert code == 0
    assert "frames_aligned=3" in capsys.readouterr().out
    session = next(out.iterdir())
    assert not (session / "cam0").exists()


def test_run_main_rejects_conflicting_policy_flags():
    with pytest.raises(SystemExit):
        run_mod.main(["--data-dirs", "a", "b", "--keep-empty", "--drop-empty"])


def test_launch_builds_one_command_per_camera(tmp_path):
    configs = []
    for i in range(2):
        p = tmp_path / f"cam{i}.yaml"
        p.write_text("camera_name: cam\n", encoding="utf-8")
        configs.append(str(p))

    cmds = build_commands(configs)

    assert len(cmds) == 2
    assert cmds[1][:3] == [sys.executable, "-m", "calib_align.preprocess"]
    assert cmds[1][-2:] == ["--camera-index", "1"]

    with pytest.raises(FileNotFoundError):
        build_commands([str(tmp_path / "missing.yaml")])


@patch("calib_align.services.storage.strftime", return_value="20240101_000000")
def test_sessions_in_same_second_do_not_share_output(_mock_strftime, tmp_path, write_records, make_obs):
    out = str(tmp_path / "out")
    first = AlignConfig(
        data_dirs=[
            str(write_records("a0", [make_obs(0, t, [1]) for t in (1, 2, 3)])),
            str(write_records("a1", [make_obs(1, t, [1]) for t in (1, 2, 3)])),
        ],
        output_root=out,
    )
    second = AlignConfig(
        data_dirs=[
            str(write_records("b0", [make_obs(0, 5, [1])])),
            str(write_records("b1", [make_obs(1, 5, [1])])),
        ],
        output_root=out,
    )

    s1 = AlignSession(first).run()
    s2 = AlignSession(second).run()

    assert s1.session_path != s2.session_path
    assert Path(s2.session_path).name == "session_20240101_000000_1"
    assert [o.timestamp for o in load_camera_data(Path(s1.session_path) / "cam0")] == [1, 2, 3]
    assert [o.timestamp for o in load_camera_data(Path(s2.session_path) / "cam0")] == [5]
