"""Detect target tags in one camera's images and write observation records."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

import cv2
import numpy as np

from .ca_types import Observation, resolve_dtype, validate_observation
from .config import PreprocessConfig, load_preprocess_config
from .loader import LoadError, parse_timestamp
from .logging_utils import setup_logger
from .services.observation_csv import read_observation, record_name, write_observation
from .target import CalibTarget, load_target

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff"}

DetectorState = Tuple[Any, Any, Any]


def get_dict(name: str):
    """
    Resolve an ArUco or AprilTag dictionary by short name.
    Raises ValueError for an unrecognized name.
    """
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    table = {
        "4x4_50": cv2.aruco.DICT_4X4_50,
        "4x4_100": cv2.aruco.DICT_4X4_100,
        "5x5_50": cv2.aruco.DICT_5X5_50,
        "5x5_100": cv2.aruco.DICT_5X5_100,
        "6x6_50": cv2.aruco.DICT_6X6_50,
        "6x6_100": cv2.aruco.DICT_6X6_100,
        "apriltag_16h5": cv2.aruco.DICT_APRILTAG_16h5,
        "apriltag_25h9": cv2.aruco.DICT_APRILTAG_25h9,
        "apriltag_36h10": cv2.aruco.DICT_APRILTAG_36h10,
        "apriltag_36h11": cv2.aruco.DICT_APRILTAG_36h11,
    }
    if key not in table:
        raise ValueError(f"Unknown ArUco dictionary: {name!r}, expected one of {sorted(table)}")
    return cv2.aruco.getPredefinedDictionary(table[key])


def build_detector(dict_name: str) -> DetectorState:
    dictionary = get_dict(dict_name)
    params = cv2.aruco.DetectorParameters()
    detector = cv2.aruco.ArucoDetector(dictionary, params)
    return dictionary, params, detector


def detect_observation(
    image,
    detector_state: DetectorState,
    target: CalibTarget,
    camera_index: int,
    timestamp: int,
    precision="float64",
) -> Observation:
    """Run tag detection on one image and pair each corner with its target point."""
    dtype = resolve_dtype(precision)
    if image is None:
        return Observation.empty(camera_index, timestamp, dtype)

    _dictionary, _params, detector = detector_state
    corners, ids, _rej = detector.detectMarkers(image)
    if ids is None or len(ids) == 0:
        return Observation.empty(camera_index, timestamp, dtype)

    by_id: dict[int, Optional[np.ndarray]] = {}
    for i, mid in enumerate(ids.flatten()):
        mid = int(mid)
        # Tags outside the board, or seen twice, cannot be matched to one target point.
        if mid < 0 or mid >= target.num_tags or mid in by_id:
            by_id[mid] = None
            continue
        by_id[mid] = np.asarray(corners[i], dtype=dtype).reshape(4, 2)

    marker_ids = tuple(sorted(m for m, c in by_id.items() if c is not None))
    if not marker_ids:
        return Observation.empty(camera_index, timestamp, dtype)

    keypoints = np.concatenate([by_id[m] for m in marker_ids], axis=0)
    object_points = np.concatenate([target.object_points(m, dtype) for m in marker_ids], axis=0)
    return Observation(camera_index, timestamp, marker_ids, keypoints, object_points)


def list_image_paths(image_dir: str | Path) -> list[Path]:
    d = Path(image_dir)
    if not d.is_dir():
        raise LoadError(f"Image dir [{d}] does not exist!")
    paths = [p for p in d.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES]
    return sorted(paths, key=lambda p: parse_timestamp(p.name))


@dataclass
class PreprocessSummary:
    camera_name: str
    images: int
    processed: int
    skipped: int
    detected: int
    output_dir: str


def preprocess_camera_data(
    config: PreprocessConfig,
    camera_index: int = 0,
    logger=None,
    target: Optional[CalibTarget] = None,
    detector_state: Optional[DetectorState] = None,
) -> PreprocessSummary:
    """
    Detect tags in every image of config.image_dir.

    Records already present in the output directory that load cleanly are
    kept as-is, so an interrupted run can be resumed.
    """
    logger = logger or setup_logger(config.camera_name)
    target = target or load_target(config.target_path, config.target_prefix)
    detector_state = detector_state or build_detector(config.aruco_dict)

    image_paths = list_image_paths(config.image_dir)
    out_dir = Path(config.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    logger.info("processing %d images from %s", len(image_paths), config.image_dir)
    processed = skipped = detected = 0
    for i, image_path in enumerate(image_paths):
        ts = parse_timestamp(image_path.name)
        save_path = out_dir / record_name(ts)

        if save_path.exists():
            try:
                validate_observation(
                    read_observation(save_path, camera_index, config.precision, timestamp=ts)
                )
                skipped += 1
                continue
            except ValueError as exc:
                logger.warning("re-detecting %s: %s", save_path.name, exc)

        image = cv2.imread(str(image_path))
        if image is None:
            logger.warning("unreadable image %s, recorded as not detected", image_path.name)
        obs = detect_observation(image, detector_state, target, camera_index, ts, config.precision)
        write_observation(save_path, obs)
        processed += 1
        if obs.detected:
            detected += 1

        if i % 10 == 0:
            logger.info("image=%d/%d ts=%d tags=%d", i + 1, len(image_paths), ts, obs.num_markers)

    logger.info(
        "summary images=%d processed=%d skipped=%d detected=%d",
        len(image_paths), processed, skipped, detected,
    )
    return PreprocessSummary(
        config.camera_name,
        len(image_paths),
        processed,
        skipped,
        detected,
        str(out_dir),
    )


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Detect calibration tags in one camera's images")
    ap.add_argument("--config", help="Path to JSON/YAML preprocess config")
    ap.add_argument("--camera-name")
    ap.add_argument("--camera-index", type=int, default=0)
    ap.add_argument("--images")
    ap.add_argument("--out")
    ap.add_argument("--target")
    ap.add_argument("--target-prefix")
    ap.add_argument("--dict")
    ap.add_argument("--precision", choices=["float32", "float64"])
    return ap


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    cfg = load_preprocess_config(args.config) if args.config else PreprocessConfig()
    cfg.apply_overrides(
        camera_name=args.camera_name,
        image_dir=args.images,
        output_dir=args.out,
        target_path=args.target,
        target_prefix=args.target_prefix,
        aruco_dict=args.dict,
        precision=args.precision,
    )

    summary = preprocess_camera_data(cfg, camera_index=args.camera_index)
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
