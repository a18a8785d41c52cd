"""Multi-camera calibration data alignment."""

from .align import align_multi, align_pair, extract_common, split_by_camera
from .ca_types import AlignedFrame, Observation
from .intersect import intersect_observations
from .loader import LoadError, load_camera_data, load_multicam_data, load_stereo_data

__all__ = [
    "AlignedFrame",
    "LoadError",
    "Observation",
    "align_multi",
    "align_pair",
    "extract_common",
    "intersect_observations",
    "load_camera_data",
    "load_multicam_data",
    "load_stereo_data",
    "split_by_camera",
]
