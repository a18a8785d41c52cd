from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from .ca_types import AlignedFrame
from .services.observation_csv import record_name, write_observation


class OutputSink(ABC):
    @abstractmethod
    def open(self, session_dir: Path) -> None: ...

    @abstractmethod
    def write_frame(self, frame: AlignedFrame) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class CsvOutput(OutputSink):
    """
    Writes a frames.csv index and, optionally, one record per camera per frame.

    Per-camera records use the same format the loader reads, so an aligned
    session can be fed back in as input.
    """

    HEADER = ["timestamp", "num_markers", "marker_ids"]

    def __init__(
        self,
        camera_names: Sequence[str],
        filename: str = "frames.csv",
        save_observations: bool = True,
    ):
        self.camera_names = list(camera_names)
        if len(set(self.camera_names)) != len(self.camera_names):
            raise ValueError(f"Duplicate camera names: {self.camera_names}")
        self.filename = filename
        self.save_observations = save_observations
        self.path: Optional[Path] = None
        self._fh = None
        self._w = None
        self._camera_dirs: list[Path] = []

    def open(self, session_dir: Path) -> None:
        self.path = Path(session_dir) / self.filename
        self._fh = open(self.path, "w", newline="")
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        if self.save_observations:
            self._camera_dirs = []
            for name in self.camera_names:
                d = Path(session_dir) / name
                d.mkdir(parents=True, exist_ok=False)
                self._camera_dirs.append(d)

    def write_frame(self, frame: AlignedFrame) -> None:
        if self._w is None:
            return
        self._w.writerow([
            frame.timestamp,
            len(frame.marker_ids),
            " ".join(str(m) for m in frame.marker_ids),
        ])
        if self.save_observations:
            if frame.num_cameras != len(self._camera_dirs):
                raise ValueError(
                    f"Frame has {frame.num_cameras} cameras, sink configured for {len(self._camera_dirs)}"
                )
            for d, obs in zip(self._camera_dirs, frame.observations):
                write_observation(d / record_name(frame.timestamp), obs)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            self._w = None


class NullOutput(OutputSink):
    def open(self, session_dir: Path) -> None:
        return None

    def write_frame(self, frame: AlignedFrame) -> None:
        return None

    def close(self) -> None:
        return None
