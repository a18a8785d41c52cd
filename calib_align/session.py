from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .align import align_streams
from .config import AlignConfig
from .loader import load_streams
from .logging_utils import add_file_handler, detach_handler, setup_logger
from .output import CsvOutput, OutputSink
from .services.storage import SessionStorage


@dataclass
class AlignSummary:
    session_path: str
    num_cameras: int
    observations: list[int]
    frames_aligned: int
    index_path: str
    log_path: str
    elapsed_sec: float


class AlignSession:
    """Load every camera's records, align them, and hand the frames to the sinks."""

    def __init__(
        self,
        config: AlignConfig,
        logger=None,
        outputs: Optional[list[OutputSink]] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.session_name)
        self.camera_names = [config.camera_name(i) for i in range(len(config.data_dirs))]

        if outputs is None:
            outputs = [CsvOutput(self.camera_names, save_observations=config.save_observations)]
        self.outputs = outputs

    def run(self) -> AlignSummary:
        if len(self.config.data_dirs) < 2:
            raise ValueError(f"Alignment needs at least 2 data_dirs, got {len(self.config.data_dirs)}")

        storage = SessionStorage(self.config.output_root, name=self.config.session_name)
        session_path = storage.begin()
        storage.write_manifest(self.config.as_dict())

        log_file = str(Path(storage.logs_dir) / "session.log")
        file_handler = add_file_handler(self.logger, self.config.session_name, log_file)

        self.logger.info("session started: %s", session_path)
        self.logger.info("config: %s", self.config.as_dict())
        t0 = time.time()

        try:
            streams = load_streams(
                self.config.data_dirs,
                detected_only=self.config.detected_only,
                precision=self.config.precision,
            )
            for name, stream in zip(self.camera_names, streams):
                self.logger.info("%s: %d observations", name, len(stream))

            frames = align_streams(
                streams,
                keep_empty=self.config.keep_empty_intersections,
                method=self.config.method,
            )

            for out in self.outputs:
                out.open(Path(session_path))
            for frame in frames:
                for out in self.outputs:
                    out.write_frame(frame)

            elapsed = time.time() - t0
            self.logger.info(
                "summary cameras=%d frames=%d elapsed=%.3fs", len(streams), len(frames), elapsed
            )
        finally:
            for out in self.outputs:
                out.close()
            detach_handler(self.logger, file_handler)

        return AlignSummary(
            session_path,
            len(streams),
            [len(s) for s in streams],
            len(frames),
            str(Path(session_path) / "frames.csv"),
            log_file,
            elapsed,
        )
