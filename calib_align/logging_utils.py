import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(camera)s] %(message)s"
LOGGER_ROOT = "calib_align"


class CameraNameFilter(logging.Filter):
    """Stamp each record with the camera (or session) name shown in the log line."""

    def __init__(self, camera_name: str):
        super().__init__()
        self.camera_name = camera_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera = self.camera_name
        return True


def _attach(logger: logging.Logger, handler: logging.Handler, camera_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CameraNameFilter(camera_name))
    logger.addHandler(handler)
    return handler


def setup_logger(camera_name: str, level: int = logging.INFO) -> logging.Logger:
    """Logger for one camera or session, with a single console handler."""
    logger = logging.getLogger(f"{LOGGER_ROOT}.{camera_name}")
    logger.setLevel(level)
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        _attach(logger, logging.StreamHandler(), camera_name)
    return logger


def add_file_handler(logger: logging.Logger, camera_name: str, log_path) -> logging.FileHandler:
    """Mirror logger into log_path. Pair with detach_handler when the run ends."""
    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
    return _attach(logger, logging.FileHandler(str(log_path)), camera_name)


def detach_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    handler.close()
