"""Process-wide logging configuration."""

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ThirdPartyNoiseFilter(logging.Filter):
    """
    Keep console output readable:
    - all geoquest.* records pass
    - uvicorn access/error logs pass at INFO
    - any other third-party logger only at WARNING and above
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("geoquest"):
            return True
        if name.startswith("uvicorn"):
            return record.levelno >= logging.INFO
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    level: str | int = logging.INFO,
    log_dir: str | Path | None = None,
) -> None:
    """
    Configure the root logger with a stderr handler and, when ``log_dir`` is
    given, a file handler that receives everything at DEBUG.

    Call this once from the process entry point, before the app starts.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(fmt)
    console.addFilter(_ThirdPartyNoiseFilter())
    root.addHandler(console)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path / "geoquest.log"), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    logging.captureWarnings(True)


__all__ = ["setup_logging"]
