"""I/O utilities for logging setup, atomic writes and JSON output."""

import json
import logging
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from shutil import move
from typing import Any


def setup_logging(log_dir: Path | None, log_level: str = "INFO") -> logging.Logger:
    """Set up logging configuration for StickerLab.

    Args:
        log_dir: Directory to store log files (None logs to the console only)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(log_dir / f"stickerlab_{timestamp}.log"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    return logging.getLogger("stickerlab")


@contextmanager
def atomic_write(target_path: Path, mode: str = "w"):
    """Context manager for atomic file writes using temporary files.

    The target only appears once the block finished without raising; on
    error the temporary file is removed and the target is left untouched.

    Args:
        target_path: Final path where file should be written
        mode: File open mode ("w" or "wb")

    Yields:
        File handle for writing

    Example:
        with atomic_write(Path("sticker.json")) as f:
            json.dump(data, f)
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    encoding = None if "b" in mode else "utf-8"
    with tempfile.NamedTemporaryFile(
        mode=mode,
        dir=target_path.parent,
        delete=False,
        suffix=f".tmp_{target_path.name}",
        encoding=encoding,
    ) as temp_file:
        try:
            yield temp_file
            temp_file.flush()
            move(temp_file.name, target_path)
        except BaseException:
            Path(temp_file.name).unlink(missing_ok=True)
            raise


def save_json(data: dict[str, Any], json_path: Path) -> None:
    """Atomically save data as JSON file.

    Args:
        data: Data to save as JSON
        json_path: Path where JSON should be saved

    Raises:
        IOError: If file cannot be written
    """
    with atomic_write(json_path) as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
