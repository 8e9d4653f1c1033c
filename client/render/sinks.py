"""
Frame sinks - where rendered frames go.

PngFrameSink keeps a single PNG on disk pointing at the latest frame, written
through a temp file and os.replace so readers never see a partial image.
"""

import os
from pathlib import Path

from PIL import Image

from logger_config import get_logger

logger = get_logger("sink")


class PngFrameSink:
    """Write every Nth frame to one PNG path."""

    def __init__(self, path: str | Path, every_n: int = 1):
        if every_n < 1:
            raise ValueError("every_n must be >= 1")
        self.path = Path(path)
        self.every_n = every_n
        self.frames_seen = 0
        self.frames_written = 0

    def __call__(self, image: Image.Image) -> None:
        self.frames_seen += 1
        if (self.frames_seen - 1) % self.every_n:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        image.save(tmp_path, format="PNG")
        os.replace(tmp_path, self.path)
        self.frames_written += 1

        if self.frames_written == 1:
            logger.info(f"Writing frames to {self.path}")
