from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

READ_SIZE = 64


class RadioDevice:
    """Blocking byte source over the radio's character device.

    The device must already be configured (channel, pipe addresses, power);
    each ``read`` returns at most one received payload.
    """

    def __init__(self, path: Path, read_size: int = READ_SIZE) -> None:
        self.path = path
        self.read_size = read_size
        self._fd: Optional[int] = None

    def open(self) -> "RadioDevice":
        self._fd = os.open(self.path, os.O_RDONLY)
        logger.info("Opened radio device %s", self.path)
        return self

    def read(self) -> bytes:
        if self._fd is None:
            raise RuntimeError(f"Radio device {self.path} is not open.")
        return os.read(self._fd, self.read_size)

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "RadioDevice":
        return self.open()

    def __exit__(self, *_exc: object) -> None:
        self.close()
