from __future__ import annotations

import logging
from typing import Protocol

from station.decoder import DecoderStats, FrameDecoder
from station.uplink import Uplink

logger = logging.getLogger(__name__)


class ByteSource(Protocol):
    def read(self) -> bytes: ...


class BaseStation:
    """Sequential read -> decode -> uplink loop.

    One frame is handled at a time; a slow uplink delays the next read.
    Device errors propagate to the caller since there is nothing left to do
    without the radio.
    """

    def __init__(self, device: ByteSource, decoder: FrameDecoder, uplink: Uplink) -> None:
        self.device = device
        self.decoder = decoder
        self.uplink = uplink
        self.delivered = 0

    def step(self) -> bool:
        """Handle one device read. Returns ``False`` once the device reports EOF."""
        frame = self.device.read()
        if not frame:
            return False
        reading = self.decoder.decode(frame)
        if reading is not None and self.uplink.send(reading):
            self.delivered += 1
        return True

    def run(self) -> DecoderStats:
        while self.step():
            pass
        logger.info(
            "Radio device closed; %d decoded, %d delivered, %d incidents",
            self.decoder.stats.decoded,
            self.delivered,
            self.decoder.stats.incidents,
        )
        return self.decoder.stats
