from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable

from .codec import encode_le
from .const import (
    CHAR_0031,
    CHAR_0032,
    CHAR_0033,
    CHAR_0035,
    CHAR_0036,
    CHAR_0037,
    CHAR_0038,
    CHAR_0039,
    CHAR_003A,
    CHAR_003B,
    CHAR_003D,
    DECIMETERS_PER_METER,
    DEFAULT_STATUS_DELAY_MS,
    DEFAULT_STATUS_RATE,
    FORCE_CURVE_CHARACTERISTIC_COUNT,
    FORCE_CURVE_WORD_COUNT,
    FRAME_LENGTHS,
    MILLISECONDS_PER_CENTISECOND,
    SPLIT_PACE_MAX_CS,
    SPLIT_PACE_MIN_CS,
    STATUS_DELAY_MS,
    STROKE_RATE_MAX_SPM,
    STROKE_RATE_MIN_SPM,
    TWO_MINUTE_SPLIT_SPEED,
)

_LOGGER = logging.getLogger(__name__)


@dataclass
class Session:
    start_time: float
    status_rate: int = DEFAULT_STATUS_RATE


class TelemetryEngine:
    """Produces PM5 characteristic payloads for a simulated 2:00 split row.

    Every value is derived from the time elapsed since the engine was created,
    so frames are rebuilt from scratch on each notification and never cached.
    """

    def __init__(
        self,
        status_rate: int = DEFAULT_STATUS_RATE,
        seed: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._rng = random.Random(seed)
        self._force_curve_seq = 0
        self.session = Session(start_time=clock(), status_rate=status_rate)

    @property
    def status_rate(self) -> int:
        return self.session.status_rate

    @status_rate.setter
    def status_rate(self, value: int) -> None:
        _LOGGER.debug("Status rate changed %s -> %s", self.session.status_rate, value)
        self.session.status_rate = value

    def _elapsed_seconds(self) -> float:
        return max(0.0, self._clock() - self.session.start_time)

    # ---------- Derived fields ----------
    def elapsed_time(self) -> bytes:
        """Elapsed time, lo/mid/hi, 0.01 s lsb."""
        elapsed_ms = round(self._elapsed_seconds() * 1000)
        return encode_le(elapsed_ms // MILLISECONDS_PER_CENTISECOND, 3)

    def distance(self) -> bytes:
        """Distance rowed at a constant 2:00 split, lo/mid/hi, 0.1 m lsb."""
        distance_dm = (
            self._elapsed_seconds() * TWO_MINUTE_SPLIT_SPEED * DECIMETERS_PER_METER
        )
        return encode_le(int(distance_dm), 3)

    def split_pace_cs(self) -> int:
        return self._rng.randrange(SPLIT_PACE_MIN_CS, SPLIT_PACE_MAX_CS)

    def split_pace(self) -> bytes:
        """Split/interval average pace, lo/hi, 0.01 s lsb (2:00 to 2:09)."""
        return encode_le(self.split_pace_cs(), 2)

    def stroke_rate_spm(self) -> int:
        return self._rng.randrange(STROKE_RATE_MIN_SPM, STROKE_RATE_MAX_SPM)

    def stroke_rate(self) -> bytes:
        return encode_le(self.stroke_rate_spm(), 1)

    def status_delay_ms(self) -> int:
        """
        Milliseconds between status notifications for the configured sample
        rate (characteristic 0x0034):
          0 - 1 sec
          1 - 500 ms (default if the app never sets it)
          2 - 250 ms
          3 - 100 ms
        Anything else falls back to 500 ms.
        """
        return STATUS_DELAY_MS.get(self.session.status_rate, DEFAULT_STATUS_DELAY_MS)

    # ---------- Frames ----------
    @staticmethod
    def _frame(char: int) -> bytearray:
        return bytearray(FRAME_LENGTHS[char])

    # 0x0031 (19 bytes) Rowing general status
    def general_status(self) -> bytes:
        """
        Populated: elapsed time (0-2), distance (3-5).
        Workout/interval/rowing/stroke state, total work distance, workout
        duration and drag factor stay zero.
        """
        b = self._frame(CHAR_0031)
        b[0:3] = self.elapsed_time()
        b[3:6] = self.distance()
        return bytes(b)

    # 0x0032 (17 bytes) Rowing additional status 1
    def additional_status_1(self) -> bytes:
        """Populated: elapsed time (0-2), stroke rate (5)."""
        b = self._frame(CHAR_0032)
        b[0:3] = self.elapsed_time()
        b[5:6] = self.stroke_rate()
        return bytes(b)

    # 0x0033 (20 bytes) Rowing additional status 2
    def additional_status_2(self) -> bytes:
        """Populated: elapsed time (0-2), split/interval avg pace (8-9)."""
        b = self._frame(CHAR_0033)
        b[0:3] = self.elapsed_time()
        b[8:10] = self.split_pace()
        return bytes(b)

    # 0x0035 (20 bytes) Stroke data
    def stroke_data(self) -> bytes:
        b = self._frame(CHAR_0035)
        b[0:3] = self.elapsed_time()
        b[3:6] = self.distance()
        return bytes(b)

    # 0x0036 (15 bytes) Additional stroke data
    def additional_stroke_data(self) -> bytes:
        b = self._frame(CHAR_0036)
        b[0:3] = self.elapsed_time()
        return bytes(b)

    # 0x0037 (18 bytes) Split/interval data
    def split_interval(self) -> bytes:
        b = self._frame(CHAR_0037)
        b[0:3] = self.elapsed_time()
        b[3:6] = self.distance()
        return bytes(b)

    # 0x0038 (19 bytes) Additional split/interval data
    def additional_split_interval(self) -> bytes:
        b = self._frame(CHAR_0038)
        b[0:3] = self.elapsed_time()
        b[3:4] = self.stroke_rate()
        return bytes(b)

    # 0x0039 (20 bytes) End-of-workout summary
    def workout_summary(self) -> bytes:
        """
        Populated: elapsed time (4-6), distance (7-9), avg stroke rate (10).
        Log entry date/time (0-3) and heart rate fields stay zero.
        """
        b = self._frame(CHAR_0039)
        b[4:7] = self.elapsed_time()
        b[7:10] = self.distance()
        b[10:11] = self.stroke_rate()
        return bytes(b)

    # 0x003A (19 bytes) End-of-workout additional summary
    def additional_workout_summary(self) -> bytes:
        return bytes(self._frame(CHAR_003A))

    # 0x003B (6 bytes) Heart rate belt info
    def heart_rate_belt_info(self) -> bytes:
        return bytes(self._frame(CHAR_003B))

    # 0x003D (20 bytes) Force curve data
    def force_curve(self) -> bytes:
        """
        Byte 0: MS nibble = characteristic count, LS nibble = word count.
        Byte 1: sequence number, wraps at 256.
        Bytes 2-19: force curve words, left zero.
        """
        b = self._frame(CHAR_003D)
        b[0] = (FORCE_CURVE_CHARACTERISTIC_COUNT << 4) | FORCE_CURVE_WORD_COUNT
        b[1:2] = encode_le(self._force_curve_seq, 1)
        self._force_curve_seq = (self._force_curve_seq + 1) % 256
        return bytes(b)

    def build_frame(self, char: int) -> bytes:
        match char:
            case 0x0031:
                return self.general_status()
            case 0x0032:
                return self.additional_status_1()
            case 0x0033:
                return self.additional_status_2()
            case 0x0035:
                return self.stroke_data()
            case 0x0036:
                return self.additional_stroke_data()
            case 0x0037:
                return self.split_interval()
            case 0x0038:
                return self.additional_split_interval()
            case 0x0039:
                return self.workout_summary()
            case 0x003A:
                return self.additional_workout_summary()
            case 0x003B:
                return self.heart_rate_belt_info()
            case 0x003D:
                return self.force_curve()
            case _:
                raise ValueError(f"No frame defined for characteristic {hex(char)}")
