"""Decode emulator frames back into named values, the way a PM5 client would.

Used by the loopback monitor to show what a connected app would see.
"""

from __future__ import annotations

import logging
from typing import Any

from .codec import u16_le, u24_le
from .const import (
    CHAR_0031,
    CHAR_0032,
    CHAR_0033,
    CHAR_0035,
    CHAR_0037,
    CHAR_0039,
    ERG_MACHINE_TYPE,
    FRAME_LENGTHS,
    INTERVAL_TYPE,
    ROWING_STATE,
    WORKOUT_STATE,
    WORKOUT_TYPE,
)

_LOGGER = logging.getLogger(__name__)


class FrameError(ValueError):
    """Frame does not have the layout its characteristic requires."""


def try_lookup(name: str, data: dict, key: int):
    try:
        return data[key]
    except KeyError:
        _LOGGER.debug("Attempted to lookup unknown %s: %i", name, key)
        return None


def _check_length(char: int, b: bytes) -> None:
    if len(b) != FRAME_LENGTHS[char]:
        raise FrameError(
            f"Unexpected length {len(b)} for 0x{char:04x}: {b.hex()}"
        )


# 0x0031 (19 bytes) Rowing general status
def parse_general_status(b: bytes) -> dict[str, Any]:
    _check_length(CHAR_0031, b)
    return {
        "elapsed_time_s": u24_le(b, 0) / 100.0,
        "distance_m": u24_le(b, 3) / 10.0,
        "workout_type": try_lookup("workout type", WORKOUT_TYPE, b[6]),
        "interval_type": try_lookup("interval type", INTERVAL_TYPE, b[7]),
        "workout_state": try_lookup("workout state", WORKOUT_STATE, b[8]),
        "rowing_state": try_lookup("rowing state", ROWING_STATE, b[9]),
        "total_work_distance_m": u24_le(b, 11),
        "drag_factor": b[18],
    }


# 0x0032 (17 bytes) Rowing additional status 1
def parse_additional_status_1(b: bytes) -> dict[str, Any]:
    _check_length(CHAR_0032, b)
    return {
        "elapsed_time_s": u24_le(b, 0) / 100.0,
        "speed_m_s": u16_le(b, 3) / 1000.0,
        "stroke_rate_spm": b[5],
        "heart_rate_bpm": None if b[6] in (0, 255) else b[6],
        "current_pace_s_per_500m": u16_le(b, 7) / 100.0,
        "average_pace_s_per_500m": u16_le(b, 9) / 100.0,
        "erg_machine_type": try_lookup("erg type", ERG_MACHINE_TYPE, b[16]),
    }


# 0x0033 (20 bytes) Rowing additional status 2
def parse_additional_status_2(b: bytes) -> dict[str, Any]:
    _check_length(CHAR_0033, b)
    return {
        "elapsed_time_s": u24_le(b, 0) / 100.0,
        "interval_count": b[3],
        "average_power_w": u16_le(b, 4),
        "total_calories": u16_le(b, 6),
        "split_interval_avg_pace_s_per_500m": u16_le(b, 8) / 100.0,
        "last_split_time_s": u24_le(b, 14) / 10.0,
        "last_split_distance_m": u24_le(b, 17),
    }


# 0x0035 (20 bytes) Stroke data
def parse_stroke_data(b: bytes) -> dict[str, Any]:
    _check_length(CHAR_0035, b)
    return {
        "elapsed_time_s": u24_le(b, 0) / 100.0,
        "distance_m": u24_le(b, 3) / 10.0,
        "drive_length_m": b[6] / 100.0,
        "drive_time_s": b[7] / 100.0,
        "stroke_count": u16_le(b, 18),
    }


# 0x0037 (18 bytes) Split/interval data
def parse_split_interval(b: bytes) -> dict[str, Any]:
    _check_length(CHAR_0037, b)
    return {
        "elapsed_time_s": u24_le(b, 0) / 100.0,
        "distance_m": u24_le(b, 3) / 10.0,
        "split_interval_time_s": u24_le(b, 6) / 10.0,
        "split_interval_distance_m": u24_le(b, 9),
        "split_interval_type": try_lookup("interval type", INTERVAL_TYPE, b[16]),
        "split_interval_number": b[17],
    }


# 0x0039 (20 bytes) End-of-workout summary
def parse_workout_summary(b: bytes) -> dict[str, Any]:
    _check_length(CHAR_0039, b)
    return {
        "log_entry_date": u16_le(b, 0),
        "log_entry_time": u16_le(b, 2),
        "elapsed_time_s": u24_le(b, 4) / 100.0,
        "distance_m": u24_le(b, 7) / 10.0,
        "avg_stroke_rate_spm": b[10],
        "workout_type": try_lookup("workout type", WORKOUT_TYPE, b[17]),
        "avg_pace_s_per_500m": u16_le(b, 18) / 10.0,
    }


PARSERS = {
    CHAR_0031: parse_general_status,
    CHAR_0032: parse_additional_status_1,
    CHAR_0033: parse_additional_status_2,
    CHAR_0035: parse_stroke_data,
    CHAR_0037: parse_split_interval,
    CHAR_0039: parse_workout_summary,
}


def parse_frame(char: int, data: bytes) -> dict[str, Any] | None:
    """Decode a frame for `char`; None when no parser exists for it."""
    parser = PARSERS.get(char)
    if parser is None:
        return None
    return parser(bytes(data))


# 0x0080 (variable) Multiplexed information
def parse_multiplexed(data: bytes) -> tuple[int, dict[str, Any] | None]:
    """
    Multiplexed notifications prefix the payload with the id of the
    characteristic it stands in for. Returns (id, decoded or None).
    Multiplexed variants are shorter than the dedicated characteristic for
    several ids, so only ids whose layout matches are decoded.
    """
    if not data:
        raise FrameError("Empty multiplexed payload")

    cmd = data[0]
    body = bytes(data[1:])
    if cmd not in PARSERS or len(body) != FRAME_LENGTHS[cmd]:
        _LOGGER.debug(
            "Received unhandled multiplex command: %s -> %s", hex(cmd), body.hex()
        )
        return cmd, None
    return cmd, PARSERS[cmd](body)
