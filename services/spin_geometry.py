# services/spin_geometry.py
"""
Wheel geometry.

Layout: segment i spans [i*a, (i+1)*a) clockwise from 12 o'clock, a = 360/n.
The renderer draws the layout a quarter turn clockwise, so layout angle 0
appears at 3 o'clock (east), where the fixed pointer sits. Rotating the wheel
clockwise by `target_angle(...)` brings the centre of the winning segment
under the pointer.
"""
from __future__ import annotations

DEFAULT_EXTRA_ROTATIONS = 6


def angle_per_segment(segment_count: int) -> float:
    if segment_count < 1:
        raise ValueError("segment_count must be >= 1")
    return 360.0 / segment_count


def segment_arc(index: int, segment_count: int) -> tuple[float, float]:
    a = angle_per_segment(segment_count)
    if index < 0 or index >= segment_count:
        raise ValueError(f"index {index} out of range for {segment_count} segments")
    return index * a, (index + 1) * a


def normalize(angle: float) -> float:
    return angle % 360.0


def target_angle(
    segment_count: int,
    winning_index: int,
    previous_angle: float = 0.0,
    *,
    extra_rotations: int = DEFAULT_EXTRA_ROTATIONS,
) -> float:
    """
    Absolute rotation that parks the winning segment's centre under the pointer.

    `previous_angle` does not shift the result: every spin targets a fresh
    360*K + offset, so the wheel always turns at least K full times.
    """
    if extra_rotations < 1:
        raise ValueError("extra_rotations must be >= 1")
    a = angle_per_segment(segment_count)
    if winning_index < 0 or winning_index >= segment_count:
        raise ValueError(f"winning_index {winning_index} out of range for {segment_count} segments")
    return 360.0 * extra_rotations + (360.0 - winning_index * a - a / 2.0)


def segment_at_angle(segment_count: int, angle: float) -> int:
    """Index of the segment under the pointer after rotating by `angle`."""
    a = angle_per_segment(segment_count)
    under_pointer = normalize(-angle)
    idx = int(under_pointer // a)
    return min(idx, segment_count - 1)


def ease_out(t: float, power: float = 2.0) -> float:
    """
    Decelerating progress curve, 0 -> 1.
      p(t) = 1 - (1 - t)^(power + 1)
    """
    t = max(0.0, min(1.0, t))
    n = max(0.0, power)
    return 1.0 - (1.0 - t) ** (n + 1.0)


def angle_schedule(start: float, end: float, frames: int, power: float = 2.0) -> list[float]:
    """Monotone eased angles from start to end (both included)."""
    if frames < 2:
        return [end]
    span = end - start
    return [start + span * ease_out(i / (frames - 1), power) for i in range(frames)]
