# ABOUTME: Provides stroke geometry helpers: arc-length resampling, smoothing, direction and turning angles.
# ABOUTME: All helpers operate on (n, 2) numpy arrays in canvas space (y grows downward).

from __future__ import annotations

import math

import numpy as np

_EPS = 1e-9


def polyline_length(points: np.ndarray) -> float:
    """Total path length of a polyline."""
    if len(points) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())


def resample_by_arc_length(points: np.ndarray, n: int) -> np.ndarray:
    """
    Resample a polyline to exactly `n` points equally spaced by path distance.

    Spacing follows the drawn path rather than sample index or time, so two
    traces of the same shape drawn at different speeds resample identically.
    A single point or a zero-length path yields `n` copies of the first point.
    """

    if n < 2:
        raise ValueError(f"Cannot resample to fewer than 2 points (got {n}).")
    points = np.asarray(points, dtype=np.float64)
    if len(points) == 0:
        raise ValueError("Cannot resample an empty polyline.")

    seg = np.linalg.norm(np.diff(points, axis=0), axis=1)
    # Drop repeated samples so the cumulative distance is strictly increasing.
    keep = np.concatenate([[True], seg > _EPS])
    points = points[keep]
    seg = seg[seg > _EPS]

    total = float(seg.sum())
    if total < _EPS:
        return np.repeat(points[:1], n, axis=0)

    cumulative = np.concatenate([[0.0], np.cumsum(seg)])
    targets = np.linspace(0.0, cumulative[-1], n)
    xs = np.interp(targets, cumulative, points[:, 0])
    ys = np.interp(targets, cumulative, points[:, 1])
    return np.column_stack([xs, ys])


def mean_pointwise_distance(a: np.ndarray, b: np.ndarray) -> float:
    if a.shape != b.shape:
        raise ValueError(f"Point arrays differ in shape: {a.shape} vs {b.shape}.")
    return float(np.linalg.norm(a - b, axis=1).mean())


def direction_angle(start, end) -> float:
    """Angle of the start->end vector in degrees, counter-clockwise, in [0, 360)."""
    dx = float(end[0]) - float(start[0])
    # Canvas y points down; flip so that "up and to the right" is a positive angle.
    dy = float(start[1]) - float(end[1])
    angle = math.degrees(math.atan2(dy, dx))
    return angle % 360.0


def dominant_stroke_angle(points: np.ndarray) -> float:
    """
    Dominant direction of a stroke: first point to last point.

    Closed shapes whose end lands on the start fall back to the direction of
    the point farthest from the start.
    """

    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2:
        return 0.0
    start, end = points[0], points[-1]
    if np.linalg.norm(end - start) < _EPS:
        distances = np.linalg.norm(points - start, axis=1)
        end = points[int(np.argmax(distances))]
        if np.linalg.norm(end - start) < _EPS:
            return 0.0
    return direction_angle(start, end)


def angular_difference(a: float, b: float) -> float:
    """Absolute difference between two angles in degrees, wrapped to [0, 180]."""
    diff = (float(a) - float(b)) % 360.0
    return min(diff, 360.0 - diff)


def sample_count_for_spacing(length: float, spacing: float, max_points: int, min_points: int = 3) -> int:
    """Number of resample points that keeps roughly `spacing` pixels between them."""
    if spacing <= 0:
        raise ValueError(f"Spacing must be positive, got {spacing}.")
    count = int(round(length / spacing)) + 1
    return max(min_points, min(max_points, count))


def smooth_polyline(points: np.ndarray, window: int = 3) -> np.ndarray:
    """
    Centered moving average of a polyline with its endpoints pinned.

    Edges are padded with the end values so the output keeps the input length.
    """

    points = np.asarray(points, dtype=np.float64)
    if window <= 1 or len(points) < 3:
        return points.copy()
    half = window // 2
    kernel = np.ones(2 * half + 1) / (2 * half + 1)
    padded = np.pad(points, ((half, half), (0, 0)), mode="edge")
    smoothed = np.column_stack([np.convolve(padded[:, axis], kernel, mode="valid") for axis in range(2)])
    smoothed[0] = points[0]
    smoothed[-1] = points[-1]
    return smoothed


def total_turning(points: np.ndarray) -> float:
    """
    Sum of absolute turning angles along a polyline, in degrees.

    A straight line turns 0, a half circle about 180; every back-and-forth
    wiggle adds its full swing, wherever the sample points fall on a corner.
    """

    points = np.asarray(points, dtype=np.float64)
    deltas = np.diff(points, axis=0)
    deltas = deltas[np.linalg.norm(deltas, axis=1) > _EPS]
    if len(deltas) < 2:
        return 0.0
    headings = np.arctan2(-deltas[:, 1], deltas[:, 0])
    turning = np.diff(headings)
    turning = (turning + np.pi) % (2.0 * np.pi) - np.pi
    return float(np.degrees(np.abs(turning).sum()))
