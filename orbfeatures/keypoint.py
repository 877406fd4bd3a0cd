"""Keypoint record and response-based filtering."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class KeyPoint:
    """A detected image feature."""

    x: float
    y: float
    size: float
    angle: float = -1.0
    response: float = 0.0
    octave: int = 0
    class_id: int = -1


def retain_best(keypoints, n: int) -> list[KeyPoint]:
    """Keep the ``n`` strongest keypoints by response.

    Keypoints tied with the n-th strongest response are all kept, so the result
    may hold more than ``n`` entries. The result is ordered by descending
    response; a negative ``n`` keeps everything.
    """
    keypoints = list(keypoints)
    if n < 0 or len(keypoints) <= n:
        return keypoints
    if n == 0:
        return []
    ranked = sorted(keypoints, key=lambda kp: kp.response, reverse=True)
    cutoff = ranked[n - 1].response
    return [kp for kp in ranked if kp.response >= cutoff]