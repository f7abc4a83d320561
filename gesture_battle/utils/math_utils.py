import numpy as np
from typing import Iterable, Union


def landmarks_to_array(landmarks: Iterable, use_depth: bool = False) -> np.ndarray:
    """Convert landmarks into an (N, 2) or (N, 3) NumPy array.

    Accepts objects with `.x`/`.y` (and optionally `.z`) attributes, as
    produced by MediaPipe, or plain (x, y[, z]) sequences.

    Args:
        landmarks: iterable of landmark objects or tuples (normalized 0..1)
        use_depth: keep the z column when available

    Returns:
        np.ndarray of dtype float with columns (x, y[, z]).
    """
    rows = []
    for lm in landmarks:
        if hasattr(lm, 'x'):
            point = [lm.x, lm.y, getattr(lm, 'z', 0.0)]
        else:
            point = list(lm) + [0.0] * (3 - len(lm))
        rows.append(point[:3] if use_depth else point[:2])

    if not rows:
        return np.empty((0, 3 if use_depth else 2), dtype=float)
    return np.array(rows, dtype=float)


def euclidean(a, b) -> Union[float, np.ndarray]:
    """Euclidean distance between points.

    - If `a` and `b` are 1-D points, returns a scalar.
    - If arrays of points, returns distances per-row.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    return np.linalg.norm(a - b, axis=-1)


__all__ = [
    "landmarks_to_array",
    "euclidean",
]
