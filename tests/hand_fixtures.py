"""Synthetic MediaPipe-style hands for tests (no camera, no model)."""

import math

import numpy as np


# Fan-out of the four fingers around "up", in degrees
_FINGER_ANGLES = {'index': -15.0, 'middle': -5.0, 'ring': 5.0, 'pinky': 15.0}
_FINGER_BASE = {'index': 5, 'middle': 9, 'ring': 13, 'pinky': 17}

# Distance from the wrist of MCP, PIP, DIP, TIP
_EXTENDED = (0.10, 0.15, 0.18, 0.21)
_CURLED = (0.10, 0.13, 0.11, 0.09)


def _direction(angle_deg: float):
    a = math.radians(angle_deg)
    # Image y grows downwards, so "up" is -y
    return np.array([math.sin(a), -math.cos(a), 0.0])


def make_hand(index=False, middle=False, ring=False, pinky=False,
              rotation=0.0, wrist=(0.5, 0.5), scale=1.0, thumb_out=True):
    """
    Build a (21, 3) landmark array.

    rotation: whole-hand rotation in degrees around the wrist (180 = upside down)
    """
    extended = {'index': index, 'middle': middle, 'ring': ring, 'pinky': pinky}
    origin = np.array([wrist[0], wrist[1], 0.0])
    points = np.zeros((21, 3))
    points[0] = origin

    thumb_dir = _direction(rotation - 60.0 if thumb_out else rotation - 20.0)
    for i, d in enumerate((0.05, 0.09, 0.12, 0.15 if thumb_out else 0.08)):
        points[1 + i] = origin + thumb_dir * d * scale

    for name, base in _FINGER_BASE.items():
        direction = _direction(rotation + _FINGER_ANGLES[name])
        dists = _EXTENDED if extended[name] else _CURLED
        for i, d in enumerate(dists):
            points[base + i] = origin + direction * d * scale

    return points


def fist(**kwargs):
    return make_hand(**kwargs)


def open_palm(**kwargs):
    return make_hand(index=True, middle=True, ring=True, pinky=True, **kwargs)


def peace(**kwargs):
    return make_hand(index=True, middle=True, **kwargs)


def swipe(**kwargs):
    return make_hand(index=True, **kwargs)
