"""
Static hand-shape classification for the battle moves.

Turns one hand's 21 landmarks into one of a fixed set of gestures using
finger-extension geometry. Nothing in here keeps state between frames;
smoothing lives in gesture_stabilizer.py.
"""

import numpy as np
from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass

from gesture_battle.utils.math_utils import landmarks_to_array, euclidean


class Gesture(str, Enum):
    """Discrete moves recognised from a hand shape."""
    FIST = 'fist'
    OPEN_PALM = 'open_palm'
    PEACE = 'peace'
    SWIPE = 'swipe'
    NONE = 'none'

    def __str__(self) -> str:
        return self.value


# Data Structures

@dataclass
class HandObservation:
    """
    One detected hand for one frame.
    landmarks: shape (21, 2) or (21, 3), normalized image coords (0..1)
    """
    landmarks: np.ndarray
    handedness: str = 'Right'  # 'Left' or 'Right'
    timestamp: float = 0.0

    @classmethod
    def from_landmarks(cls, landmarks, handedness: str = 'Right',
                       timestamp: float = 0.0, use_depth: bool = False) -> 'HandObservation':
        return cls(
            landmarks=landmarks_to_array(landmarks, use_depth=use_depth),
            handedness=handedness,
            timestamp=timestamp,
        )


# MediaPipe Hand Landmark indices (for reference)
LANDMARK_NAMES = {
    'WRIST': 0,
    'THUMB_CMC': 1, 'THUMB_MCP': 2, 'THUMB_IP': 3, 'THUMB_TIP': 4,
    'INDEX_MCP': 5, 'INDEX_PIP': 6, 'INDEX_DIP': 7, 'INDEX_TIP': 8,
    'MIDDLE_MCP': 9, 'MIDDLE_PIP': 10, 'MIDDLE_DIP': 11, 'MIDDLE_TIP': 12,
    'RING_MCP': 13, 'RING_PIP': 14, 'RING_DIP': 15, 'RING_TIP': 16,
    'PINKY_MCP': 17, 'PINKY_PIP': 18, 'PINKY_DIP': 19, 'PINKY_TIP': 20,
}

NUM_LANDMARKS = 21

# Thumb is left out: its extension is ambiguous across hand orientations.
CLASSIFIED_FINGERS = ('index', 'middle', 'ring', 'pinky')

_TIP_IDX = {
    'index': LANDMARK_NAMES['INDEX_TIP'],
    'middle': LANDMARK_NAMES['MIDDLE_TIP'],
    'ring': LANDMARK_NAMES['RING_TIP'],
    'pinky': LANDMARK_NAMES['PINKY_TIP'],
}

_PIP_IDX = {
    'index': LANDMARK_NAMES['INDEX_PIP'],
    'middle': LANDMARK_NAMES['MIDDLE_PIP'],
    'ring': LANDMARK_NAMES['RING_PIP'],
    'pinky': LANDMARK_NAMES['PINKY_PIP'],
}

# (index, middle, ring, pinky) extension pattern -> gesture
_PATTERNS = {
    (False, False, False, False): Gesture.FIST,
    (True, True, True, True): Gesture.OPEN_PALM,
    (True, True, False, False): Gesture.PEACE,
    (True, False, False, False): Gesture.SWIPE,
}


def is_finger_extended(
    landmarks_norm: np.ndarray,
    finger_name: str,
    extension_ratio: float = 1.0,
) -> bool:
    """
    A finger counts as extended when its tip is further from the wrist than
    its PIP joint. Comparing distances to the wrist (instead of raw y
    positions) keeps the test valid for tilted or upside-down hands.

    extension_ratio > 1.0 demands a clearer extension before it counts.
    """
    if finger_name not in _TIP_IDX:
        return False

    wrist_pt = landmarks_norm[LANDMARK_NAMES['WRIST']]
    d_tip = float(euclidean(landmarks_norm[_TIP_IDX[finger_name]], wrist_pt))
    d_pip = float(euclidean(landmarks_norm[_PIP_IDX[finger_name]], wrist_pt))
    return d_tip > d_pip * extension_ratio


def finger_states(landmarks_norm: np.ndarray, extension_ratio: float = 1.0) -> Dict[str, bool]:
    return {
        name: is_finger_extended(landmarks_norm, name, extension_ratio)
        for name in CLASSIFIED_FINGERS
    }


def _as_array(landmarks, use_depth: bool) -> Optional[np.ndarray]:
    if isinstance(landmarks, HandObservation):
        landmarks = landmarks.landmarks
    if isinstance(landmarks, np.ndarray):
        arr = np.asarray(landmarks, dtype=float)
        if arr.ndim != 2 or arr.shape[1] < 2:
            return None
        return arr[:, :3] if use_depth else arr[:, :2]
    try:
        return landmarks_to_array(landmarks, use_depth=use_depth)
    except (TypeError, ValueError):
        return None


def classify_gesture(landmarks, extension_ratio: float = 1.0, use_depth: bool = False) -> Gesture:
    """
    Map one hand's 21 keypoints to a Gesture.

    Args:
        landmarks: HandObservation, (21, 2|3) array, or iterable of landmarks
        extension_ratio: tip/PIP distance ratio needed to call a finger extended
        use_depth: include z in the distance computation

    Returns:
        Gesture; Gesture.NONE for malformed input or any ambiguous
        combination of extended fingers.
    """
    norm = _as_array(landmarks, use_depth)
    if norm is None or norm.shape[0] != NUM_LANDMARKS:
        return Gesture.NONE
    if not np.all(np.isfinite(norm)):
        return Gesture.NONE

    states = finger_states(norm, extension_ratio)
    pattern = tuple(states[name] for name in CLASSIFIED_FINGERS)
    return _PATTERNS.get(pattern, Gesture.NONE)


__all__ = [
    'Gesture',
    'HandObservation',
    'LANDMARK_NAMES',
    'NUM_LANDMARKS',
    'CLASSIFIED_FINGERS',
    'is_finger_extended',
    'finger_states',
    'classify_gesture',
]
