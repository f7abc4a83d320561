"""
Camera + MediaPipe hand landmark source.

Implements the landmark source contract FramePump polls:

    current_timestamp() -> Optional[float]   grab a frame, return its time
    detect(timestamp) -> list[HandObservation]
"""

import time
import urllib.request
from pathlib import Path
from typing import List, Optional

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks.python import vision as mp_vision
from mediapipe.tasks.python.core.base_options import BaseOptions

from gesture_battle.detectors.gesture_detectors import HandObservation
from gesture_battle.detectors.gesture_pipeline import MAX_HAND_SLOTS


HAND_LANDMARKER_MODEL_URL = 'https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task'
HAND_LANDMARKER_MODEL_PATH = Path(__file__).parent.parent / 'models' / 'hand_landmarker.task'


def ensure_model_downloaded(model_path: Optional[str] = None) -> Optional[str]:
    """Download the hand landmarker model if not present."""
    path = Path(model_path) if model_path else HAND_LANDMARKER_MODEL_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    if not path.exists():
        print("📥 Downloading hand landmarker model...")
        try:
            urllib.request.urlretrieve(HAND_LANDMARKER_MODEL_URL, str(path))
            print(f"✓ Model downloaded to {path}")
        except OSError as e:
            print(f"⚠ Failed to download model: {e}")
            return None

    return str(path)


def _create_landmarker(model_path: str, delegate, max_hands: int,
                       detection_conf: float, tracking_conf: float):
    options = mp_vision.HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path, delegate=delegate),
        running_mode=mp_vision.RunningMode.VIDEO,
        num_hands=max_hands,
        min_hand_detection_confidence=detection_conf,
        min_tracking_confidence=tracking_conf,
    )
    return mp_vision.HandLandmarker.create_from_options(options)


class MediaPipeLandmarkSource:
    """OpenCV camera feeding a MediaPipe Tasks HandLandmarker in VIDEO mode."""

    def __init__(self, config, camera_idx: Optional[int] = None):
        camera_idx = config.get('camera', 'index', default=0) if camera_idx is None else camera_idx
        camera_width = config.get('camera', 'width', default=640)
        camera_height = config.get('camera', 'height', default=480)
        self.flip_horizontal = config.get('camera', 'flip_horizontal', default=True)

        self.cap = cv2.VideoCapture(camera_idx)
        if not self.cap.isOpened():
            raise RuntimeError(f"Could not open camera {camera_idx}")
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, camera_width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, camera_height)

        actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        print(f"✓ Camera initialized: {actual_width}x{actual_height}")

        detection_conf = config.get('performance', 'min_detection_confidence', default=0.5)
        tracking_conf = config.get('performance', 'min_tracking_confidence', default=0.5)
        use_gpu = config.get('performance', 'use_gpu', default=False)
        max_hands = min(int(config.get('gesture', 'max_hands', default=MAX_HAND_SLOTS)), MAX_HAND_SLOTS)
        self.max_hands = max_hands

        model_path = ensure_model_downloaded(config.get('performance', 'model_path', default='') or None)
        if model_path is None:
            self.cap.release()
            raise RuntimeError("Hand landmarker model is unavailable")

        self.hand_landmarker = None
        if use_gpu:
            try:
                self.hand_landmarker = _create_landmarker(
                    model_path, BaseOptions.Delegate.GPU, max_hands, detection_conf, tracking_conf
                )
                print(f"✓ MediaPipe HandLandmarker initialized with GPU (max_hands={max_hands})")
            except (RuntimeError, ValueError) as e:
                print(f"⚠ GPU initialization failed: {e}")
                print("  Falling back to CPU...")
        if self.hand_landmarker is None:
            self.hand_landmarker = _create_landmarker(
                model_path, BaseOptions.Delegate.CPU, max_hands, detection_conf, tracking_conf
            )
            print(f"✓ MediaPipe HandLandmarker initialized with CPU (max_hands={max_hands})")

        self.last_frame: Optional[np.ndarray] = None
        self.last_hands: List[HandObservation] = []
        self._frame_timestamp: Optional[float] = None
        self._last_ms = -1

    def current_timestamp(self) -> Optional[float]:
        """Grab the next frame; returns its timestamp in seconds, None on read failure."""
        ret, frame_bgr = self.cap.read()
        if not ret:
            print("⚠ Failed to read frame")
            return None
        if self.flip_horizontal:
            frame_bgr = cv2.flip(frame_bgr, 1)
        self.last_frame = frame_bgr

        # Webcams often report 0 for the position; fall back to the monotonic clock
        pos_msec = self.cap.get(cv2.CAP_PROP_POS_MSEC)
        self._frame_timestamp = pos_msec / 1000.0 if pos_msec and pos_msec > 0 else time.monotonic()
        return self._frame_timestamp

    def detect(self, timestamp: float) -> List[HandObservation]:
        if self.last_frame is None:
            return []

        frame_rgb = cv2.cvtColor(self.last_frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        # detect_for_video needs strictly increasing integer milliseconds
        timestamp_ms = max(int(timestamp * 1000), self._last_ms + 1)
        self._last_ms = timestamp_ms
        results = self.hand_landmarker.detect_for_video(mp_image, timestamp_ms)

        hands: List[HandObservation] = []
        if results.hand_landmarks and results.handedness:
            for hand_landmarks, handedness in zip(results.hand_landmarks, results.handedness):
                hand_label = handedness[0].category_name.lower()
                # The landmarker does not know the frame was mirrored
                if self.flip_horizontal:
                    hand_label = 'right' if hand_label == 'left' else 'left'
                # z is kept; the classifier decides whether to use it
                hands.append(HandObservation.from_landmarks(
                    hand_landmarks, handedness=hand_label, timestamp=timestamp, use_depth=True
                ))
                if len(hands) >= self.max_hands:
                    break

        self.last_hands = hands
        return hands

    def release(self):
        if self.cap:
            try:
                self.cap.release()
            except cv2.error as e:
                print(f"⚠ Error releasing camera: {e}")
        if self.hand_landmarker:
            try:
                self.hand_landmarker.close()
            except RuntimeError as e:
                print(f"⚠ Error closing hand landmarker: {e}")
