# cam_session.py
import cv2
from cam_config import CameraConfig, fourcc_to_string


class CameraError(RuntimeError):
    pass


class CaptureSession:
    """Owns exactly one cv2.VideoCapture. Use as context manager so the
    device is released on every exit path."""

    def __init__(self, config: CameraConfig, capture_factory=cv2.VideoCapture):
        self.config = config
        self._factory = capture_factory
        self.cap = None

    def open(self):
        if self.cap is not None:
            raise CameraError(f"Camera device {self.config.device} is already open")

        flag = self.config.backend_flag
        cap = self._factory(self.config.device, flag) if flag is not None else self._factory(self.config.device)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"Failed to open camera device {self.config.device}")
        self.cap = cap

        # Reihenfolge wie im Treiber üblich: Größe, dann FOURCC, dann FPS.
        # Nicht unterstützte Werte werden vom Treiber still geklemmt/ignoriert.
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        cap.set(cv2.CAP_PROP_FOURCC, self.config.fourcc)
        cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        return self

    def actual_settings(self) -> dict:
        """What the driver reports after configuration (informational only)."""
        cap = self._require_open()
        return {
            "width": int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": float(cap.get(cv2.CAP_PROP_FPS)),
            "format": fourcc_to_string(cap.get(cv2.CAP_PROP_FOURCC)),
        }

    def read(self):
        """Block until the next frame. Returns None if the read failed."""
        ok, frame = self._require_open().read()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def close(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def _require_open(self):
        if self.cap is None:
            raise CameraError("Camera session is not open")
        return self.cap

    def __enter__(self):
        if self.cap is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
