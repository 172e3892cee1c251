"""
frame_sampler.py — Evenly time-spaced still frames from a video URL.

Algorithm:
  duration D comes from container metadata (frame count / fps);
  interval = D / count; seek to 0, interval, 2·interval, … and capture one
  JPEG per reachable position until `count` frames exist or the end of the
  video is reached.

Design:
  - OpenCV decodes synchronously; asyncio.to_thread() keeps the event loop free.
  - Any open/metadata/decode failure degrades to an empty list; downstream
    stages treat [] as a valid (if degraded) input.
  - The capture handle is always released, success or not.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass

import cv2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    timestamp_ms: float  # requested capture position
    image_b64: str       # base64 JPEG, no data: prefix

    @property
    def data_url(self) -> str:
        return f"data:image/jpeg;base64,{self.image_b64}"


def _duration_ms(cap: "cv2.VideoCapture") -> float:
    fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
    frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
    if fps <= 0 or frame_count <= 0:
        return 0.0
    return frame_count / fps * 1000.0


class FrameSampler:
    """
    Usage:
        frames = await FrameSampler().sample(video_url, 5)
        # [Frame(timestamp_ms=0.0, image_b64="/9j/4AAQ..."), ...]
    """

    def __init__(self, jpeg_quality: int = 80) -> None:
        self.jpeg_quality = jpeg_quality

    async def sample(self, video_url: str, count: int) -> list[Frame]:
        if count < 1:
            return []
        try:
            return await asyncio.to_thread(self._sample_sync, video_url, count)
        except Exception as exc:
            logger.warning("Frame sampling failed for %s: %s", video_url, exc)
            return []

    def _sample_sync(self, video_url: str, count: int) -> list[Frame]:
        cap = cv2.VideoCapture(video_url)
        try:
            if not cap.isOpened():
                logger.warning("Could not open video for sampling: %s", video_url)
                return []

            duration = _duration_ms(cap)
            if duration <= 0:
                logger.warning("Video has no usable duration metadata: %s", video_url)
                return []

            interval = duration / count
            frames: list[Frame] = []
            position = 0.0
            while position < duration and len(frames) < count:
                cap.set(cv2.CAP_PROP_POS_MSEC, position)
                ok, image = cap.read()
                if ok and image is not None:
                    encoded = self._encode(image)
                    if encoded is not None:
                        frames.append(Frame(timestamp_ms=position, image_b64=encoded))
                else:
                    logger.debug("No frame decoded at %.1f ms", position)
                position += interval

            logger.info("Sampled %d/%d frames (duration=%.0f ms)", len(frames), count, duration)
            return frames
        finally:
            cap.release()

    def _encode(self, image) -> str | None:
        ok, buf = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            return None
        return base64.b64encode(buf.tobytes()).decode("ascii")
