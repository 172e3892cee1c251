"""Speech-to-text for a video's audio track, addressed by the video URL."""

import logging

from vericlip.ai.inference_gateway import InferenceGateway, ModelKind, Transcription

logger = logging.getLogger(__name__)

NO_TRANSCRIPT = "Unable to extract transcript"


class TranscriptExtractor:
    def __init__(self, gateway: InferenceGateway) -> None:
        self.gateway = gateway

    async def extract(self, video_url: str) -> str:
        result = await self.gateway.invoke(ModelKind.SPEECH_TO_TEXT, video_url)
        if isinstance(result, Transcription) and result.text:
            return result.text
        logger.info("Transcription returned no text for %s", video_url)
        return NO_TRANSCRIPT
