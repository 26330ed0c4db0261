"""Google Cloud Speech-to-Text 转写服务。"""

import asyncio
from collections.abc import Iterable
from functools import lru_cache

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import speech
from loguru import logger

from talksense.config import RecognitionConfig, get_settings
from talksense.exceptions import TranscriptionServiceError

SEGMENT_SEPARATOR = "\n"


@lru_cache
def get_speech_client(credentials_path: str | None = None) -> speech.SpeechClient:
    """按密钥路径缓存客户端；路径为空时走 Application Default Credentials。"""
    if credentials_path:
        return speech.SpeechClient.from_service_account_file(credentials_path)
    return speech.SpeechClient()


def build_recognition_config(config: RecognitionConfig | None = None) -> speech.RecognitionConfig:
    """固定请求参数：FLAC / 48kHz / en-US / 自动标点。"""
    config = config or get_settings().recognition
    return speech.RecognitionConfig(
        encoding=speech.RecognitionConfig.AudioEncoding.FLAC,
        sample_rate_hertz=config.sample_rate_hertz,
        language_code=config.language_code,
        enable_automatic_punctuation=config.enable_automatic_punctuation,
    )


def assemble_transcript(results: Iterable) -> str:
    """每段取排名第一的候选，去首尾空白后按换行拼接；没有结果时为空串。"""
    lines = []
    for result in results:
        if not result.alternatives:
            continue
        lines.append(result.alternatives[0].transcript.strip())
    return SEGMENT_SEPARATOR.join(lines)


def _recognize_sync(audio_bytes: bytes, config: speech.RecognitionConfig) -> str:
    client = get_speech_client(get_settings().google_credentials)
    response = client.recognize(
        config=config,
        audio=speech.RecognitionAudio(content=audio_bytes),
    )
    return assemble_transcript(response.results)


async def transcribe(
    audio_bytes: bytes,
    config: speech.RecognitionConfig | None = None,
) -> str:
    """调用 Speech-to-Text 转写 FLAC 音频；失败不重试，抛 TranscriptionServiceError。"""
    config = config or build_recognition_config()
    try:
        text = await asyncio.to_thread(_recognize_sync, audio_bytes, config)
    except (
        api_exceptions.GoogleAPIError,
        auth_exceptions.GoogleAuthError,
        FileNotFoundError,
        ValueError,
    ) as e:
        raise TranscriptionServiceError(f"speech recognition failed: {e}") from e
    logger.debug(f"{len(audio_bytes)=} {len(text)=}")
    return text
