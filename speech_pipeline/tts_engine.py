from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Union

from pydub import AudioSegment

from .errors import (
    InvalidCredentialError,
    QuotaExceededError,
    RateLimitedError,
    RequestRejectedError,
    SynthesisError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "VOICES",
    "AUDIO_FORMATS",
    "DEFAULT_MODEL",
    "TtsEngine",
    "OpenAITtsEngine",
    "MockTtsEngine",
    "translate_openai_error",
]

VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
AUDIO_FORMATS = ("mp3", "opus", "aac", "flac", "wav", "pcm")
DEFAULT_MODEL = "tts-1"

# OpenAI returns raw pcm as 24kHz signed 16-bit little-endian mono.
PCM_SAMPLE_RATE = 24000
PCM_SAMPLE_WIDTH = 2
PCM_CHANNELS = 1


class TtsEngine(ABC):
    """
    Thin abstraction over a text-to-speech service that returns encoded audio bytes.
    """

    def __init__(self, *, model: str = DEFAULT_MODEL) -> None:
        self.model = model

    @abstractmethod
    def synthesize(self, text: str, *, voice: str, audio_format: str) -> bytes:
        """
        Convert ``text`` into audio bytes encoded as ``audio_format``.

        Implementations raise ``SynthesisError`` (or a subclass) on failure.
        """

    def descriptor(self) -> str:
        return self.__class__.__name__


class OpenAITtsEngine(TtsEngine):
    """
    OpenAI ``audio.speech`` implementation using the ``openai`` client.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        client: Optional[object] = None,
        timeout: float = 120.0,
    ) -> None:
        super().__init__(model=model)
        if client is None:
            from openai import OpenAI

            # Retries are owned by RetryPolicy, not by the SDK.
            client = OpenAI(api_key=api_key, max_retries=0, timeout=timeout)
        self._client = client

    def synthesize(self, text: str, *, voice: str, audio_format: str) -> bytes:
        import openai

        params = {
            "model": self.model,
            "voice": voice,
            "input": text,
            "response_format": audio_format,
        }
        logger.debug("OpenAI speech request: %s", {k: v for k, v in params.items() if k != "input"})
        try:
            response = self._client.audio.speech.create(**params)  # type: ignore[attr-defined]
        except openai.OpenAIError as exc:
            raise translate_openai_error(exc) from exc

        audio_bytes = response.content
        if not audio_bytes:
            raise SynthesisError("OpenAI API error: empty audio response")
        return audio_bytes


def translate_openai_error(exc: Exception) -> SynthesisError:
    """
    Map an ``openai`` SDK exception onto the closed set of synthesis error variants.
    """
    import openai

    code = getattr(exc, "code", None)
    detail = str(exc)

    if isinstance(exc, openai.AuthenticationError) or code == "invalid_api_key":
        return InvalidCredentialError(detail)
    if code == "insufficient_quota":
        return QuotaExceededError(detail)
    if isinstance(exc, openai.RateLimitError):
        return RateLimitedError(detail)
    if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
        return SynthesisError(f"OpenAI API error: {detail}", detail=detail)
    if isinstance(exc, openai.APIStatusError) and 400 <= exc.status_code < 500:
        return RequestRejectedError(f"OpenAI API error: {detail}", detail=detail)
    return SynthesisError(f"OpenAI API error: {detail}", detail=detail)


FailureScript = Union[Sequence[Exception], Callable[[str, int], Optional[Exception]]]


class MockTtsEngine(TtsEngine):
    """
    Lightweight mock for tests. Generates silent audio of predictable length.

    ``failures`` is either a list of exceptions raised by successive calls (``None``
    entries succeed) or a callable ``(text, call_number) -> exception or None``.
    """

    def __init__(
        self,
        *,
        base_duration_ms: int = 100,
        per_char_ms: int = 1,
        sample_rate: int = PCM_SAMPLE_RATE,
        failures: Optional[FailureScript] = None,
    ) -> None:
        super().__init__(model="mock")
        self._base_duration_ms = base_duration_ms
        self._per_char_ms = per_char_ms
        self._sample_rate = sample_rate
        self._failures = failures
        self.calls: List[Dict[str, str]] = []

    def synthesize(self, text: str, *, voice: str, audio_format: str) -> bytes:
        self.calls.append({"text": text, "voice": voice, "audio_format": audio_format})
        failure = self._next_failure(text, len(self.calls))
        if failure is not None:
            raise failure

        duration = self._base_duration_ms + len(text) * self._per_char_ms
        segment = AudioSegment.silent(duration=duration, frame_rate=self._sample_rate)
        segment = segment.set_sample_width(PCM_SAMPLE_WIDTH).set_channels(PCM_CHANNELS)
        if audio_format == "wav":
            buffer = io.BytesIO()
            segment.export(buffer, format="wav")
            return buffer.getvalue()
        # Compressed formats would need an encoder; raw frames are enough for tests.
        return segment.raw_data

    def _next_failure(self, text: str, call_number: int) -> Optional[Exception]:
        if self._failures is None:
            return None
        if callable(self._failures):
            return self._failures(text, call_number)
        if call_number <= len(self._failures):
            return self._failures[call_number - 1]
        return None
