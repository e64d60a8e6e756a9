from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Tuple, TypeVar

from .console import ConsoleReporter
from .errors import SynthesisError
from .split_text import TextChunk
from .tts_engine import DEFAULT_MODEL, TtsEngine

logger = logging.getLogger(__name__)

__all__ = ["RetryPolicy", "ConversionRequest", "AudioFragment", "SegmentConverter", "fragment_path"]

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with linear backoff: attempt ``n`` failing waits ``n * base_delay`` seconds.

    Only ``SynthesisError`` instances whose ``retryable`` flag is set are retried; anything
    else propagates on the first failure.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")

    def backoff(self, attempt: int) -> float:
        return attempt * self.base_delay

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, SynthesisError) and exc.retryable

    def run(
        self,
        operation: Callable[[], T],
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    ) -> Tuple[T, int]:
        """
        Call ``operation`` until it succeeds; return its result and the number of retries used.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation(), attempt - 1
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                if attempt >= self.max_attempts:
                    raise
                delay = self.backoff(attempt)
                logger.warning(
                    "Synthesis failed (attempt %d/%d): %s. Retrying in %.2fs.",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                if on_retry is not None:
                    on_retry(attempt, exc, delay)
                self.sleep(delay)


@dataclass(frozen=True)
class ConversionRequest:
    chunk: TextChunk
    voice: str
    audio_format: str
    model: str = DEFAULT_MODEL


@dataclass(frozen=True)
class AudioFragment:
    index: int
    path: Path
    size_bytes: int
    retries: int = 0


def fragment_path(output_base: str, index: int, audio_format: str) -> Path:
    """
    Temporary location of the audio for chunk ``index``, next to the final output.
    """
    return Path(f"{output_base}_chunk_{index}.{audio_format}")


class SegmentConverter:
    """
    Converts one chunk at a time through the engine, retrying per ``RetryPolicy``.
    """

    def __init__(
        self,
        engine: TtsEngine,
        *,
        voice: str,
        audio_format: str,
        output_base: str,
        retry_policy: Optional[RetryPolicy] = None,
        reporter: Optional[ConsoleReporter] = None,
    ) -> None:
        self.engine = engine
        self.voice = voice
        self.audio_format = audio_format
        self.output_base = output_base
        self.retry_policy = retry_policy or RetryPolicy()
        self.reporter = reporter or ConsoleReporter.silent()

    def request_for(self, chunk: TextChunk) -> ConversionRequest:
        return ConversionRequest(
            chunk=chunk,
            voice=self.voice,
            audio_format=self.audio_format,
            model=self.engine.model,
        )

    def convert(self, chunk: TextChunk) -> AudioFragment:
        self.reporter.chunk_started(chunk)
        request = self.request_for(chunk)
        audio_bytes, retries = self.synthesize_with_retry(request)

        path = fragment_path(self.output_base, chunk.index, self.audio_format)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(audio_bytes)
        logger.info("Wrote fragment %s (%d bytes, %d retries)", path, len(audio_bytes), retries)
        return AudioFragment(index=chunk.index, path=path, size_bytes=len(audio_bytes), retries=retries)

    def synthesize_with_retry(self, request: ConversionRequest) -> Tuple[bytes, int]:
        def attempt() -> bytes:
            return self.engine.synthesize(
                request.chunk.content,
                voice=request.voice,
                audio_format=request.audio_format,
            )

        def on_retry(attempt_number: int, exc: BaseException, delay: float) -> None:
            self.reporter.chunk_retrying(
                request.chunk.index, attempt_number, self.retry_policy.max_attempts, delay
            )

        try:
            return self.retry_policy.run(attempt, on_retry=on_retry)
        except SynthesisError as exc:
            logger.error("Chunk %d permanently failed: %s", request.chunk.index, exc)
            raise
