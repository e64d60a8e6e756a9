from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .config import Configuration
from .console import ConsoleReporter
from .converter import AudioFragment, RetryPolicy, SegmentConverter
from .merger import AudioConcatenator, merge_audio_fragments
from .split_text import TextChunk, chunk_text
from .tts_engine import TtsEngine

logger = logging.getLogger(__name__)

__all__ = ["PipelineResult", "SpeechPipeline"]

PACING_DELAY_SEC = 1.0


@dataclass
class PipelineResult:
    output_path: Path
    size_bytes: int
    chunk_count: int
    voice: str
    audio_format: str
    chunks: List[TextChunk] = field(default_factory=list)
    fragments: List[AudioFragment] = field(default_factory=list)
    total_retries: int = 0


class SpeechPipeline:
    """
    Chunks text, converts every chunk in order and merges the fragments into one file.
    """

    def __init__(
        self,
        engine: TtsEngine,
        config: Configuration,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        concatenator: Optional[AudioConcatenator] = None,
        reporter: Optional[ConsoleReporter] = None,
        pacing_delay: float = PACING_DELAY_SEC,
        sleep: Optional[Callable[[float], None]] = None,
        keep_fragments: bool = False,
    ) -> None:
        self.engine = engine
        self.config = config
        self.concatenator = concatenator
        self.reporter = reporter or ConsoleReporter.silent()
        self.pacing_delay = pacing_delay
        self.sleep = sleep or time.sleep
        self.keep_fragments = keep_fragments
        self.converter = SegmentConverter(
            engine,
            voice=config.voice,
            audio_format=config.audio_format,
            output_base=config.output_base,
            retry_policy=retry_policy or RetryPolicy(sleep=self.sleep),
            reporter=self.reporter,
        )

    def run(self, text: str) -> PipelineResult:
        output_path = self.config.output_path
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with self.reporter.status("Analyzing text...") as status:
            try:
                chunks = chunk_text(text, self.config.max_chunk_size)
                if len(chunks) == 1:
                    status.update("Converting text to speech...")
                    fragments: List[AudioFragment] = []
                    total_retries = self._convert_single(chunks[0], output_path)
                else:
                    self.reporter.chunking(len(text), len(chunks))
                    fragments = self._convert_chunks(chunks, output_path, status)
                    total_retries = sum(fragment.retries for fragment in fragments)
            except Exception:
                self.reporter.failed("Conversion failed")
                raise

        result = PipelineResult(
            output_path=output_path,
            size_bytes=output_path.stat().st_size,
            chunk_count=len(chunks),
            voice=self.config.voice,
            audio_format=self.config.audio_format,
            chunks=chunks,
            fragments=fragments,
            total_retries=total_retries,
        )
        self.reporter.finished(result)
        return result

    def _convert_single(self, chunk: TextChunk, output_path: Path) -> int:
        request = self.converter.request_for(chunk)
        audio_bytes, retries = self.converter.synthesize_with_retry(request)
        output_path.write_bytes(audio_bytes)
        logger.info("Wrote %s (%d bytes)", output_path, len(audio_bytes))
        return retries

    def _convert_chunks(self, chunks: List[TextChunk], output_path: Path, status) -> List[AudioFragment]:
        fragments: List[AudioFragment] = []
        merging = False
        try:
            for position, chunk in enumerate(chunks):
                status.update(f"Converting chunk {chunk.index}/{len(chunks)}...")
                fragments.append(self.converter.convert(chunk))
                if position < len(chunks) - 1:
                    self.sleep(self.pacing_delay)

            status.update("Merging audio files...")
            merging = True
            merge_audio_fragments(
                [fragment.path for fragment in fragments],
                output_path,
                self.config.audio_format,
                concatenator=self.concatenator,
                delete_fragments=not self.keep_fragments,
            )
        except Exception:
            # KeyboardInterrupt is not an Exception; an abort leaves fragments behind.
            if merging:
                # A failed merge may have written a truncated output file.
                output_path.unlink(missing_ok=True)
            if not self.keep_fragments:
                self._discard(fragments)
            raise
        return fragments

    @staticmethod
    def _discard(fragments: List[AudioFragment]) -> None:
        for fragment in fragments:
            try:
                fragment.path.unlink(missing_ok=True)
            except OSError as exc:  # pragma: no cover - best effort
                logger.warning("Failed to delete fragment %s: %s", fragment.path, exc)
