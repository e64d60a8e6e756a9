"""
Text-to-speech segmentation and reassembly pipeline.

This package exposes the main building blocks used by the CLI entry point:

- Text chunking utilities (`split_text`).
- Engine abstraction and the OpenAI implementation (`tts_engine`).
- Per-chunk conversion with bounded retry (`converter`).
- Audio concatenation backends (`merger`).
- The orchestrator tying them together (`pipeline`).
- Configuration, text loading, console output and run reports
  (`config`, `text_source`, `console`, `metadata`).
"""

from .errors import (
    ConfigurationError,
    InvalidCredentialError,
    MergeError,
    MergeToolNotFoundError,
    QuotaExceededError,
    RateLimitedError,
    ReadingLampError,
    RequestRejectedError,
    SynthesisError,
)
from .split_text import (
    MAX_CHUNK_SIZE,
    TextChunk,
    chunk_text,
    hard_split_by_length,
    split_into_sentences,
    split_long_sentence,
)
from .tts_engine import (
    AUDIO_FORMATS,
    VOICES,
    MockTtsEngine,
    OpenAITtsEngine,
    TtsEngine,
)
from .converter import AudioFragment, ConversionRequest, RetryPolicy, SegmentConverter
from .merger import (
    AudioConcatenator,
    FfmpegConcatenator,
    PydubConcatenator,
    RawConcatenator,
    merge_audio_fragments,
)
from .config import Configuration, TextSource, resolve_configuration, validate_configuration
from .text_source import load_text
from .pipeline import PipelineResult, SpeechPipeline
from .metadata import MetadataBuilder

__all__ = [
    "ReadingLampError",
    "ConfigurationError",
    "SynthesisError",
    "InvalidCredentialError",
    "QuotaExceededError",
    "RateLimitedError",
    "RequestRejectedError",
    "MergeError",
    "MergeToolNotFoundError",
    "MAX_CHUNK_SIZE",
    "TextChunk",
    "chunk_text",
    "split_into_sentences",
    "split_long_sentence",
    "hard_split_by_length",
    "VOICES",
    "AUDIO_FORMATS",
    "TtsEngine",
    "OpenAITtsEngine",
    "MockTtsEngine",
    "RetryPolicy",
    "ConversionRequest",
    "AudioFragment",
    "SegmentConverter",
    "AudioConcatenator",
    "FfmpegConcatenator",
    "RawConcatenator",
    "PydubConcatenator",
    "merge_audio_fragments",
    "Configuration",
    "TextSource",
    "resolve_configuration",
    "validate_configuration",
    "load_text",
    "PipelineResult",
    "SpeechPipeline",
    "MetadataBuilder",
]
