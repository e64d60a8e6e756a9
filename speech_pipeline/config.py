from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence

from .errors import ConfigurationError
from .split_text import MAX_CHUNK_SIZE
from .tts_engine import AUDIO_FORMATS, DEFAULT_MODEL, VOICES

logger = logging.getLogger(__name__)

__all__ = [
    "API_INPUT_LIMIT",
    "DEFAULT_OUTPUT_BASE",
    "TextSource",
    "Configuration",
    "Prompter",
    "resolve_configuration",
    "validate_configuration",
]

API_INPUT_LIMIT = 4096
DEFAULT_OUTPUT_BASE = "output"

API_KEY_ENV_VARS = ("OPENAI_API_KEY", "READING_LAMP_API_KEY")
VOICE_ENV_VAR = "READING_LAMP_VOICE"
AUDIO_FORMAT_ENV_VAR = "READING_LAMP_AUDIO_FORMAT"
OUTPUT_ENV_VAR = "READING_LAMP_OUTPUT"


@dataclass(frozen=True)
class TextSource:
    kind: str  # "direct" or "file"
    text: Optional[str] = None
    path: Optional[Path] = None

    @classmethod
    def direct(cls, text: str) -> "TextSource":
        return cls(kind="direct", text=text)

    @classmethod
    def file(cls, path: str | Path) -> "TextSource":
        return cls(kind="file", path=Path(path))


@dataclass(frozen=True)
class Configuration:
    api_key: str
    voice: str
    audio_format: str
    output_base: str
    text_source: TextSource
    model: str = DEFAULT_MODEL
    max_chunk_size: int = MAX_CHUNK_SIZE

    @property
    def output_path(self) -> Path:
        return Path(f"{self.output_base}.{self.audio_format}")


class Prompter(Protocol):
    def api_key(self) -> str: ...

    def text_source(self) -> str: ...

    def text(self) -> str: ...

    def file_path(self) -> str: ...

    def voice(self, choices: Sequence[str]) -> str: ...

    def audio_format(self, choices: Sequence[str]) -> str: ...


def resolve_configuration(
    args: Any,
    environ: Mapping[str, str],
    prompter: Prompter,
) -> Configuration:
    """
    Merge CLI flags, environment variables and interactive answers (in that precedence).

    ``args`` is an ``argparse.Namespace`` (or anything with the same attributes).
    Nothing is validated here; see ``validate_configuration``.
    """
    api_key = getattr(args, "api_key", None) or _first_env(environ, API_KEY_ENV_VARS)
    if not api_key:
        api_key = prompter.api_key()

    text = getattr(args, "text", None)
    file_path = getattr(args, "file", None)
    if text:
        text_source = TextSource.direct(text)
    elif file_path:
        text_source = TextSource.file(file_path)
    elif prompter.text_source() == "file":
        text_source = TextSource.file(prompter.file_path().strip())
    else:
        text_source = TextSource.direct(prompter.text())

    voice = getattr(args, "voice", None) or environ.get(VOICE_ENV_VAR)
    if not voice:
        voice = prompter.voice(VOICES)

    audio_format = getattr(args, "audio_format", None) or environ.get(AUDIO_FORMAT_ENV_VAR)
    if not audio_format:
        audio_format = prompter.audio_format(AUDIO_FORMATS)

    output_base = getattr(args, "output", None) or environ.get(OUTPUT_ENV_VAR) or DEFAULT_OUTPUT_BASE

    max_chunk_size = getattr(args, "max_chunk_size", None)
    return Configuration(
        api_key=api_key.strip(),
        voice=voice.strip().lower(),
        audio_format=audio_format.strip().lower(),
        output_base=output_base,
        text_source=text_source,
        model=getattr(args, "model", None) or DEFAULT_MODEL,
        max_chunk_size=MAX_CHUNK_SIZE if max_chunk_size is None else max_chunk_size,
    )


def validate_configuration(config: Configuration) -> Configuration:
    if not config.api_key or not config.api_key.startswith("sk-"):
        raise ConfigurationError("Invalid OpenAI API key format")

    if config.voice not in VOICES:
        raise ConfigurationError(f"Invalid voice. Supported voices: {', '.join(VOICES)}")

    if config.audio_format not in AUDIO_FORMATS:
        raise ConfigurationError(f"Invalid audio format. Supported formats: {', '.join(AUDIO_FORMATS)}")

    if not 1 <= config.max_chunk_size <= API_INPUT_LIMIT:
        raise ConfigurationError(f"Chunk size must be between 1 and {API_INPUT_LIMIT} characters")

    source = config.text_source
    if source.kind == "file":
        if source.path is None or not source.path.is_file():
            raise ConfigurationError(f"File not found: {source.path}")
    elif source.kind != "direct":
        raise ConfigurationError(f"Unknown text source: {source.kind}")

    logger.debug(
        "Configuration: voice=%s format=%s output=%s model=%s max_chunk_size=%d",
        config.voice,
        config.audio_format,
        config.output_path,
        config.model,
        config.max_chunk_size,
    )
    return config


def _first_env(environ: Mapping[str, str], names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None
