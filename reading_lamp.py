#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console

from speech_pipeline.config import (
    Configuration,
    Prompter,
    resolve_configuration,
    validate_configuration,
)
from speech_pipeline.console import ConsoleReporter, InteractivePrompter
from speech_pipeline.errors import ReadingLampError
from speech_pipeline.merger import AudioConcatenator, PydubConcatenator
from speech_pipeline.metadata import MetadataBuilder
from speech_pipeline.pipeline import SpeechPipeline
from speech_pipeline.split_text import MAX_CHUNK_SIZE
from speech_pipeline.text_source import load_text
from speech_pipeline.tts_engine import AUDIO_FORMATS, DEFAULT_MODEL, VOICES, OpenAITtsEngine, TtsEngine

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="reading-lamp",
        description="Convert text to speech using the OpenAI API.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-k", "--api-key", help="OpenAI API key.")
    parser.add_argument("-t", "--text", help="Text to convert to speech.")
    parser.add_argument("-f", "--file", help="Path to text file.")
    parser.add_argument("-v", "--voice", help=f"Voice to use ({', '.join(VOICES)}).")
    parser.add_argument("-a", "--audio-format", help=f"Audio format ({', '.join(AUDIO_FORMATS)}).")
    parser.add_argument("-o", "--output", help="Output filename without extension (default: output).")
    parser.add_argument("--model", default=DEFAULT_MODEL, help="OpenAI speech model (default: tts-1).")
    parser.add_argument(
        "--max-chunk-size",
        type=int,
        default=MAX_CHUNK_SIZE,
        help=f"Maximum characters per synthesis request (default: {MAX_CHUNK_SIZE}).",
    )
    parser.add_argument(
        "--merge-backend",
        default="ffmpeg",
        choices=["ffmpeg", "pydub"],
        help="How fragments are joined: ffmpeg stream copy or pydub re-export.",
    )
    parser.add_argument("--keep-chunks", action="store_true", help="Keep chunk files after merging or failure.")
    parser.add_argument("--metadata-output", help="Optional path for a JSON run report.")
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def create_engine(config: Configuration) -> TtsEngine:
    return OpenAITtsEngine(api_key=config.api_key, model=config.model)


def create_concatenator(args: argparse.Namespace) -> Optional[AudioConcatenator]:
    if args.merge_backend == "pydub":
        return PydubConcatenator()
    # None lets the merger pick ffmpeg, or a raw byte join for pcm.
    return None


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    prompter: Prompter | None = None,
    console: Console | None = None,
) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.debug)

    reporter = ConsoleReporter(console)
    reporter.banner()

    if environ is None:
        load_dotenv()
        environ = os.environ
    config = resolve_configuration(args, environ, prompter or InteractivePrompter(reporter.console))
    validate_configuration(config)

    text = load_text(config.text_source, reporter)

    engine = create_engine(config)
    pipeline = SpeechPipeline(
        engine,
        config,
        concatenator=create_concatenator(args),
        reporter=reporter,
        keep_fragments=args.keep_chunks,
    )
    result = pipeline.run(text)

    if args.metadata_output:
        metadata_builder = MetadataBuilder(
            engine=engine,
            config=config,
            output_path=Path(args.metadata_output),
        )
        metadata_builder.write_metadata(metadata_builder.build_metadata(result))
        logger.info("Metadata written to %s", metadata_builder.output_path)

    reporter.success()
    return 0


def run(argv: Sequence[str] | None = None, **kwargs) -> int:
    """
    Run ``main`` and translate its outcome into a process exit code.
    """
    reporter = ConsoleReporter(kwargs.get("console"))
    try:
        return main(argv, **kwargs)
    except KeyboardInterrupt:
        reporter.cancelled()
        return 0
    except ReadingLampError as exc:
        reporter.error(str(exc))
        return 1
    except Exception as exc:
        logger.debug("Unexpected failure", exc_info=True)
        reporter.unexpected(str(exc))
        return 1


def cli() -> None:
    sys.exit(run())


if __name__ == "__main__":
    cli()
