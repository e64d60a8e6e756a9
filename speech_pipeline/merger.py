from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from pydub import AudioSegment

from .errors import MergeError, MergeToolNotFoundError
from .tts_engine import PCM_CHANNELS, PCM_SAMPLE_RATE, PCM_SAMPLE_WIDTH

logger = logging.getLogger(__name__)

__all__ = [
    "AudioConcatenator",
    "FfmpegConcatenator",
    "RawConcatenator",
    "PydubConcatenator",
    "default_concatenator",
    "merge_audio_fragments",
]

MERGE_FAILED_MESSAGE = "Failed to merge audio files. Please ensure ffmpeg is installed on your system."


class AudioConcatenator(ABC):
    """
    Joins same-format audio files, in order, into a single output file.
    """

    @abstractmethod
    def concatenate(self, fragment_paths: Sequence[Path], output_path: Path, audio_format: str) -> None:
        """
        Raise ``MergeError`` when the output could not be produced.
        """


class FfmpegConcatenator(AudioConcatenator):
    """
    Stream-copies fragments with the ffmpeg concat demuxer; no re-encoding takes place.
    """

    def __init__(self, ffmpeg_binary: str = "ffmpeg") -> None:
        self.ffmpeg_binary = ffmpeg_binary

    def concatenate(self, fragment_paths: Sequence[Path], output_path: Path, audio_format: str) -> None:
        executable = shutil.which(self.ffmpeg_binary)
        if executable is None:
            raise MergeToolNotFoundError(
                f"'{self.ffmpeg_binary}' was not found on PATH. "
                "Please ensure ffmpeg is installed on your system."
            )

        manifest_path = output_path.with_name(f"{output_path.stem}_chunks.txt")
        manifest_path.write_text(build_manifest(fragment_paths), encoding="utf-8")
        command = [
            executable,
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest_path),
            "-c", "copy",
            str(output_path),
        ]
        logger.debug("Running %s", " ".join(command))
        try:
            subprocess.run(command, check=True, capture_output=True)
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else ""
            logger.debug("ffmpeg exited with %s: %s", exc.returncode, stderr)
            raise MergeError(MERGE_FAILED_MESSAGE) from exc
        except OSError as exc:
            raise MergeError(MERGE_FAILED_MESSAGE) from exc
        finally:
            manifest_path.unlink(missing_ok=True)


def build_manifest(fragment_paths: Sequence[Path]) -> str:
    lines = []
    for path in fragment_paths:
        safe_path = str(Path(path).resolve()).replace("'", "'\\''")
        lines.append(f"file '{safe_path}'")
    return "\n".join(lines) + "\n"


class RawConcatenator(AudioConcatenator):
    """
    Byte-level join for headerless formats such as raw pcm.
    """

    def concatenate(self, fragment_paths: Sequence[Path], output_path: Path, audio_format: str) -> None:
        try:
            with output_path.open("wb") as out:
                for path in fragment_paths:
                    with Path(path).open("rb") as fragment:
                        shutil.copyfileobj(fragment, out)
        except OSError as exc:
            raise MergeError(f"Failed to merge audio files: {exc}") from exc


class PydubConcatenator(AudioConcatenator):
    """
    Decodes every fragment with pydub and exports the joined audio.

    Unlike ``FfmpegConcatenator`` this re-encodes compressed formats.
    """

    def concatenate(self, fragment_paths: Sequence[Path], output_path: Path, audio_format: str) -> None:
        merged: AudioSegment | None = None
        try:
            for path in fragment_paths:
                segment = _load_segment(Path(path), audio_format)
                merged = segment if merged is None else merged + segment
            if merged is None:
                raise MergeError("No fragments provided for merging.")
            merged.export(output_path, format=_pydub_format(audio_format))
        except MergeError:
            raise
        except Exception as exc:
            raise MergeError(MERGE_FAILED_MESSAGE) from exc


def _pydub_format(audio_format: str) -> str:
    if audio_format == "pcm":
        return "raw"
    if audio_format == "aac":
        return "adts"
    return audio_format


def _load_segment(path: Path, audio_format: str) -> AudioSegment:
    if audio_format == "pcm":
        return AudioSegment.from_file(
            path,
            format="raw",
            frame_rate=PCM_SAMPLE_RATE,
            channels=PCM_CHANNELS,
            sample_width=PCM_SAMPLE_WIDTH,
        )
    return AudioSegment.from_file(path, format=_pydub_format(audio_format))


def default_concatenator(audio_format: str) -> AudioConcatenator:
    if audio_format == "pcm":
        return RawConcatenator()
    return FfmpegConcatenator()


def merge_audio_fragments(
    fragment_paths: Sequence[Path],
    output_path: Path,
    audio_format: str,
    *,
    concatenator: Optional[AudioConcatenator] = None,
    delete_fragments: bool = True,
) -> Path:
    """
    Concatenate ``fragment_paths`` in order into ``output_path`` and delete the fragments.

    Fragments are only deleted once the output exists; a failed merge leaves them in place.
    """
    if not fragment_paths:
        raise ValueError("No fragments provided for merging.")

    backend = concatenator or default_concatenator(audio_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    backend.concatenate(list(fragment_paths), output_path, audio_format)
    logger.info("Merged %d fragments into %s", len(fragment_paths), output_path)

    if not delete_fragments:
        return output_path
    for path in fragment_paths:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to delete fragment %s: %s", path, exc)
    return output_path
