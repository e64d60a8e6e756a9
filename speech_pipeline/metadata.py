from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from .config import Configuration
from .converter import fragment_path
from .pipeline import PipelineResult
from .tts_engine import TtsEngine

__all__ = ["MetadataBuilder"]


@dataclass
class MetadataBuilder:
    engine: TtsEngine
    config: Configuration
    output_path: Path

    def build_metadata(self, result: PipelineResult) -> Dict[str, object]:
        retries_by_chunk = {fragment.index: fragment.retries for fragment in result.fragments}

        metadata = {
            "created_at": datetime.now(timezone.utc).isoformat(),
            "engine": self.engine.descriptor(),
            "model": self.engine.model,
            "voice": result.voice,
            "format": result.audio_format,
            "max_chunk_size": self.config.max_chunk_size,
            "chunks": [
                {
                    "index": chunk.index,
                    "chars": chunk.length,
                    "file": _fragment_name(self.config, chunk.index, result),
                    "bytes": _fragment_size(chunk.index, result),
                    "retries": retries_by_chunk.get(chunk.index, 0),
                }
                for chunk in result.chunks
            ],
            "final_output": str(result.output_path),
            "final_bytes": result.size_bytes,
            "retries": {"total": result.total_retries},
        }

        return metadata

    def write_metadata(self, metadata: Dict[str, object]) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with self.output_path.open("w", encoding="utf-8") as f:
            json.dump(metadata, f, ensure_ascii=False, indent=2)


def _fragment_name(config: Configuration, index: int, result: PipelineResult) -> str | None:
    # Single-chunk runs write straight to the output file.
    if result.chunk_count == 1:
        return None
    return fragment_path(config.output_base, index, config.audio_format).name


def _fragment_size(index: int, result: PipelineResult) -> int:
    if result.chunk_count == 1:
        return result.size_bytes
    for fragment in result.fragments:
        if fragment.index == index:
            return fragment.size_bytes
    return 0
