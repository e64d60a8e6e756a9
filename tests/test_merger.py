import subprocess
from pathlib import Path

import pytest
from pydub import AudioSegment

from speech_pipeline.errors import MergeError, MergeToolNotFoundError
from speech_pipeline.merger import (
    FfmpegConcatenator,
    PydubConcatenator,
    RawConcatenator,
    build_manifest,
    default_concatenator,
    merge_audio_fragments,
)


def _write_fragments(directory, payloads, suffix="mp3"):
    paths = []
    for index, payload in enumerate(payloads, start=1):
        path = directory / f"output_chunk_{index}.{suffix}"
        path.write_bytes(payload)
        paths.append(path)
    return paths


def test_build_manifest_keeps_order_and_escapes_quotes(tmp_path):
    paths = [tmp_path / "b_chunk_1.mp3", tmp_path / "it's_chunk_2.mp3"]

    manifest = build_manifest(paths)

    lines = manifest.splitlines()
    assert lines[0] == f"file '{paths[0].resolve()}'"
    assert lines[1].endswith("it'\\''s_chunk_2.mp3'")


def test_ffmpeg_concatenator_stream_copies_with_manifest(tmp_path, monkeypatch):
    fragments = _write_fragments(tmp_path, [b"one", b"two", b"three"])
    output_path = tmp_path / "output.mp3"
    seen = {}

    def fake_run(command, check, capture_output):
        manifest = Path(command[command.index("-i") + 1])
        seen["command"] = command
        seen["manifest"] = manifest.read_text(encoding="utf-8")
        Path(command[-1]).write_bytes(b"merged")
        return subprocess.CompletedProcess(command, 0)

    monkeypatch.setattr("speech_pipeline.merger.shutil.which", lambda name: "/usr/bin/ffmpeg")
    monkeypatch.setattr("speech_pipeline.merger.subprocess.run", fake_run)

    FfmpegConcatenator().concatenate(fragments, output_path, "mp3")

    assert seen["command"][:5] == ["/usr/bin/ffmpeg", "-y", "-f", "concat", "-safe"]
    assert seen["command"][-3:] == ["-c", "copy", str(output_path)]
    assert seen["manifest"] == build_manifest(fragments)
    assert not (tmp_path / "output_chunks.txt").exists()
    assert output_path.read_bytes() == b"merged"


def test_ffmpeg_missing_is_reported_distinctly(tmp_path, monkeypatch):
    fragments = _write_fragments(tmp_path, [b"one", b"two"])
    monkeypatch.setattr("speech_pipeline.merger.shutil.which", lambda name: None)

    with pytest.raises(MergeToolNotFoundError, match="ensure ffmpeg is installed"):
        merge_audio_fragments(fragments, tmp_path / "output.mp3", "mp3")

    assert all(path.exists() for path in fragments)


def test_ffmpeg_failure_is_a_generic_merge_error(tmp_path, monkeypatch):
    fragments = _write_fragments(tmp_path, [b"one", b"two"])

    def failing_run(command, check, capture_output):
        raise subprocess.CalledProcessError(1, command, stderr=b"Invalid data found")

    monkeypatch.setattr("speech_pipeline.merger.shutil.which", lambda name: "/usr/bin/ffmpeg")
    monkeypatch.setattr("speech_pipeline.merger.subprocess.run", failing_run)

    with pytest.raises(MergeError) as excinfo:
        merge_audio_fragments(fragments, tmp_path / "output.mp3", "mp3")

    assert not isinstance(excinfo.value, MergeToolNotFoundError)
    assert "Please ensure ffmpeg is installed" in str(excinfo.value)
    assert not (tmp_path / "output_chunks.txt").exists()
    assert all(path.exists() for path in fragments)


def test_raw_merge_concatenates_bytes_and_deletes_fragments(tmp_path):
    fragments = _write_fragments(tmp_path, [b"\x01\x02", b"\x03", b"\x04\x05"], suffix="pcm")
    output_path = tmp_path / "output.pcm"

    merge_audio_fragments(fragments, output_path, "pcm")

    assert output_path.read_bytes() == b"\x01\x02\x03\x04\x05"
    assert not any(path.exists() for path in fragments)


def test_merge_can_keep_fragments(tmp_path):
    fragments = _write_fragments(tmp_path, [b"a", b"b"], suffix="pcm")

    merge_audio_fragments(fragments, tmp_path / "output.pcm", "pcm", delete_fragments=False)

    assert all(path.exists() for path in fragments)


def test_default_concatenator_depends_on_format():
    assert isinstance(default_concatenator("pcm"), RawConcatenator)
    assert isinstance(default_concatenator("mp3"), FfmpegConcatenator)


def test_pydub_concatenator_joins_wav_fragments(tmp_path):
    durations = [1000, 1500, 800]
    fragments = []
    for index, duration in enumerate(durations, start=1):
        segment = AudioSegment.silent(duration=duration, frame_rate=24000)
        path = tmp_path / f"output_chunk_{index}.wav"
        segment.export(path, format="wav")
        fragments.append(path)

    output_path = tmp_path / "output.wav"
    merge_audio_fragments(fragments, output_path, "wav", concatenator=PydubConcatenator())

    merged = AudioSegment.from_file(output_path, format="wav")
    assert abs(len(merged) - sum(durations)) <= 50
    assert not any(path.exists() for path in fragments)


def test_merge_requires_fragments(tmp_path):
    with pytest.raises(ValueError):
        merge_audio_fragments([], tmp_path / "output.mp3", "mp3")
