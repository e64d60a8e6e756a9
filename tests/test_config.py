import argparse
import io

import pytest
from rich.console import Console

from speech_pipeline.config import (
    Configuration,
    TextSource,
    resolve_configuration,
    validate_configuration,
)
from speech_pipeline.console import ConsoleReporter
from speech_pipeline.errors import ConfigurationError
from speech_pipeline.text_source import load_text


class FakePrompter:
    def __init__(self, **answers):
        self.answers = answers
        self.asked = []

    def _answer(self, name):
        self.asked.append(name)
        return self.answers[name]

    def api_key(self):
        return self._answer("api_key")

    def text_source(self):
        return self._answer("text_source")

    def text(self):
        return self._answer("text")

    def file_path(self):
        return self._answer("file_path")

    def voice(self, choices):
        return self._answer("voice")

    def audio_format(self, choices):
        return self._answer("audio_format")


def _args(**overrides):
    values = {
        "api_key": None,
        "text": None,
        "file": None,
        "voice": None,
        "audio_format": None,
        "output": None,
        "model": None,
        "max_chunk_size": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def _config(tmp_path, **overrides):
    values = dict(
        api_key="sk-test",
        voice="alloy",
        audio_format="mp3",
        output_base="output",
        text_source=TextSource.direct("hello"),
    )
    values.update(overrides)
    return Configuration(**values)


def test_flags_take_precedence_over_environment():
    environ = {
        "OPENAI_API_KEY": "sk-env",
        "READING_LAMP_VOICE": "echo",
        "READING_LAMP_AUDIO_FORMAT": "wav",
        "READING_LAMP_OUTPUT": "from-env",
    }
    prompter = FakePrompter()

    config = resolve_configuration(
        _args(api_key="sk-flag", text="Hi.", voice="nova", audio_format="flac", output="from-flag"),
        environ,
        prompter,
    )

    assert config.api_key == "sk-flag"
    assert config.voice == "nova"
    assert config.audio_format == "flac"
    assert config.output_path.name == "from-flag.flac"
    assert prompter.asked == []


def test_environment_takes_precedence_over_prompts():
    environ = {
        "READING_LAMP_API_KEY": "sk-env",
        "READING_LAMP_VOICE": "Onyx",
        "READING_LAMP_AUDIO_FORMAT": "opus",
        "READING_LAMP_OUTPUT": "narration",
    }
    prompter = FakePrompter()

    config = resolve_configuration(_args(file="book.txt"), environ, prompter)

    assert config.api_key == "sk-env"
    assert config.voice == "onyx"
    assert config.audio_format == "opus"
    assert str(config.output_path) == "narration.opus"
    assert config.text_source == TextSource.file("book.txt")
    assert prompter.asked == []


def test_openai_key_is_preferred_over_reading_lamp_key():
    config = resolve_configuration(
        _args(text="Hi.", voice="alloy", audio_format="mp3"),
        {"OPENAI_API_KEY": "sk-openai", "READING_LAMP_API_KEY": "sk-lamp"},
        FakePrompter(),
    )

    assert config.api_key == "sk-openai"


def test_prompts_fill_in_missing_values():
    prompter = FakePrompter(
        api_key="sk-typed",
        text_source="file",
        file_path=" notes.md ",
        voice="shimmer",
        audio_format="aac",
    )

    config = resolve_configuration(_args(), {}, prompter)

    assert prompter.asked == ["api_key", "text_source", "file_path", "voice", "audio_format"]
    assert config.text_source == TextSource.file("notes.md")
    assert config.output_base == "output"
    assert config.max_chunk_size == 4000


def test_validate_accepts_a_complete_configuration(tmp_path):
    config = _config(tmp_path)

    assert validate_configuration(config) is config


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"api_key": "not-a-key"}, "Invalid OpenAI API key format"),
        ({"voice": "robot"}, "Invalid voice"),
        ({"audio_format": "ogg"}, "Invalid audio format"),
        ({"max_chunk_size": 5000}, "Chunk size"),
    ],
)
def test_validate_rejects_bad_values(tmp_path, overrides, message):
    with pytest.raises(ConfigurationError, match=message):
        validate_configuration(_config(tmp_path, **overrides))


def test_validate_rejects_missing_file(tmp_path):
    config = _config(tmp_path, text_source=TextSource.file(tmp_path / "missing.txt"))

    with pytest.raises(ConfigurationError, match="File not found"):
        validate_configuration(config)


def test_load_text_reads_files_and_warns_on_unknown_extension(tmp_path):
    output = io.StringIO()
    reporter = ConsoleReporter(Console(file=output, width=200))
    known = tmp_path / "chapter.md"
    known.write_text("# Title\n\nSome text.", encoding="utf-8")
    unknown = tmp_path / "chapter.rst"
    unknown.write_text("Other text.", encoding="utf-8")

    assert load_text(TextSource.file(known), reporter) == "# Title\n\nSome text."
    assert "Unknown file type" not in output.getvalue()

    assert load_text(TextSource.file(unknown), reporter) == "Other text."
    assert "Unknown file type: .rst" in output.getvalue()


def test_load_text_rejects_empty_content(tmp_path):
    empty = tmp_path / "empty.txt"
    empty.write_text("  \n\t", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="File is empty"):
        load_text(TextSource.file(empty))
    with pytest.raises(ConfigurationError):
        load_text(TextSource.direct("   "))


def test_load_text_returns_direct_text_unchanged():
    assert load_text(TextSource.direct("  Hello.  ")) == "  Hello.  "
