from __future__ import annotations

import logging
from typing import Optional

from .config import TextSource
from .console import ConsoleReporter
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = ["SUPPORTED_EXTENSIONS", "load_text"]

SUPPORTED_EXTENSIONS = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".json": "application/json",
    ".js": "text/javascript",
    ".ts": "text/typescript",
    ".html": "text/html",
    ".css": "text/css",
    ".xml": "text/xml",
    ".csv": "text/csv",
}


def load_text(source: TextSource, reporter: Optional[ConsoleReporter] = None) -> str:
    """
    Return the text to synthesize, rejecting content that is empty once trimmed.

    Files with an unlisted extension are still read as UTF-8 plain text, with a warning.
    """
    reporter = reporter or ConsoleReporter.silent()

    if source.kind == "direct":
        text = source.text or ""
        if not text.strip():
            raise ConfigurationError("No text provided")
        return text

    path = source.path.resolve()
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        logger.warning("Unknown file type %r for %s", path.suffix, path)
        reporter.warning(f"Unknown file type: {path.suffix or '(none)'}. Attempting to read as plain text.")

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"File not found: {source.path}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"File is not valid UTF-8 text: {source.path}") from exc

    if not text.strip():
        raise ConfigurationError("File is empty")

    reporter.file_read(len(text))
    return text
