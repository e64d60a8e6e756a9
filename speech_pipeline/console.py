from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Iterator, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.status import Status

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline import PipelineResult
    from .split_text import TextChunk

__all__ = ["ConsoleReporter", "InteractivePrompter"]


class ConsoleReporter:
    """
    Human-facing progress output. Diagnostics go through ``logging`` instead.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    @classmethod
    def silent(cls) -> "ConsoleReporter":
        return cls(Console(quiet=True))

    def banner(self) -> None:
        self.console.print("[bold blue]🔦 Reading Lamp - Text to Speech Converter[/bold blue]\n")

    @contextlib.contextmanager
    def status(self, message: str) -> Iterator[Status]:
        with self.console.status(message) as status:
            yield status

    def file_read(self, characters: int) -> None:
        self.console.print(f"[green]✔[/green] File read successfully ({characters} characters)")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def chunking(self, characters: int, chunk_count: int) -> None:
        self.console.print(
            f"[yellow]Text is {characters} characters long, splitting into {chunk_count} chunks.[/yellow]"
        )

    def chunk_started(self, chunk: "TextChunk") -> None:
        self.console.print(
            f'[bright_black]Chunk {chunk.index}: "{escape(chunk.preview())}" ({chunk.length} chars)[/bright_black]'
        )

    def chunk_retrying(self, index: int, attempt: int, max_attempts: int, delay: float) -> None:
        self.console.print(
            f"[yellow]⚠ Chunk {index} failed (attempt {attempt}/{max_attempts}), "
            f"retrying in {delay:g}s...[/yellow]"
        )

    def finished(self, result: "PipelineResult") -> None:
        self.console.print(f"[green]✔[/green] Audio saved to: [cyan]{escape(str(result.output_path))}[/cyan]")
        self.console.print(f"[bright_black]File size: {result.size_bytes / 1024 / 1024:.2f} MB[/bright_black]")
        self.console.print(f"[bright_black]Voice: {result.voice}[/bright_black]")
        self.console.print(f"[bright_black]Format: {result.audio_format}[/bright_black]")
        if result.chunk_count > 1:
            self.console.print(f"[bright_black]Chunks processed: {result.chunk_count}[/bright_black]")

    def failed(self, message: str) -> None:
        self.console.print(f"[red]✖ {escape(message)}[/red]")

    def success(self) -> None:
        self.console.print("[bold green]✅ Conversion completed successfully![/bold green]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]❌ Error:[/bold red] {escape(message)}")

    def unexpected(self, message: str) -> None:
        self.console.print(f"[bold red]❌ Unexpected error:[/bold red] {escape(message)}")

    def cancelled(self) -> None:
        self.console.print("\n[yellow]🛑 Operation cancelled by user[/yellow]")


class InteractivePrompter:
    """
    Asks the user for whatever configuration flags and environment left unset.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def api_key(self) -> str:
        return Prompt.ask("Enter your OpenAI API key", password=True, console=self.console)

    def text_source(self) -> str:
        return Prompt.ask(
            "How would you like to provide the text? (direct = enter text, file = load from file)",
            choices=["direct", "file"],
            default="direct",
            console=self.console,
        )

    def text(self) -> str:
        return Prompt.ask("Enter the text to convert", console=self.console)

    def file_path(self) -> str:
        return Prompt.ask("Enter the path to the text file", console=self.console)

    def voice(self, choices: Sequence[str]) -> str:
        return Prompt.ask("Select a voice", choices=list(choices), default="alloy", console=self.console)

    def audio_format(self, choices: Sequence[str]) -> str:
        return Prompt.ask("Select audio format", choices=list(choices), default="mp3", console=self.console)
