"""Editor-facing value types and host abstractions used by the completion engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from copilot_logging import get_logger

logger = get_logger("host")


@dataclass(frozen=True)
class Position:
    """Immutable (line, character) snapshot, both zero-based."""

    line: int
    character: int

    def __post_init__(self) -> None:
        if self.line < 0 or self.character < 0:
            raise ValueError(f"position must be non-negative, got ({self.line}, {self.character})")


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position


@dataclass(frozen=True)
class Suggestion:
    """Completion text to insert at a cursor; the range is always empty (pure insertion)."""

    text: str
    insertion_range: Range

    @classmethod
    def at(cls, text: str, position: Position) -> "Suggestion":
        return cls(text=text, insertion_range=Range(position, position))


@dataclass(frozen=True)
class TriggerContext:
    """Host trigger metadata; passed through untouched."""

    trigger_kind: str = "automatic"
    selected_completion_info: Optional[Any] = None


class TextDocument(Protocol):
    """Minimal document surface the engine reads from."""

    @property
    def line_count(self) -> int: ...

    @property
    def language_id(self) -> str: ...

    @property
    def file_name(self) -> str: ...

    def line_at(self, index: int) -> str: ...

    def get_text(self, text_range: Optional[Range] = None) -> str: ...


class InMemoryDocument:
    """Plain-string document, used by hosts without a live buffer object and by tests."""

    def __init__(self, text: str, language_id: str = "plaintext", file_name: str = ""):
        self._lines: List[str] = text.replace("\r\n", "\n").split("\n")
        self._language_id = language_id
        self._file_name = file_name

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def language_id(self) -> str:
        return self._language_id

    @property
    def file_name(self) -> str:
        return self._file_name

    def line_at(self, index: int) -> str:
        if index < 0 or index >= len(self._lines):
            raise IndexError(f"line {index} out of range (0..{len(self._lines) - 1})")
        return self._lines[index]

    def get_text(self, text_range: Optional[Range] = None) -> str:
        if text_range is None:
            return "\n".join(self._lines)

        start, end = text_range.start, text_range.end
        if start.line == end.line:
            return self._lines[start.line][start.character : end.character]

        parts = [self._lines[start.line][start.character :]]
        parts.extend(self._lines[start.line + 1 : end.line])
        parts.append(self._lines[end.line][: end.character])
        return "\n".join(parts)


class CancellationToken:
    """Cooperative cancellation flag handed in by the host for one request."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Notifier(Protocol):
    """User-visible message sink (status bar, popup, LSP showMessage...)."""

    def show_information(self, message: str) -> None: ...

    def show_warning(self, message: str) -> None: ...

    def show_error(self, message: str) -> None: ...


class LoggingNotifier:
    """Default notifier that forwards user-facing messages to the log."""

    def show_information(self, message: str) -> None:
        logger.info(message)

    def show_warning(self, message: str) -> None:
        logger.warning(message)

    def show_error(self, message: str) -> None:
        logger.error(message)
