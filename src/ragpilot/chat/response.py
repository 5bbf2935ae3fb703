"""Response stream: the output sink and user-visible side channel of a request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Union


@dataclass(frozen=True)
class MarkdownPart:
    """Model output or participant text shown to the user."""
    text: str


@dataclass(frozen=True)
class ProgressPart:
    """Transient status note."""
    message: str


@dataclass(frozen=True)
class WarningPart:
    """User-visible warning that is never sent to the model."""
    message: str


@dataclass(frozen=True)
class ReferencePart:
    """A cited source label."""
    label: str


ResponsePart = Union[MarkdownPart, ProgressPart, WarningPart, ReferencePart]


class ResponseStream:
    """Records emitted parts in order and forwards each one to subscribers."""

    def __init__(self) -> None:
        self.parts: List[ResponsePart] = []
        self._subscribers: List[Callable[[ResponsePart], None]] = []

    def subscribe(self, callback: Callable[[ResponsePart], None]) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[ResponsePart], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _emit(self, part: ResponsePart) -> None:
        self.parts.append(part)
        for callback in self._subscribers:
            callback(part)

    def markdown(self, text: str) -> None:
        if text:
            self._emit(MarkdownPart(text))

    def progress(self, message: str) -> None:
        self._emit(ProgressPart(message))

    def warning(self, message: str) -> None:
        self._emit(WarningPart(message))

    def reference(self, label: str) -> None:
        self._emit(ReferencePart(label))

    @property
    def text(self) -> str:
        """All markdown emitted so far, concatenated."""
        return "".join(p.text for p in self.parts if isinstance(p, MarkdownPart))

    @property
    def warnings(self) -> list[str]:
        return [p.message for p in self.parts if isinstance(p, WarningPart)]
