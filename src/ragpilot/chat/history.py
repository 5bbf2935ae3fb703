"""Conversation history for a chat session.

Turns are a closed union of UserTurn and AssistantTurn. Consumers match
on them exhaustively; the prompt assembler only ever sees the most recent
MAX_VISIBLE_TURNS.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Union

MAX_VISIBLE_TURNS = 6


@dataclass(frozen=True)
class UserTurn:
    """A user request. ``command`` is set when the host supplied one explicitly."""
    prompt: str
    command: Optional[str] = None


@dataclass(frozen=True)
class AssistantTurn:
    """The text of a model response."""
    text: str


ConversationTurn = Union[UserTurn, AssistantTurn]


class ConversationHistory:
    """Ordered turns of one chat session."""

    def __init__(self, turns: Iterable[ConversationTurn] = ()):
        self._turns: list[ConversationTurn] = list(turns)

    def add_user(self, prompt: str, command: Optional[str] = None) -> UserTurn:
        turn = UserTurn(prompt=prompt, command=command)
        self._turns.append(turn)
        return turn

    def add_assistant(self, text: str) -> AssistantTurn:
        turn = AssistantTurn(text=text)
        self._turns.append(turn)
        return turn

    def recent(self, limit: int = MAX_VISIBLE_TURNS) -> list[ConversationTurn]:
        """Return the last ``limit`` turns, oldest first."""
        if limit <= 0:
            return []
        return self._turns[-limit:]

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(list(self._turns))

    def __len__(self) -> int:
        return len(self._turns)
