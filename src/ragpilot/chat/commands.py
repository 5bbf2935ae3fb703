"""Slash-command resolution and custom prompt lookup."""

import re
from pathlib import Path
from typing import Iterable, Optional, Sequence

from typing_extensions import assert_never

from ..logging_config import get_logger
from .history import AssistantTurn, ConversationTurn, UserTurn

logger = get_logger(__name__)

COMMAND_PATTERN = re.compile(r"^/([A-Za-z0-9_-]+)")
PROMPT_SUFFIXES = (".prompt.md", ".md")


def parse_command_token(text: str) -> Optional[str]:
    """Return the command name of a leading ``/token``, if any."""
    match = COMMAND_PATTERN.match(text)
    return match.group(1) if match else None


def strip_command_token(text: str) -> str:
    """Remove a leading ``/token`` and the whitespace after it."""
    return COMMAND_PATTERN.sub("", text, count=1).lstrip()


def resolve_command(
    explicit: Optional[str],
    prompt: str,
    history: Sequence[ConversationTurn] = (),
) -> Optional[str]:
    """Pick the active command for a request.

    First match wins: the explicit command of the request, a leading
    ``/token`` in its text, then the most recent history turn that carried
    an explicit command or a leading ``/token``.
    """
    if explicit:
        return explicit

    token = parse_command_token(prompt)
    if token:
        return token

    for turn in reversed(history):
        match turn:
            case UserTurn(prompt=turn_prompt, command=command):
                if command:
                    return command
                token = parse_command_token(turn_prompt)
                if token:
                    return token
            case AssistantTurn():
                continue
            case _:
                assert_never(turn)

    return None


class CommandPromptLibrary:
    """Finds ``<command>.prompt.md`` or ``<command>.md`` in the prompt directories."""

    def __init__(self, prompt_dirs: Iterable[str | Path], base_dir: str | Path | None = None):
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        self.prompt_dirs = [base / Path(d) for d in prompt_dirs]

    def find(self, command: str) -> Optional[Path]:
        for directory in self.prompt_dirs:
            for suffix in PROMPT_SUFFIXES:
                candidate = directory / f"{command}{suffix}"
                if candidate.is_file():
                    return candidate
        return None

    def load(self, command: str) -> Optional[str]:
        """Return the prompt text for ``command``, or None when no file exists."""
        path = self.find(command)
        if path is None:
            logger.info("No custom prompt found for /%s", command)
            return None
        return path.read_text(encoding="utf-8").strip()

    def available(self) -> list[str]:
        names = set()
        for directory in self.prompt_dirs:
            if not directory.is_dir():
                continue
            for suffix in PROMPT_SUFFIXES:
                for path in directory.glob(f"*{suffix}"):
                    if suffix == ".md" and path.name.endswith(".prompt.md"):
                        continue
                    names.add(path.name[: -len(suffix)])
        return sorted(names)
