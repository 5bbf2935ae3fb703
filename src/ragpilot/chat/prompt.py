"""Composition of the single instruction payload sent to the model."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from langchain_core.tools import BaseTool
from typing_extensions import assert_never

from ..rag.models import RetrievedDoc
from .history import MAX_VISIBLE_TURNS, AssistantTurn, ConversationTurn, UserTurn

ASSISTANT_TRUNCATE_CHARS = 500
ELLIPSIS = "..."

BASE_SYSTEM_PROMPT = """
## ROLE
You are a coding assistant working inside the user's workspace.

## CONTEXT
The sections below contain excerpts retrieved from an index of the workspace
and of external repositories the user has added, files the user attached to
this request, and the recent conversation. Ground your answer in them and cite
file paths when you rely on an excerpt.

## TOOLS
When tools are listed, call them to look things up instead of guessing.
""".strip()

ACTION_DIRECTIVE = """
## HOW TO RESPOND
- Act on the request directly. Do not ask for permission before using a tool or making a recommendation.
- If information is missing, use the available tools to find it before answering.
- Only ask the user a question when the request is genuinely ambiguous and no tool can resolve it.
- Finish with a concrete answer: code, steps, or a clear conclusion.
""".strip()


@dataclass(frozen=True)
class UserFile:
    """Content the user attached to the request."""
    label: str
    content: str


def truncate(text: str, limit: int = ASSISTANT_TRUNCATE_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _fenced(label: str, content: str) -> str:
    return f"## {label}\n```\n{content}\n```"


class PromptAssembler:
    """Builds the instruction string from its parts in a fixed order.

    Order: base instruction, command prompt, tool catalog, history, user
    files, retrieved context, question, action directive. Empty optional
    sections are omitted entirely.
    """

    def __init__(
        self,
        system_prompt: str = BASE_SYSTEM_PROMPT,
        max_history_turns: int = MAX_VISIBLE_TURNS,
        assistant_truncate_chars: int = ASSISTANT_TRUNCATE_CHARS,
    ):
        self.system_prompt = system_prompt
        self.max_history_turns = max_history_turns
        self.assistant_truncate_chars = assistant_truncate_chars

    def assemble(
        self,
        question: str,
        *,
        command_prompt: Optional[str] = None,
        tools: Iterable[BaseTool] = (),
        history: Sequence[ConversationTurn] = (),
        user_files: Iterable[UserFile] = (),
        retrieved_docs: Iterable[RetrievedDoc] = (),
    ) -> str:
        sections = [self.system_prompt]

        if command_prompt:
            sections.append(f"# Command Instructions\n{command_prompt}")

        tool_section = self._tool_section(tools)
        if tool_section:
            sections.append(tool_section)

        history_section = self._history_section(history)
        if history_section:
            sections.append(history_section)

        files = [_fenced(f.label, f.content) for f in user_files]
        if files:
            sections.append("# User Provided Files\n\n" + "\n\n".join(files))

        docs = [_fenced(doc.label, doc.text) for doc in retrieved_docs]
        if docs:
            sections.append("# Retrieved Context\n\n" + "\n\n".join(docs))

        sections.append(f"# User Question\n{question}")
        sections.append(ACTION_DIRECTIVE)
        return "\n\n".join(sections)

    def _tool_section(self, tools: Iterable[BaseTool]) -> str:
        lines = [f"- **{t.name}**: {' '.join(t.description.split())}" for t in tools]
        if not lines:
            return ""
        return "# Available Tools\n" + "\n".join(lines)

    def _history_section(self, history: Sequence[ConversationTurn]) -> str:
        visible = list(history)[-self.max_history_turns:] if self.max_history_turns > 0 else []
        if not visible:
            return ""

        lines = []
        for turn in visible:
            match turn:
                case UserTurn(prompt=prompt, command=command):
                    prefix = f"/{command} " if command else ""
                    lines.append(f"**User**: {prefix}{prompt}")
                case AssistantTurn(text=text):
                    lines.append(f"**Assistant**: {truncate(text, self.assistant_truncate_chars)}")
                case _:
                    assert_never(turn)
        return "# Conversation History\n" + "\n\n".join(lines)
