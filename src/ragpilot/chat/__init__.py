"""Chat request handling: history, commands, prompt assembly and the tool-calling loop."""

from .commands import CommandPromptLibrary, parse_command_token, resolve_command, strip_command_token
from .history import AssistantTurn, ConversationHistory, ConversationTurn, UserTurn
from .loop import AgenticLoop, LoopResult, LoopState
from .participant import ChatParticipant, ChatRequest, ChatResult
from .prompt import PromptAssembler, UserFile
from .response import MarkdownPart, ProgressPart, ReferencePart, ResponsePart, ResponseStream, WarningPart

__all__ = [
    "CommandPromptLibrary",
    "parse_command_token",
    "resolve_command",
    "strip_command_token",
    "AssistantTurn",
    "ConversationHistory",
    "ConversationTurn",
    "UserTurn",
    "AgenticLoop",
    "LoopResult",
    "LoopState",
    "ChatParticipant",
    "ChatRequest",
    "ChatResult",
    "PromptAssembler",
    "UserFile",
    "MarkdownPart",
    "ProgressPart",
    "ReferencePart",
    "ResponsePart",
    "ResponseStream",
    "WarningPart",
]
