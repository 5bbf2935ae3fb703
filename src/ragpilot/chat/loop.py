"""Multi-round tool-calling conversation with a chat model.

One round: stream a model response, forwarding text as it arrives and
collecting tool calls; then run the collected calls one after another and
feed their results back as the next request. The loop ends when a round
produces no tool calls, when no call succeeds, on cancellation, or when the
round cap is reached.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

import openai
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage, HumanMessage, ToolMessage
from langchain_core.tools import BaseTool

from ..cancellation import CancellationToken
from ..errors import ModelRequestError, ToolInvocationError
from ..logging_config import get_logger
from .response import ResponseStream

logger = get_logger(__name__)

DEFAULT_MAX_ROUNDS = 15


class LoopState(str, Enum):
    REQUESTING = "requesting"
    STREAMING = "streaming"
    AWAITING_TOOLS = "awaiting_tools"
    DONE = "done"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({LoopState.DONE, LoopState.CANCELLED})


@dataclass
class LoopResult:
    """Outcome of AgenticLoop.run."""
    state: LoopState
    messages: list[BaseMessage]
    final_text: str = ""
    requests: int = 0
    tool_calls: int = 0
    failed_tool_calls: int = 0
    hit_round_limit: bool = False
    transitions: list[LoopState] = field(default_factory=list)


def chunk_text(chunk: BaseMessage) -> str:
    """Text carried by a streamed chunk (string or content-block list)."""
    content = chunk.content
    if isinstance(content, str):
        return content
    text = ""
    for item in content:
        if isinstance(item, str):
            text += item
        elif isinstance(item, dict) and item.get("type") == "text":
            text += item.get("text", "")
    return text


class AgenticLoop:
    """Drives request → stream → tools → request until the model stops calling tools."""

    def __init__(
        self,
        model: BaseChatModel,
        tools: Sequence[BaseTool],
        response: ResponseStream,
        cancel_token: Optional[CancellationToken] = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        tool_invocation_token: Optional[str] = None,
    ):
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")
        self.tools = {t.name: t for t in tools}
        self.response = response
        self.cancel_token = cancel_token or CancellationToken()
        self.max_rounds = max_rounds
        self.tool_invocation_token = tool_invocation_token
        self._runnable = model.bind_tools(list(tools)) if tools else model
        self.state = LoopState.REQUESTING
        self._transitions: list[LoopState] = []

    def _transition(self, state: LoopState) -> None:
        logger.debug("Agentic loop: %s -> %s", self.state.value, state.value)
        self.state = state
        self._transitions.append(state)

    def run(self, payload: str) -> LoopResult:
        """Run the loop with ``payload`` as the sole initial user message."""
        messages: list[BaseMessage] = [HumanMessage(content=payload)]
        result = LoopResult(state=LoopState.REQUESTING, messages=messages)
        self.state = LoopState.REQUESTING
        self._transitions = [LoopState.REQUESTING]

        while self.state not in TERMINAL_STATES:
            if self.cancel_token.is_cancelled:
                logger.info("Agentic loop cancelled after %s requests", result.requests)
                self._transition(LoopState.CANCELLED)
                break

            if result.requests >= self.max_rounds:
                logger.warning("Agentic loop stopped at the %s round cap", self.max_rounds)
                self.response.warning(
                    f"Stopped after {self.max_rounds} model rounds; the model kept requesting tools."
                )
                result.hit_round_limit = True
                self._transition(LoopState.DONE)
                break

            result.requests += 1
            text, tool_calls = self._stream_round(messages)
            result.final_text = text

            if not tool_calls:
                self._transition(LoopState.DONE)
                break

            self._transition(LoopState.AWAITING_TOOLS)
            result.tool_calls += len(tool_calls)

            tool_results = self._invoke_tools(tool_calls)
            result.failed_tool_calls += len(tool_calls) - len(tool_results)

            # every tool_call id in the assistant message must have a reply
            answered = {m.tool_call_id for m in tool_results}
            messages.append(AIMessage(
                content=text,
                tool_calls=[call for call in tool_calls if call["id"] in answered],
            ))
            if not tool_results:
                logger.info("No tool call succeeded; ending loop")
                self._transition(LoopState.DONE)
                break

            messages.extend(tool_results)
            self._transition(LoopState.REQUESTING)

        result.state = self.state
        result.transitions = list(self._transitions)
        return result

    def _stream_round(self, messages: list[BaseMessage]) -> tuple[str, list[dict[str, Any]]]:
        """Stream one model response. Returns (text, tool_calls in emission order)."""
        gathered: Optional[AIMessageChunk] = None
        text_parts: list[str] = []
        streaming = False

        try:
            for chunk in self._runnable.stream(list(messages)):
                if not streaming:
                    self._transition(LoopState.STREAMING)
                    streaming = True
                text = chunk_text(chunk)
                if text:
                    self.response.markdown(text)
                    text_parts.append(text)
                if isinstance(chunk, AIMessageChunk):
                    gathered = chunk if gathered is None else gathered + chunk
        except openai.APIError as e:
            logger.error("Model request failed: %s (code=%s)", e.message, getattr(e, "code", None))
            raise ModelRequestError(e.message, code=getattr(e, "code", None), cause=e) from e

        if not streaming:
            self._transition(LoopState.STREAMING)

        if gathered is None:
            return "".join(text_parts), []

        for invalid in gathered.invalid_tool_calls:
            logger.warning("Model produced an invalid tool call: %s", invalid)
            self.response.warning(
                f"Ignored malformed call to tool `{invalid.get('name') or 'unknown'}`: {invalid.get('error') or 'unparseable arguments'}"
            )

        tool_calls = []
        for i, call in enumerate(gathered.tool_calls):
            tool_calls.append({
                "name": call["name"],
                "args": call.get("args") or {},
                "id": call.get("id") or f"call_{len(messages)}_{i}",
                "type": "tool_call",
            })
        return "".join(text_parts), tool_calls

    def _invoke_tools(self, tool_calls: list[dict[str, Any]]) -> list[ToolMessage]:
        """Invoke calls sequentially in emission order; failures are reported and skipped."""
        results = []
        for call in tool_calls:
            try:
                results.append(self._invoke_tool(call))
            except Exception as e:
                logger.warning("Tool %s (%s) failed: %s", call["name"], call["id"], e, exc_info=True)
                self.response.warning(f"Tool `{call['name']}` failed: {e}")
        return results

    def _invoke_tool(self, call: dict[str, Any]) -> ToolMessage:
        tool = self.tools.get(call["name"])
        if tool is None:
            raise ToolInvocationError(call["name"], call["id"], "unknown tool")

        logger.info("Invoking tool %s", call["name"])
        output = tool.invoke(
            call,
            config={"metadata": {"tool_invocation_token": self.tool_invocation_token}},
        )

        if isinstance(output, ToolMessage):
            if getattr(output, "status", "success") == "error":
                raise ToolInvocationError(call["name"], call["id"], str(output.content))
            return output
        return ToolMessage(content=str(output), tool_call_id=call["id"], name=call["name"])
