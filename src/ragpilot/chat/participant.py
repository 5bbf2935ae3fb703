"""Request handler: retrieval, prompt assembly and the tool-calling loop for one chat request."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence

from ..cancellation import CancellationToken
from ..errors import ModelRequestError, ModelUnavailableError, RagPilotError
from ..logging_config import get_logger
from .commands import parse_command_token, resolve_command, strip_command_token
from .history import ConversationTurn
from .loop import AgenticLoop, LoopState
from .prompt import PromptAssembler, UserFile
from .response import ResponseStream

if TYPE_CHECKING:
    from ..context import AppContext

logger = get_logger(__name__)

NO_INDEX_NOTICE = "⚠️ No vector index found. Run `ragpilot index` first.\n\n"
NO_CONTEXT_NOTICE = "No relevant context found in the indexed workspace.\n\n"
DEFAULT_MODEL_CRITERIA: dict[str, Any] = {}


@dataclass
class ChatRequest:
    prompt: str
    command: Optional[str] = None
    files: list[str] = field(default_factory=list)
    tool_invocation_token: Optional[str] = None


@dataclass
class ChatResult:
    """Outcome of one request. ``state`` is None when the loop never ran."""
    metadata: dict[str, Any] = field(default_factory=dict)
    sources: list[str] = field(default_factory=list)
    state: Optional[LoopState] = None
    error: Optional[str] = None


class ChatParticipant:
    def __init__(
        self,
        ctx: "AppContext",
        assembler: Optional[PromptAssembler] = None,
        model_criteria: Optional[dict[str, Any]] = None,
    ):
        self.ctx = ctx
        self.assembler = assembler or PromptAssembler()
        self.model_criteria = DEFAULT_MODEL_CRITERIA if model_criteria is None else model_criteria

    def handle_request(
        self,
        request: ChatRequest,
        history: Sequence[ConversationTurn],
        response: ResponseStream,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ChatResult:
        """Answer ``request`` by streaming into ``response``.

        Errors are reported on the response stream once and returned in
        ``ChatResult.error``; nothing is raised to the host.
        """
        history = list(history)
        command = resolve_command(request.command, request.prompt, history)
        result = ChatResult(metadata={"command": command or ""})

        try:
            if not self.ctx.index_manager.has_index():
                response.markdown(NO_INDEX_NOTICE)
                return result

            question = request.prompt
            if not request.command and parse_command_token(question):
                question = strip_command_token(question)

            response.progress("Searching for relevant context...")
            docs = self.ctx.retriever.search(question or request.prompt)
            if not docs:
                response.markdown(NO_CONTEXT_NOTICE)

            command_prompt = None
            if command:
                command_prompt = self.ctx.prompt_library.load(command)
                if command_prompt is None:
                    response.warning(f"No prompt file found for /{command}; continuing without it.")

            payload = self.assembler.assemble(
                question,
                command_prompt=command_prompt,
                tools=self.ctx.tools,
                history=history,
                user_files=self._read_user_files(request.files, response),
                retrieved_docs=docs,
            )

            models = self.ctx.model_selector(self.model_criteria)
            if not models:
                raise ModelUnavailableError("No chat model available. Check the llm section of ragpilot.json.")

            response.progress("Generating response...")
            loop = AgenticLoop(
                models[0],
                self.ctx.tools,
                response,
                cancel_token=cancel_token,
                max_rounds=self.ctx.config["max_tool_rounds"],
                tool_invocation_token=request.tool_invocation_token,
            )
            loop_result = loop.run(payload)
            result.state = loop_result.state

            result.sources = [doc.label for doc in docs]
            if result.sources:
                response.markdown("\n\n---\n📚 **Sources:**\n")
                for label in result.sources:
                    response.markdown(f"- {label}\n")
                    response.reference(label)
            return result

        except ModelUnavailableError as e:
            logger.warning("Model selection failed: %s", e)
            response.markdown(f"❌ {e}\n\n")
            result.error = str(e)
            return result
        except ModelRequestError as e:
            logger.error("Language model error: %s (code=%s)", e.message, e.code, exc_info=True)
            response.markdown(f"❌ Error: {e.message}\n")
            result.error = str(e)
            return result
        except RagPilotError as e:
            logger.error("Chat request failed: %s", e, exc_info=True)
            response.markdown(f"❌ Error: {e}\n")
            result.error = str(e)
            return result
        except Exception as e:
            logger.exception("Unexpected error while handling chat request")
            response.markdown("❌ An unexpected error occurred.\n")
            result.error = str(e)
            return result

    def _read_user_files(self, files: Sequence[str], response: ResponseStream) -> list[UserFile]:
        user_files = []
        for file in files:
            path = Path(file)
            if not path.is_absolute():
                path = self.ctx.workspace_root / path
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read attached file %s: %s", file, e)
                response.warning(f"Could not read attached file {file}")
                continue
            user_files.append(UserFile(label=str(file), content=content))
        return user_files
