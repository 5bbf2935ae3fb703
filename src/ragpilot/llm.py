"""Chat model configuration for OpenAI-compatible endpoints."""

from typing import Any, Callable, Mapping, Optional

from langchain_core.globals import set_debug
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from .logging_config import get_logger

logger = get_logger(__name__)

ModelSelector = Callable[[Mapping[str, Any]], list[BaseChatModel]]


def get_llm(llm_config: Mapping[str, Any], verbose: bool = False) -> ChatOpenAI:
    """Get a configured ChatOpenAI instance.

    A local server given by ``base_url`` usually needs no key, so a
    placeholder is sent when none is configured. Without ``base_url`` the
    key falls back to OPENAI_API_KEY as usual.

    Args:
        llm_config: The ``llm`` section of the configuration
        verbose: Enable LangChain debug output

    Returns:
        ChatOpenAI instance with streaming tool calls
    """
    llm_kwargs = {
        "model": llm_config["model"],
        "max_tokens": llm_config.get("max_tokens"),
        "temperature": llm_config.get("temperature"),
    }
    if llm_config.get("base_url"):
        llm_kwargs["base_url"] = llm_config["base_url"]
        llm_kwargs["api_key"] = llm_config.get("api_key") or "not-needed"
    elif llm_config.get("api_key"):
        llm_kwargs["api_key"] = llm_config["api_key"]

    llm = ChatOpenAI(**llm_kwargs)

    if verbose:
        set_debug(True)
        logger.info("LangChain debug logging enabled")
    return llm


def select_chat_models(
    criteria: Optional[Mapping[str, Any]],
    llm_config: Mapping[str, Any],
    verbose: bool = False,
) -> list[BaseChatModel]:
    """Return the chat models matching ``criteria``.

    Only ``family`` is understood: it must prefix the configured model name.
    An empty list means no model is available.
    """
    model = llm_config.get("model")
    if not model:
        logger.warning("No chat model configured")
        return []

    family = (criteria or {}).get("family")
    if family and not str(model).startswith(family):
        logger.warning("Configured model %s does not match family %s", model, family)
        return []

    return [get_llm(llm_config, verbose=verbose)]
