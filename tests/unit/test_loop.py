"""Unit tests for the tool-calling loop."""

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langchain_openai.chat_models.base import _convert_message_to_dict

from ragpilot.cancellation import CancellationToken
from ragpilot.chat.loop import AgenticLoop, LoopState
from ragpilot.chat.response import ResponseStream, WarningPart
from ragpilot.errors import ModelRequestError
from ragpilot.testing import ai_response, malformed_tool_call, tool_call


@pytest.fixture
def response():
    return ResponseStream()


class TestSingleToolRound:
    def test_one_tool_round_then_text(self, mock_llm_factory, mock_tools_factory, response):
        tool_responses = {"rag_search": "found config.py"}
        llm = mock_llm_factory([
            ai_response("Let me look. ", [tool_call("rag_search", {"query": "config"}, "call_1")]),
            "Config is loaded in config.py.",
        ])
        loop = AgenticLoop(llm, mock_tools_factory(tool_responses), response)

        result = loop.run("payload")

        assert result.state is LoopState.DONE
        assert result.requests == 2
        assert tool_responses["calls"] == [{"tool": "rag_search", "key": "config"}]
        assert result.final_text == "Config is loaded in config.py."

        history = result.messages
        assert isinstance(history[0], HumanMessage) and history[0].content == "payload"
        assert [type(m) for m in history[1:]] == [AIMessage, ToolMessage]
        assert history[1].tool_calls[0]["id"] == "call_1"
        assert history[2].tool_call_id == "call_1"
        assert history[2].content == "found config.py"

        assert response.text == "Let me look. Config is loaded in config.py."
        assert result.transitions == [
            LoopState.REQUESTING,
            LoopState.STREAMING,
            LoopState.AWAITING_TOOLS,
            LoopState.REQUESTING,
            LoopState.STREAMING,
            LoopState.DONE,
        ]

    def test_second_request_carries_tool_results(self, mock_llm_factory, mock_tools_factory, response):
        llm = mock_llm_factory([
            ai_response(tool_calls=[tool_call("rag_search", {"query": "a"}, "c1")]),
            "done",
        ])
        AgenticLoop(llm, mock_tools_factory({"rag_search": "hit"}), response).run("payload")

        assert len(llm.requests) == 2
        assert len(llm.requests[0]) == 1
        assert isinstance(llm.requests[1][-1], ToolMessage)
        assert llm.bound_tools == ["rag_search", "read_file_lines", "list_directory", "find_files_by_name"]

    def test_plain_answer_is_one_request(self, mock_llm_factory, response):
        llm = mock_llm_factory(["just text"])
        result = AgenticLoop(llm, [], response).run("payload")

        assert result.state is LoopState.DONE
        assert result.requests == 1
        assert result.tool_calls == 0
        assert response.text == "just text"


class TestCancellation:
    def test_pre_cancelled_token_makes_no_request(self, mock_llm_factory, response):
        llm = mock_llm_factory(["never"])
        token = CancellationToken()
        token.cancel()

        result = AgenticLoop(llm, [], response, cancel_token=token).run("payload")

        assert result.state is LoopState.CANCELLED
        assert result.requests == 0
        assert llm.requests == []
        assert response.parts == []

    def test_cancel_during_tools_stops_before_next_request(self, mock_llm_factory, mock_tools_factory, response):
        token = CancellationToken()

        def cancel_and_answer(query):
            token.cancel()
            return "partial"

        llm = mock_llm_factory([
            ai_response(tool_calls=[tool_call("rag_search", {"query": "x"}, "c1")]),
            "unreachable",
        ])
        tools = mock_tools_factory({"rag_search": cancel_and_answer})
        result = AgenticLoop(llm, tools, response, cancel_token=token).run("payload")

        assert result.state is LoopState.CANCELLED
        assert result.requests == 1


class TestToolFailures:
    def test_failed_call_is_warned_and_excluded(self, mock_llm_factory, mock_tools_factory, response):
        llm = mock_llm_factory([
            ai_response(tool_calls=[
                tool_call("read_file_lines", {"path": "a.py"}, "bad"),
                tool_call("rag_search", {"query": "q"}, "good"),
            ]),
            "answer",
        ])
        tools = mock_tools_factory({"read_file_lines": OSError("disk error"), "rag_search": "hit"})

        result = AgenticLoop(llm, tools, response).run("payload")

        assert result.state is LoopState.DONE
        assert result.failed_tool_calls == 1
        tool_messages = [m for m in result.messages if isinstance(m, ToolMessage)]
        assert [m.tool_call_id for m in tool_messages] == ["good"]
        assert any("read_file_lines" in w and "disk error" in w for w in response.warnings)

        # the follow-up request must answer every tool_call id the assistant message carries
        wire = [_convert_message_to_dict(m) for m in llm.requests[1]]
        assistant = next(m for m in wire if m["role"] == "assistant")
        replies = [m["tool_call_id"] for m in wire if m["role"] == "tool"]
        assert [c["id"] for c in assistant["tool_calls"]] == replies == ["good"]

    def test_malformed_call_is_warned_and_skipped(self, mock_llm_factory, mock_tools_factory, response):
        tool_responses = {}
        llm = mock_llm_factory([
            ai_response("Let me look.", invalid_tool_calls=[malformed_tool_call("rag_search", "[1, 2]", "m1")]),
            "unreachable",
        ])

        result = AgenticLoop(llm, mock_tools_factory(tool_responses), response).run("payload")

        assert result.state is LoopState.DONE
        assert result.requests == 1
        assert result.tool_calls == 0
        assert "calls" not in tool_responses
        assert any("Ignored malformed call to tool `rag_search`" in w for w in response.warnings)

    def test_all_calls_failing_ends_loop(self, mock_llm_factory, mock_tools_factory, response):
        llm = mock_llm_factory([
            ai_response(tool_calls=[tool_call("no_such_tool", {}, "c1")]),
            "unreachable",
        ])
        result = AgenticLoop(llm, mock_tools_factory(), response).run("payload")

        assert result.state is LoopState.DONE
        assert result.requests == 1
        assert result.failed_tool_calls == 1
        assert isinstance(response.parts[-1], WarningPart)

    def test_calls_run_in_emission_order(self, mock_llm_factory, mock_tools_factory, response):
        tool_responses = {}
        llm = mock_llm_factory([
            ai_response(tool_calls=[
                tool_call("list_directory", {"path": "src"}, "c1"),
                tool_call("find_files_by_name", {"pattern": "*.py"}, "c2"),
                tool_call("rag_search", {"query": "q"}, "c3"),
            ]),
            "ok",
        ])
        AgenticLoop(llm, mock_tools_factory(tool_responses), response).run("payload")

        assert [c["tool"] for c in tool_responses["calls"]] == ["list_directory", "find_files_by_name", "rag_search"]


class TestRoundCap:
    def test_cap_ends_loop_with_warning(self, mock_llm_factory, mock_tools_factory, response):
        llm = mock_llm_factory([ai_response(tool_calls=[tool_call("rag_search", {"query": "again"}, "c")])])

        result = AgenticLoop(llm, mock_tools_factory({"rag_search": "hit"}), response, max_rounds=3).run("payload")

        assert result.state is LoopState.DONE
        assert result.hit_round_limit is True
        assert result.requests == 3
        assert response.warnings

    def test_invalid_cap(self, mock_llm_factory, response):
        with pytest.raises(ValueError):
            AgenticLoop(mock_llm_factory(["x"]), [], response, max_rounds=0)


class TestModelErrors:
    def test_api_error_becomes_model_request_error(self, mock_llm_factory, response):
        error = openai.APIError(
            "rate limited",
            request=httpx.Request("POST", "http://localhost/v1/chat/completions"),
            body={"code": "rate_limit_exceeded"},
        )
        llm = mock_llm_factory(["unused"], error=error)

        with pytest.raises(ModelRequestError) as exc_info:
            AgenticLoop(llm, [], response).run("payload")

        assert exc_info.value.message == "rate limited"
        assert exc_info.value.code == "rate_limit_exceeded"
        assert exc_info.value.cause is error
