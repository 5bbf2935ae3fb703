"""Unit tests for slash-command resolution and prompt lookup."""

from ragpilot.chat.commands import (
    CommandPromptLibrary,
    parse_command_token,
    resolve_command,
    strip_command_token,
)
from ragpilot.chat.history import AssistantTurn, UserTurn


class TestResolveCommand:
    def test_leading_token(self):
        assert resolve_command(None, "/review this", []) == "review"

    def test_explicit_wins(self):
        assert resolve_command("explain", "/review this", [UserTurn("x", command="fix")]) == "explain"

    def test_falls_back_to_most_recent_history_command(self):
        history = [
            UserTurn("/old first"),
            AssistantTurn("answer"),
            UserTurn("again", command="recent"),
            AssistantTurn("/notacommand in model text"),
        ]
        assert resolve_command(None, "follow-up", history) == "recent"

    def test_history_token_in_text(self):
        history = [UserTurn("/tests write them"), AssistantTurn("done"), UserTurn("plain")]
        assert resolve_command(None, "more", history) == "tests"

    def test_assistant_turns_are_ignored(self):
        assert resolve_command(None, "hi", [AssistantTurn("/review")]) is None

    def test_none_when_nothing_matches(self):
        assert resolve_command(None, "what does this do?", [UserTurn("plain")]) is None

    def test_token_must_lead(self):
        assert resolve_command(None, "please /review", []) is None


class TestTokenHelpers:
    def test_parse(self):
        assert parse_command_token("/fix-bug_2 now") == "fix-bug_2"
        assert parse_command_token("/") is None
        assert parse_command_token(" /review") is None

    def test_strip(self):
        assert strip_command_token("/review   this code") == "this code"
        assert strip_command_token("no command") == "no command"


class TestCommandPromptLibrary:
    def test_prompt_md_preferred_over_md(self, tmp_path):
        prompts = tmp_path / ".github" / "prompts"
        prompts.mkdir(parents=True)
        (prompts / "review.prompt.md").write_text("Use the checklist.\n", encoding="utf-8")
        (prompts / "review.md").write_text("Other text", encoding="utf-8")

        library = CommandPromptLibrary([".github/prompts"], base_dir=tmp_path)
        assert library.load("review") == "Use the checklist."

    def test_later_directory_is_searched(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "explain.md").write_text("Explain simply.", encoding="utf-8")

        library = CommandPromptLibrary(["a", "b"], base_dir=tmp_path)
        assert library.load("explain") == "Explain simply."

    def test_missing_prompt_is_none(self, tmp_path):
        assert CommandPromptLibrary(["prompts"], base_dir=tmp_path).load("review") is None

    def test_available(self, tmp_path):
        prompts = tmp_path / "prompts"
        prompts.mkdir()
        (prompts / "review.prompt.md").write_text("x", encoding="utf-8")
        (prompts / "explain.md").write_text("x", encoding="utf-8")
        assert CommandPromptLibrary(["prompts"], base_dir=tmp_path).available() == ["explain", "review"]
