"""
Tests for the generation pipeline: sanitizer, orchestrator, end-to-end flow.

Run with:
    pytest tests/test_pipeline.py -v
"""

import asyncio
import time

import pytest

from commitmsg.config import Config, GenerationBudget
from commitmsg.git import ChangeUnit, GitError, estimate_tokens
from commitmsg.llm import BackendRequest, LLMError, LLMTimeout
from commitmsg.pipeline import (
    CONVENTIONAL_RE,
    Deadline,
    NoChanges,
    Orchestrator,
    PipelineOutcome,
    call_with_deadline,
    fallback_message,
    generate_commit_message,
    sanitize_message,
)

from conftest import ScriptedClient, StubGit, make_stat


def make_unit(path, content):
    return ChangeUnit(path=path, content=content, token_estimate=estimate_tokens(content))


def run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------

class TestSanitizeMessage:

    FALLBACK = "chore: update files"

    def test_valid_message_passes_through(self, budget):
        assert sanitize_message("feat(api): add endpoint", budget, self.FALLBACK) == "feat(api): add endpoint"

    def test_non_conforming_becomes_fallback(self, budget):
        assert sanitize_message("updated stuff", budget, self.FALLBACK) == self.FALLBACK

    def test_code_fence_is_stripped(self, budget):
        raw = "```\nfix(parser): handle empty input\n```"
        assert sanitize_message(raw, budget, self.FALLBACK) == "fix(parser): handle empty input"

    def test_inline_fence_is_stripped(self, budget):
        assert sanitize_message("```feat: add api```", budget, self.FALLBACK) == "feat: add api"

    def test_quotes_are_stripped(self, budget):
        assert sanitize_message('"docs: fix typo"', budget, self.FALLBACK) == "docs: fix typo"

    def test_conforming_line_found_after_preamble(self, budget):
        raw = "Here is your commit message:\nrefactor(cli): split argument parsing"
        assert sanitize_message(raw, budget, self.FALLBACK) == "refactor(cli): split argument parsing"

    def test_one_line_keeps_only_subject(self, budget):
        raw = "feat: add login\n\n- add form\n- add route"
        assert sanitize_message(raw, budget, self.FALLBACK) == "feat: add login"

    def test_multi_line_keeps_body(self):
        budget = GenerationBudget(one_line=False)
        raw = "feat: add login\n\n- add form"
        assert sanitize_message(raw, budget, self.FALLBACK) == "feat: add login\n\n- add form"

    def test_free_form_accepts_anything_non_empty(self):
        budget = GenerationBudget(conventional=False)
        assert sanitize_message("Tidy up the parser", budget, "update a.py") == "Tidy up the parser"

    def test_empty_output_becomes_fallback(self):
        budget = GenerationBudget(conventional=False)
        assert sanitize_message("  ``` ", budget, "update a.py") == "update a.py"

    def test_inline_backticks_removed(self, budget):
        assert sanitize_message("fix: guard `None` values", budget, self.FALLBACK) == "fix: guard None values"

    @pytest.mark.parametrize("raw", [
        "feat(api): add endpoint",
        "```\nfix: x\n```",
        "Sure!\n`perf: cache lookups`",
        "nothing useful",
        "",
        "`x\"`\"",
        "\"`feat: add cache`\"\n\nbody\"",
        "feat: add x\"\n- detail",
    ])
    def test_idempotent(self, budget, raw):
        once = sanitize_message(raw, budget, self.FALLBACK)
        assert sanitize_message(once, budget, self.FALLBACK) == once

    @pytest.mark.parametrize("raw", ["`x\"`\"", "\"`x`\"", " ` \"x\" ` "])
    def test_mixed_wrapping_stripped_in_one_pass(self, raw):
        budget = GenerationBudget(conventional=False)
        assert sanitize_message(raw, budget, "update a.py") == "x"

    @pytest.mark.parametrize("raw", [
        "`x\"`\"",
        "Tidy up\n\"`the parser`\"",
    ])
    @pytest.mark.parametrize("one_line", [True, False])
    def test_idempotent_free_form(self, raw, one_line):
        budget = GenerationBudget(conventional=False, one_line=one_line)
        once = sanitize_message(raw, budget, "update a.py")
        assert sanitize_message(once, budget, "update a.py") == once


class TestFallbackMessage:

    def test_conventional_with_paths(self, budget):
        assert fallback_message(["a.py", "b.py"], budget) == "chore: update a.py, b.py"

    def test_only_first_three_paths(self, budget):
        message = fallback_message(["a", "b", "c", "d"], budget)
        assert message == "chore: update a, b, c"

    def test_no_paths(self, budget):
        assert fallback_message([], budget) == "chore: update files"

    def test_free_form(self):
        assert fallback_message(["a.py"], GenerationBudget(conventional=False)) == "update a.py"

    def test_subject_is_bounded_and_conforming(self, budget):
        paths = ["src/very/deeply/nested/module/with/a/long/name.py"] * 3
        message = fallback_message(paths, budget)
        subject = message[len("chore: "):]
        assert len(subject) <= 50
        assert CONVENTIONAL_RE.match(message)
        assert sanitize_message(message, budget, message) == message


# ---------------------------------------------------------------------------
# Deadline
# ---------------------------------------------------------------------------

class TestDeadline:

    def test_remaining_never_negative(self):
        deadline = Deadline(at=time.monotonic() - 5)
        assert deadline.expired()
        assert deadline.remaining() == 0.0

    def test_future_deadline(self):
        deadline = Deadline.after(30)
        assert not deadline.expired()
        assert 0 < deadline.remaining() <= 30


class TestCallWithDeadline:

    REQUEST = BackendRequest(max_output_tokens=64, temperature=0.2)

    def test_returns_client_text(self):
        client = ScriptedClient(commit_reply="fix: x")
        text = run(call_with_deadline(Deadline.after(5), client, "sys", "user", self.REQUEST))
        assert text == "fix: x"

    def test_expired_deadline_makes_no_call(self):
        client = ScriptedClient()
        with pytest.raises(LLMTimeout) as exc_info:
            run(call_with_deadline(Deadline(at=time.monotonic() - 1), client, "sys", "user", self.REQUEST))
        assert exc_info.value.remaining_seconds == 0
        assert str(exc_info.value) == "timeout after 0 seconds"
        assert client.calls == []

    def test_slow_call_times_out(self):
        client = ScriptedClient(delay=0.5)
        with pytest.raises(LLMTimeout) as exc_info:
            run(call_with_deadline(Deadline.after(0.05), client, "sys", "user", self.REQUEST))
        assert exc_info.value.remaining_seconds == 0

    def test_remaining_seconds_are_truncated(self):
        client = ScriptedClient(delay=1.8)
        with pytest.raises(LLMTimeout) as exc_info:
            run(call_with_deadline(Deadline.after(1.5), client, "sys", "user", self.REQUEST))
        assert exc_info.value.remaining_seconds == 1
        assert str(exc_info.value) == "timeout after 1 seconds"


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class TestOrchestrator:

    def test_single_call_when_under_budget(self, budget):
        client = ScriptedClient()
        units = [make_unit("a.py", "+a"), make_unit("b.py", "+b")]
        result = run(Orchestrator(client, budget, Deadline.after(5)).generate(units))

        assert result.text == "feat(core): add pipeline"
        assert result.warnings == []
        assert len(client.calls) == 1
        kind, user_prompt, request = client.calls[0]
        assert kind == "commit"
        assert "+a\n\n+b" in user_prompt
        assert request == BackendRequest(max_output_tokens=budget.max_output_tokens,
                                         temperature=budget.temperature)

    def test_hint_reaches_commit_prompt(self, budget):
        client = ScriptedClient()
        run(Orchestrator(client, budget, Deadline.after(5)).generate([make_unit("a.py", "+a")], hint="ticket 42"))
        assert "ticket 42" in client.calls[0][1]

    def test_fan_out_when_over_budget(self):
        budget = GenerationBudget(max_input_tokens=200, summary_concurrency=2)
        client = ScriptedClient(delay=0.05)
        units = [make_unit(f"f{i}.py", "x" * 400) for i in range(5)]
        result = run(Orchestrator(client, budget, Deadline.after(10)).generate(units))

        assert result.text == "feat(core): add pipeline"
        assert len(client.summary_calls) == 5
        assert len(client.commit_calls) == 1
        assert client.max_in_flight <= 2
        # Commit prompt lists summaries in input order
        commit_prompt = client.commit_calls[0][1]
        positions = [commit_prompt.index(f"f{i}.py: adds things") for i in range(5)]
        assert positions == sorted(positions)

    def test_zero_concurrency_still_runs_serially(self):
        budget = GenerationBudget(max_input_tokens=20, summary_concurrency=0)
        client = ScriptedClient(delay=0.01)
        units = [make_unit(f"f{i}.py", "y" * 40) for i in range(3)]
        result = run(Orchestrator(client, budget, Deadline.after(10)).generate(units))

        assert len(client.summary_calls) == 3
        assert client.max_in_flight == 1
        assert result.text

    def test_all_summaries_fail(self):
        budget = GenerationBudget(max_input_tokens=15)
        client = ScriptedClient(fail_summaries=True)
        units = [make_unit("a.py", "z" * 40), make_unit("b.py", "z" * 40)]
        result = run(Orchestrator(client, budget, Deadline.after(5)).generate(units))

        assert result.text == ""
        assert client.commit_calls == []
        assert "no file summaries produced" in result.warnings
        assert any(w.startswith("summary failed for a.py") for w in result.warnings)

    def test_fan_out_shares_one_deadline(self):
        # Each call fits the deadline alone; together they overrun it
        budget = GenerationBudget(max_input_tokens=15, summary_concurrency=1)
        client = ScriptedClient(delay=0.3)
        units = [make_unit(f"f{i}.py", "z" * 40) for i in range(4)]
        with pytest.raises(LLMTimeout) as exc_info:
            run(Orchestrator(client, budget, Deadline.after(0.5)).generate(units))

        # f0 finishes, f1 overruns the deadline, f2 and f3 are never started
        assert [call[1].splitlines()[0] for call in client.summary_calls] == [
            "Summarize changes for f0.py:",
            "Summarize changes for f1.py:",
        ]
        # The composing call found the deadline already spent
        assert exc_info.value.remaining_seconds == 0
        assert client.commit_calls == []

    def test_partial_summary_failure_still_composes(self):
        class FlakyClient(ScriptedClient):
            def complete(self, system_prompt, user_prompt, request):
                if "summarizing diffs" in system_prompt and "b.py" in user_prompt:
                    raise LLMError("summary backend down")
                return super().complete(system_prompt, user_prompt, request)

        client = FlakyClient()
        budget = GenerationBudget(max_input_tokens=15)
        units = [make_unit("a.py", "z" * 40), make_unit("b.py", "z" * 40)]
        result = run(Orchestrator(client, budget, Deadline.after(5)).generate(units))

        assert result.text == "feat(core): add pipeline"
        assert result.warnings == ["summary failed for b.py: summary backend down"]
        commit_prompt = client.commit_calls[0][1]
        assert "a.py: adds things" in commit_prompt
        assert "b.py:" not in commit_prompt

    def test_commit_failure_propagates(self, budget):
        client = ScriptedClient(fail_commit=True)
        with pytest.raises(LLMError, match="commit backend down"):
            run(Orchestrator(client, budget, Deadline.after(5)).generate([make_unit("a.py", "+a")]))


# ---------------------------------------------------------------------------
# End-to-end pipeline
# ---------------------------------------------------------------------------

class TestGenerateCommitMessage:

    def test_nothing_staged(self, budget, no_ignore):
        result = run(generate_commit_message(StubGit(), ScriptedClient(), budget, no_ignore))
        assert isinstance(result, NoChanges)

    def test_ai_message(self, budget, no_ignore):
        git = StubGit(stats=[make_stat("a.py")], diffs={"a.py": "+a"})
        result = run(generate_commit_message(git, ScriptedClient(), budget, no_ignore))

        assert isinstance(result, PipelineOutcome)
        assert result.message == "feat(core): add pipeline"
        assert result.used_fallback is False
        assert result.warnings == ()

    def test_accepts_config(self, no_ignore):
        git = StubGit(stats=[make_stat("a.py")], diffs={"a.py": "+a"})
        client = ScriptedClient(commit_reply="Tidy the parser")
        result = run(generate_commit_message(git, client, Config(conventional=False), no_ignore))
        assert result.message == "Tidy the parser"

    def test_non_conforming_output_uses_fallback(self, budget, no_ignore):
        git = StubGit(stats=[make_stat("a.py")], diffs={"a.py": "+a"})
        result = run(generate_commit_message(git, ScriptedClient(commit_reply="updated stuff"), budget, no_ignore))
        assert result.message == "chore: update a.py"
        assert result.used_fallback is True

    def test_only_binary_files(self, budget, no_ignore):
        git = StubGit(stats=[make_stat("logo.png", 0, 0, is_binary=True)])
        client = ScriptedClient()
        result = run(generate_commit_message(git, client, budget, no_ignore))

        assert result.message == "chore: update logo.png"
        assert result.used_fallback is True
        assert "no usable diff for AI; using fallback" in result.warnings
        assert client.calls == []

    def test_no_client(self, budget, no_ignore):
        git = StubGit(stats=[make_stat("a.py")], diffs={"a.py": "+a"})
        result = run(generate_commit_message(git, None, budget, no_ignore))
        assert result.message == "chore: update a.py"
        assert result.used_fallback is True
        assert "provider unavailable, using fallback" in result.warnings

    def test_backend_failure_downgrades_to_fallback(self, budget, no_ignore):
        git = StubGit(stats=[make_stat("a.py")], diffs={"a.py": "+a"})
        result = run(generate_commit_message(git, ScriptedClient(fail_commit=True), budget, no_ignore))
        assert result.used_fallback is True
        assert result.warnings == ("ai generation failed, using fallback: commit backend down",)

    def test_timeout_downgrades_to_fallback(self, no_ignore):
        budget = GenerationBudget(timeout_secs=1)
        git = StubGit(stats=[make_stat("a.py")], diffs={"a.py": "+a"})
        result = run(generate_commit_message(git, ScriptedClient(delay=1.5), budget, no_ignore))
        assert result.used_fallback is True
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("ai generation failed, using fallback: timeout after")

    def test_all_summaries_fail_uses_fallback(self, no_ignore):
        budget = GenerationBudget(max_input_tokens=15)
        git = StubGit(
            stats=[make_stat("a.py"), make_stat("b.py")],
            diffs={"a.py": "z" * 40, "b.py": "z" * 40},
        )
        result = run(generate_commit_message(git, ScriptedClient(fail_summaries=True), budget, no_ignore))
        assert result.message == "chore: update a.py, b.py"
        assert result.used_fallback is True
        assert "no file summaries produced" in result.warnings

    def test_fan_out_overrunning_deadline_uses_fallback(self, no_ignore):
        budget = GenerationBudget(max_input_tokens=15, summary_concurrency=1, timeout_secs=1)
        paths = ["a.py", "b.py", "c.py"]
        git = StubGit(stats=[make_stat(p) for p in paths], diffs={p: "z" * 40 for p in paths})
        client = ScriptedClient(delay=0.6)
        result = run(generate_commit_message(git, client, budget, no_ignore))

        assert result.used_fallback is True
        assert result.message == "chore: update a.py, b.py, c.py"
        assert "summary failed for b.py: timeout after 0 seconds" in result.warnings
        assert "summary failed for c.py: timeout after 0 seconds" in result.warnings
        assert result.warnings[-1] == "ai generation failed, using fallback: timeout after 0 seconds"
        assert len(client.summary_calls) == 2
        assert client.commit_calls == []

    def test_collector_warnings_are_carried(self, no_ignore):
        budget = GenerationBudget(max_files=1)
        git = StubGit(stats=[make_stat("a.py"), make_stat("b.py")], diffs={"a.py": "+a", "b.py": "+b"})
        result = run(generate_commit_message(git, ScriptedClient(), budget, no_ignore))
        assert result.message == "feat(core): add pipeline"
        assert result.warnings == ("only first 1 files used for AI summary",)

    def test_git_errors_propagate(self, budget, no_ignore):
        class BrokenGit(StubGit):
            def staged_numstat(self):
                raise GitError("not a git repository")

        with pytest.raises(GitError):
            run(generate_commit_message(BrokenGit(), ScriptedClient(), budget, no_ignore))
