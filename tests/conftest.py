"""Shared fakes for pipeline tests: a stub git source and scripted LLM clients."""

import threading
import time

import pytest

from commitmsg.config import GenerationBudget
from commitmsg.git import FileChange, FileDiff, IgnoreMatcher
from commitmsg.llm import LLMClient, LLMError


class StubGit:
    """In-memory stand-in for GitAnalyzer's two read operations."""

    def __init__(self, stats=None, diffs=None, truncated=()):
        self.stats = list(stats or [])
        self.diffs = dict(diffs or {})
        self.truncated = set(truncated)
        self.diff_requests = []

    def staged_numstat(self):
        return list(self.stats)

    def staged_diff_for_path(self, path, max_bytes):
        self.diff_requests.append((path, max_bytes))
        return FileDiff(content=self.diffs.get(path, ""), truncated=path in self.truncated)


class ScriptedClient(LLMClient):
    """Answers summary prompts and commit prompts differently; records every call."""

    def __init__(self, commit_reply="feat(core): add pipeline", summary_reply="adds things",
                 fail_summaries=False, fail_commit=False, delay=0.0):
        self.commit_reply = commit_reply
        self.summary_reply = summary_reply
        self.fail_summaries = fail_summaries
        self.fail_commit = fail_commit
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    @property
    def name(self):
        return "Scripted"

    @property
    def summary_calls(self):
        return [c for c in self.calls if c[0] == "summary"]

    @property
    def commit_calls(self):
        return [c for c in self.calls if c[0] == "commit"]

    def complete(self, system_prompt, user_prompt, request):
        kind = "summary" if "summarizing diffs" in system_prompt else "commit"
        with self._lock:
            self.calls.append((kind, user_prompt, request))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if kind == "summary":
                if self.fail_summaries:
                    raise LLMError("summary backend down")
                return self.summary_reply
            if self.fail_commit:
                raise LLMError("commit backend down")
            return self.commit_reply
        finally:
            with self._lock:
                self.in_flight -= 1


def make_stat(path, additions=1, deletions=1, is_binary=False):
    return FileChange(path=path, additions=additions, deletions=deletions, is_binary=is_binary)


@pytest.fixture
def budget():
    return GenerationBudget()


@pytest.fixture
def no_ignore():
    return IgnoreMatcher([])
