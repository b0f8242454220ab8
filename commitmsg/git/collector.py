"""Change Collector - Turn staged file stats into budgeted LLM context."""

from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from commitmsg.config import GenerationBudget
from commitmsg.git.analyzer import FileChange, FileDiff


class GitSource(Protocol):
    """The two read operations the collector needs from git."""

    def staged_numstat(self) -> list[FileChange]: ...

    def staged_diff_for_path(self, path: str, max_bytes: int) -> FileDiff: ...


class PathFilter(Protocol):
    def is_ignored(self, path: str) -> bool: ...


@dataclass(frozen=True)
class ChangeUnit:
    """One file's bounded contribution to the prompt."""
    path: str
    content: str
    is_binary: bool = False
    truncated: bool = False
    additions: int = 0
    deletions: int = 0
    token_estimate: int = 0


@dataclass
class ChangeSet:
    """Everything staged, plus the subset that is sent to the LLM."""
    all_paths: list[str] = field(default_factory=list)
    units: list[ChangeUnit] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.all_paths

    @property
    def total_tokens(self) -> int:
        return sum(unit.token_estimate for unit in self.units)


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token), rounded up."""
    return (len(text) + 3) // 4


def truncate_lines(text: str, max_lines: int) -> tuple[str, bool]:
    """Keep at most max_lines lines. Returns (text, was_truncated)."""
    if max_lines <= 0:
        return "", bool(text.strip())

    lines = text.splitlines()
    if len(lines) > max_lines:
        return "\n".join(lines[:max_lines]).rstrip(), True
    return "\n".join(lines).rstrip(), False


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Accumulate whole lines until the token estimate would exceed max_tokens."""
    kept = []
    used = 0
    for line in text.splitlines():
        line_tokens = estimate_tokens(line)
        if used + line_tokens > max_tokens:
            break
        kept.append(line)
        used += line_tokens
    return "\n".join(kept).rstrip()


def _make_unit(stat: FileChange, content: str, truncated: bool) -> ChangeUnit:
    return ChangeUnit(
        path=stat.path,
        content=content,
        is_binary=False,
        truncated=truncated,
        additions=stat.additions,
        deletions=stat.deletions,
        token_estimate=estimate_tokens(content),
    )


def collect_changes(git: GitSource, budget: GenerationBudget, ignore: PathFilter) -> ChangeSet:
    """Build the change set for one pipeline run.

    Every staged path lands in all_paths. Binary and ignored files are left out
    of the LLM context; oversized files get a one-line placeholder instead of
    their diff. Git failures propagate as GitError.
    """
    stats = git.staged_numstat()
    if not stats:
        return ChangeSet()

    changes = ChangeSet(all_paths=[stat.path for stat in stats])
    hit_limit = False

    for stat in stats:
        if len(changes.units) >= budget.max_files:
            hit_limit = True
            break
        if stat.is_binary or ignore.is_ignored(stat.path):
            continue

        changed_lines = stat.total_changes
        if changed_lines > budget.max_file_lines:
            changes.warnings.append(f"diff omitted for {stat.path} ({changed_lines} lines)")
            placeholder = (
                f"file {stat.path} changed: +{stat.additions} -{stat.deletions} "
                "(diff omitted due to size)"
            )
            changes.units.append(_make_unit(stat, placeholder, truncated=True))
            continue

        diff = git.staged_diff_for_path(stat.path, budget.max_file_bytes)
        content, cut_by_lines = truncate_lines(diff.content, budget.max_file_lines)
        if not content.strip():
            # Mode-only changes have stats but no textual diff
            continue

        truncated = diff.truncated or cut_by_lines
        if truncated:
            changes.warnings.append(f"diff truncated for {stat.path}")
        changes.units.append(_make_unit(stat, content, truncated))

    if hit_limit:
        changes.warnings.append(f"only first {budget.max_files} files used for AI summary")

    logger.debug(
        "collected {} of {} staged files (~{} tokens)",
        len(changes.units), len(changes.all_paths), changes.total_tokens,
    )
    return changes
