"""Git Operations Package"""

from commitmsg.git.analyzer import GitAnalyzer, GitError, FileChange, FileDiff, parse_numstat
from commitmsg.git.collector import (
    ChangeSet,
    ChangeUnit,
    collect_changes,
    estimate_tokens,
    truncate_lines,
    truncate_to_tokens,
)
from commitmsg.git.ignore import IgnoreMatcher, build_ignore_matcher, DEFAULT_PATTERNS

__all__ = [
    "GitAnalyzer",
    "GitError",
    "FileChange",
    "FileDiff",
    "parse_numstat",
    "ChangeSet",
    "ChangeUnit",
    "collect_changes",
    "estimate_tokens",
    "truncate_lines",
    "truncate_to_tokens",
    "IgnoreMatcher",
    "build_ignore_matcher",
    "DEFAULT_PATTERNS",
]
