"""Ignore Matcher - Keep generated and vendored files out of the LLM context."""

from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Optional

IGNORE_FILENAME = ".cmignore"

DEFAULT_PATTERNS: list[str] = [
    # Lock files
    "*.lock", "**/*.lock", "bun.lockb",
    "package-lock.json", "**/package-lock.json",
    "pnpm-lock.yaml", "**/pnpm-lock.yaml",
    # Build output and caches
    "node_modules", "**/node_modules/**",
    "dist", "**/dist/**",
    "build", "**/build/**",
    "target", "**/target/**",
    "coverage", "**/coverage/**",
    ".next", "**/.next/**",
    ".turbo", "**/.turbo/**",
    ".vite", "**/.vite/**",
    "**/__pycache__/**", "**/*.pyc",
    "**/*.egg-info/**",
    # Xcode / CocoaPods
    "Pods", "**/Pods/**",
    "DerivedData", "**/DerivedData/**",
    "*.pbxproj", "**/*.pbxproj",
    "**/*.xcworkspace/**", "**/*.xcodeproj/**",
    # Minified assets
    "**/*.min.js", "**/*.min.css", "**/*.map",
]


def read_ignore_file(path: Path) -> list[str]:
    """Read glob patterns from a file, skipping blanks and # comments."""
    try:
        text = path.read_text(encoding='utf-8')
    except OSError:
        return []
    lines = (line.strip() for line in text.splitlines())
    return [line for line in lines if line and not line.startswith('#')]


class IgnoreMatcher:
    """Glob-set matcher over repo-relative paths."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns = [p.strip() for p in patterns if p and p.strip()]

    def is_ignored(self, path: str) -> bool:
        return any(self._matches(pattern, path) for pattern in self.patterns)

    @staticmethod
    def _matches(pattern: str, path: str) -> bool:
        if fnmatchcase(path, pattern):
            return True
        # "**/" may match zero directories
        if pattern.startswith("**/"):
            return fnmatchcase(path, pattern[3:])
        return False


def build_ignore_matcher(
    config_patterns: Iterable[str] = (),
    repo_root: Optional[Path] = None,
    home: Optional[Path] = None,
) -> IgnoreMatcher:
    """Merge default, repo, global and configured patterns into one matcher."""
    patterns = list(DEFAULT_PATTERNS)
    if repo_root is not None:
        patterns.extend(read_ignore_file(repo_root / IGNORE_FILENAME))
    home = home if home is not None else Path.home()
    patterns.extend(read_ignore_file(home / IGNORE_FILENAME))
    patterns.extend(config_patterns)
    return IgnoreMatcher(patterns)
