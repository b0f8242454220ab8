"""Git Analyzer - Read staged changes from git."""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0", "GIT_PAGER": "cat"}
_READ_CHUNK = 8192


@dataclass(frozen=True)
class FileChange:
    """One line of `git diff --staged --numstat`."""
    path: str
    additions: int
    deletions: int
    is_binary: bool = False

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class FileDiff:
    """A single file's staged diff, possibly cut at a byte cap."""
    content: str
    truncated: bool = False


class GitError(Exception):
    """Raised when git operations fail."""
    pass


def parse_numstat(output: str) -> list[FileChange]:
    """Parse 'git diff --numstat' output. Binary files report '-' counts."""
    files = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split('\t')
        if len(parts) < 3:
            continue
        additions, deletions = parts[0], parts[1]
        # Paths may themselves contain tabs
        path = '\t'.join(parts[2:])
        if not path.strip():
            continue
        files.append(FileChange(
            path=path,
            additions=int(additions) if additions.isdigit() else 0,
            deletions=int(deletions) if deletions.isdigit() else 0,
            is_binary=additions == '-' or deletions == '-',
        ))
    return files


class GitAnalyzer:
    """Reads staged changes from the git repository in the working directory."""

    def __init__(self):
        self._verify_git_available()
        self._verify_in_repo()

    def _env(self) -> dict:
        return {**os.environ, **_GIT_ENV}

    def _run_git(self, *args: str) -> str:
        """Run a git command and return stdout."""
        try:
            result = subprocess.run(
                ['git', *args],
                capture_output=True,
                text=True,
                check=True,
                encoding='utf-8',
                errors='replace',
                env=self._env(),
            )
            return result.stdout
        except subprocess.CalledProcessError as e:
            raise GitError(f"Git command failed: git {' '.join(args)}\n{e.stderr.strip()}")
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH")

    def _verify_git_available(self) -> None:
        """Fail fast if git isn't available."""
        self._run_git('--version')

    def _verify_in_repo(self) -> None:
        """Fail fast if we're not in a git repository."""
        try:
            self._run_git('rev-parse', '--is-inside-work-tree')
        except GitError:
            raise GitError("Not inside a git repository")

    def repo_root(self) -> Path:
        root = self._run_git('rev-parse', '--show-toplevel').strip()
        if not root:
            raise GitError("Not inside a git repository")
        return Path(root)

    def staged_numstat(self) -> list[FileChange]:
        return parse_numstat(self._run_git('diff', '--staged', '--numstat', '--'))

    def staged_diff_for_path(self, path: str, max_bytes: int) -> FileDiff:
        """Stream one file's staged diff, stopping once max_bytes are read."""
        if max_bytes <= 0:
            return FileDiff(content="", truncated=True)

        args = ['git', 'diff', '--staged', '--no-color', '--no-ext-diff', '--', path]
        try:
            proc = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self._env(),
            )
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH")

        buffer = bytearray()
        truncated = False
        try:
            while True:
                chunk = proc.stdout.read(_READ_CHUNK)
                if not chunk:
                    break
                remaining = max_bytes - len(buffer)
                if len(chunk) > remaining:
                    buffer.extend(chunk[:remaining])
                    truncated = True
                    break
                buffer.extend(chunk)
        finally:
            if truncated:
                proc.kill()
            _, stderr = proc.communicate()

        if proc.returncode != 0 and not truncated:
            message = stderr.decode('utf-8', errors='replace').strip()
            raise GitError(f"Git command failed: {' '.join(args)}\n{message}")

        if truncated:
            logger.debug("diff for {} cut at {} bytes", path, max_bytes)
        content = buffer.decode('utf-8', errors='replace').strip()
        return FileDiff(content=content, truncated=truncated)

    def commit(self, message: str) -> str:
        return self._run_git('commit', '-m', message).strip()
