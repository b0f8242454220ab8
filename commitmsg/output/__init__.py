"""Terminal Output Formatting Package"""

import os
import re
import sys
import threading

from commitmsg.pipeline.sanitize import CONVENTIONAL_RE


class Colors:
    """ANSI escape codes for terminal colors."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    CYAN = '\033[36m'
    MAGENTA = '\033[35m'


def _supports_color(stream) -> bool:
    if os.environ.get('NO_COLOR'):
        return False
    if os.environ.get('FORCE_COLOR'):
        return True
    if not hasattr(stream, 'isatty') or not stream.isatty():
        return False
    if sys.platform == 'win32':
        try:
            import ctypes
            kernel32 = ctypes.windll.kernel32
            handle = -12 if stream is sys.stderr else -11
            kernel32.SetConsoleMode(kernel32.GetStdHandle(handle), 7)
            return True
        except (AttributeError, OSError):
            return False
    return True


def _supports_unicode(stream) -> bool:
    try:
        '✓✗⚠'.encode(getattr(stream, 'encoding', None) or 'utf-8')
        return True
    except (UnicodeEncodeError, LookupError):
        return False


# Warnings and errors go to stderr, so each stream decides for itself
COLORS_ENABLED = _supports_color(sys.stdout)
STDERR_COLORS_ENABLED = _supports_color(sys.stderr)
UNICODE_ENABLED = _supports_unicode(sys.stdout)

CHECK = '✓' if UNICODE_ENABLED else '[OK]'
CROSS = '✗' if _supports_unicode(sys.stderr) else '[X]'
WARN = '⚠' if _supports_unicode(sys.stderr) else '[!]'


def _colorize(text: str, *codes: str, enabled: bool | None = None) -> str:
    if not (COLORS_ENABLED if enabled is None else enabled):
        return text
    return f"{''.join(codes)}{text}{Colors.RESET}"


def success(text: str) -> str:
    return _colorize(text, Colors.GREEN)


def error(text: str) -> str:
    return _colorize(text, Colors.RED)


def warning(text: str) -> str:
    return _colorize(text, Colors.YELLOW)


def info(text: str) -> str:
    return _colorize(text, Colors.CYAN)


def dim(text: str) -> str:
    return _colorize(text, Colors.DIM)


def bold(text: str) -> str:
    return _colorize(text, Colors.BOLD)


def print_success(message: str) -> None:
    print(f"{success(CHECK)} {message}")


def _print_stderr(symbol: str, message: str, color: str) -> None:
    line = f"{symbol} {message}"
    print(_colorize(line, color, enabled=STDERR_COLORS_ENABLED), file=sys.stderr)


def print_error(message: str) -> None:
    _print_stderr(CROSS, message, Colors.RED)


def print_warning(message: str) -> None:
    # stderr keeps pipe mode output limited to the message itself
    _print_stderr(WARN, message, Colors.YELLOW)


COMMIT_TYPE_COLORS = {
    'feat': Colors.GREEN,
    'fix': Colors.RED,
    'refactor': Colors.YELLOW,
    'perf': Colors.GREEN,
    'docs': Colors.CYAN,
    'ci': Colors.CYAN,
    'build': Colors.CYAN,
    'test': Colors.MAGENTA,
    'chore': Colors.DIM,
    'style': Colors.DIM,
}

_PREFIX_RE = re.compile(r'^(\w+)(\([^)]*\))?:')


def colorize_commit_type(message: str) -> str:
    """Color the type(scope): prefix of a conventional subject line."""
    if not COLORS_ENABLED:
        return message
    lines = message.split('\n')
    if not CONVENTIONAL_RE.match(lines[0]):
        return message
    match = _PREFIX_RE.match(lines[0])
    color = COMMIT_TYPE_COLORS.get(match.group(1)) if match else None
    if color:
        prefix = match.group(0)
        lines[0] = _colorize(prefix, Colors.BOLD, color) + lines[0][len(prefix):]
    return '\n'.join(lines)


class Spinner:
    """Animated spinner with a label for long operations. Use as context manager."""
    FRAMES_UNICODE = ['⠋', '⠙', '⠹', '⠸', '⠼', '⠴', '⠦', '⠧', '⠇', '⠏']
    FRAMES_ASCII = ['-', '\\', '|', '/']

    def __init__(self, label: str = ""):
        self.label = label
        self._thread = None
        self._stop_event = threading.Event()
        self._frames = self.FRAMES_UNICODE if UNICODE_ENABLED else self.FRAMES_ASCII

    def _spin(self):
        idx = 0
        while not self._stop_event.is_set():
            frame = self._frames[idx % len(self._frames)]
            print(f'\r\033[K{frame} {self.label}', end='', flush=True)
            idx += 1
            self._stop_event.wait(0.08)

    def __enter__(self):
        if sys.stdout.isatty():
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._spin, daemon=True)
            self._thread.start()
        return self

    def __exit__(self, *args):
        self._stop_event.set()
        if self._thread:
            self._thread.join()
        if sys.stdout.isatty():
            print('\r\033[K', end='', flush=True)


__all__ = [
    "Colors", "COLORS_ENABLED", "STDERR_COLORS_ENABLED", "UNICODE_ENABLED",
    "CHECK", "CROSS", "WARN",
    "success", "error", "warning", "info", "dim", "bold",
    "print_success", "print_error", "print_warning",
    "colorize_commit_type", "Spinner", "COMMIT_TYPE_COLORS",
]
