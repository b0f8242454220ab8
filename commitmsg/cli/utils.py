"""CLI Utility Functions"""

import os
import subprocess
import sys
import tempfile

from loguru import logger


def setup_logging(verbose: bool = False) -> None:
    """Route loguru to stderr; debug detail only with --verbose."""
    log_fmt = "<d>{time:HH:mm:ss.SSS} | {level:1.1} | </d><level>{message}</level>"
    logger.configure(
        handlers=[{
            "sink": sys.stderr,
            "level": "DEBUG" if verbose else "ERROR",
            "format": log_fmt,
            "colorize": sys.stderr.isatty(),
            "backtrace": verbose,
            "diagnose": False,
        }],
    )


def copy_to_clipboard(text: str) -> tuple[bool, str]:
    """Copy text to clipboard. Returns (success, failure_reason)."""
    data = text.encode('utf-8')
    try:
        if sys.platform == 'win32':
            subprocess.run(['clip'], input=data, check=True)
        elif sys.platform == 'darwin':
            subprocess.run(['pbcopy'], input=data, check=True)
        else:
            try:
                subprocess.run(['xclip', '-selection', 'clipboard'], input=data, check=True)
            except FileNotFoundError:
                subprocess.run(['xsel', '--clipboard', '--input'], input=data, check=True)
        return True, ""
    except FileNotFoundError:
        if sys.platform == 'linux':
            return False, "Install xclip or xsel: sudo apt install xclip"
        return False, "No clipboard tool found"
    except (subprocess.CalledProcessError, OSError) as e:
        return False, f"Clipboard command failed: {e}"


def edit_message(message: str) -> str | None:
    """Open message in user's editor. Returns edited text or None on failure."""
    editor = os.environ.get('VISUAL') or os.environ.get('EDITOR')
    if not editor:
        editor = 'notepad' if sys.platform == 'win32' else 'vi'

    tmp = tempfile.NamedTemporaryFile(mode='w', suffix='.gitcommit', delete=False, encoding='utf-8')
    try:
        tmp.write(message)
        tmp.close()
        subprocess.run([editor, tmp.name], check=True)
        with open(tmp.name, 'r', encoding='utf-8') as f:
            edited = f.read().strip()
        return edited or None
    except (subprocess.CalledProcessError, OSError):
        return None
    finally:
        try:
            os.unlink(tmp.name)
        except OSError as e:
            logger.warning("Could not delete temp file {}: {}", tmp.name, e)
