"""Command Line Interface"""

from commitmsg.cli.main import main

__all__ = ["main"]
