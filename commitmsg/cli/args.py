"""CLI Argument Parsing"""

import argparse
import argcomplete

from commitmsg import __version__
from commitmsg.config import VALID_OPENAI_MODES, VALID_PROVIDERS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cm',
        description='Generate commit messages from staged changes',
        epilog='Example: cm (copies message to clipboard)'
    )

    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')

    # Generation options
    parser.add_argument('--hint', type=str, metavar='TEXT', help='Add context: --hint "fixing the login bug"')
    parser.add_argument('--lang', type=str, metavar='LANG', help='Write the message in this language')
    parser.add_argument('--conventional', dest='conventional', action='store_true', default=None,
                        help='Require a Conventional Commits subject')
    parser.add_argument('--no-conventional', dest='conventional', action='store_false',
                        help='Allow free-form subjects')
    parser.add_argument('--one-line', dest='one_line', action='store_true', default=None,
                        help='Subject line only')
    parser.add_argument('--multi-line', dest='one_line', action='store_false',
                        help='Allow a message body')
    parser.add_argument('--timeout', type=int, metavar='SECS', help='Total time budget for generation')
    parser.add_argument('--emoji', dest='emoji', action='store_true', default=None,
                        help='Prefix the subject with a gitmoji')
    parser.add_argument('--no-emoji', dest='emoji', action='store_false', help='No emoji prefix')

    # Budget options
    parser.add_argument('--max-input-tokens', type=int, metavar='N', help='Prompt size before summarizing per file')
    parser.add_argument('--max-output-tokens', type=int, metavar='N', help='Completion length limit')
    parser.add_argument('--max-file-bytes', type=int, metavar='N', help='Truncate each file diff to this many bytes')
    parser.add_argument('--max-file-lines', type=int, metavar='N', help='Truncate each file diff to this many lines')
    parser.add_argument('--max-files', type=int, metavar='N', help='Only send this many files to the model')
    parser.add_argument('--summary-concurrency', type=int, metavar='N', help='Parallel per-file summaries')

    # LLM options
    parser.add_argument('-p', '--provider', type=str, choices=sorted(VALID_PROVIDERS), help='LLM provider')
    parser.add_argument('-m', '--model', type=str, metavar='MODEL', help='Model name')
    parser.add_argument('--openai-mode', type=str, choices=sorted(VALID_OPENAI_MODES), help='OpenAI API style')
    parser.add_argument('--openai-base-url', type=str, metavar='URL', help='OpenAI-compatible API base URL')
    parser.add_argument('--ollama-endpoint', type=str, metavar='URL', help='Ollama server URL')
    parser.add_argument('--warmup', action='store_true', help='Pre-load Ollama model into memory')

    # Output options
    parser.add_argument('--no-copy', action='store_true', help='Print message only, do not copy to clipboard')
    parser.add_argument('--commit', action='store_true', help='Run git commit with the generated message')
    parser.add_argument('--dry-run', action='store_true', help='Show the message without copying or committing')
    parser.add_argument('--verbose', action='store_true', help='Show debug logs (budgeting, retries, timings)')

    # Setup/config
    parser.add_argument('--setup', action='store_true', help='Configure defaults')
    parser.add_argument('--display-config', action='store_true', help='Show current configuration')

    argcomplete.autocomplete(parser)
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
