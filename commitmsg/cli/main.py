"""CLI Main Entry Point"""

import asyncio
import sys

from loguru import logger

from commitmsg.config import Config, load_config, apply_env_overrides
from commitmsg.git import GitAnalyzer, GitError, FileChange, build_ignore_matcher
from commitmsg.llm import LLMClient, LLMError, get_client
from commitmsg.pipeline import NoChanges, PipelineOutcome, generate_commit_message
from commitmsg.output import (
    success, warning, info, dim, bold, print_error, print_warning, print_success,
    CHECK, Spinner, colorize_commit_type,
)

from commitmsg.cli.args import parse_args
from commitmsg.cli.commands import display_config, run_setup, run_warmup
from commitmsg.cli.utils import copy_to_clipboard, edit_message, setup_logging


def _display_file_list(stats: list[FileChange], max_shown: int) -> None:
    """Show which files are staged, collapsing long lists."""
    if not stats:
        return
    print(bold("Staged changes:"))
    for stat in stats[:max_shown]:
        label = "binary" if stat.is_binary else f"+{stat.additions} -{stat.deletions}"
        print(dim(f"  {stat.path} ({label})"))
    remaining = len(stats) - max_shown
    if remaining > 0:
        print(dim(f"  ... and {remaining} more files"))


def _display_message(message: str) -> None:
    """Display commit message with horizontal rules and colored type."""
    colored = colorize_commit_type(message)
    lines = colored.split('\n')
    # Use raw message for width calculation (no ANSI codes)
    width = max((len(line) for line in message.split('\n')), default=40)
    print(f"\n{dim('─' * width)}")
    print(bold(lines[0]))
    for line in lines[1:]:
        print(line)
    print(dim('─' * width))


def _display_warnings(outcome: PipelineOutcome) -> None:
    for text in outcome.warnings:
        print_warning(text)
    if outcome.used_fallback:
        print(dim("  Using a generated fallback message; edit it before committing."))


def _copy_and_report(message: str, no_copy: bool) -> None:
    """Copy message to clipboard and print result."""
    if no_copy:
        return
    copied, reason = copy_to_clipboard(message)
    if copied:
        print(f"{success(CHECK)} Copied to clipboard!")
    else:
        print(f"{warning('!')} Could not copy to clipboard{': ' + reason if reason else ''}")
        print(dim("  Select the message above to copy manually."))


def _apply_cli_overrides(args, config: Config) -> list[str]:
    """Precedence: CLI args > environment variables > config file."""
    overrides = {
        'provider': args.provider,
        'model': args.model,
        'conventional': args.conventional,
        'one_line': args.one_line,
        'lang': args.lang,
        'timeout_secs': args.timeout,
        'emoji': args.emoji,
        'openai_mode': args.openai_mode,
        'openai_base_url': args.openai_base_url,
        'ollama_host': args.ollama_endpoint,
        'max_input_tokens': args.max_input_tokens,
        'max_output_tokens': args.max_output_tokens,
        'max_file_bytes': args.max_file_bytes,
        'max_file_lines': args.max_file_lines,
        'max_files': args.max_files,
        'summary_concurrency': args.summary_concurrency,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    return config.validate()


def _resolve_client(config: Config, is_pipe: bool) -> LLMClient | None:
    """Build the LLM client; a missing backend degrades to the fallback message."""
    try:
        return get_client(config)
    except LLMError as e:
        logger.debug("no LLM client: {}", e)
        if not is_pipe:
            print_warning(str(e).split('\n')[0])
        return None


def _run_pipeline(git: GitAnalyzer, client: LLMClient | None, config: Config,
                  hint: str | None, is_pipe: bool):
    ignore = build_ignore_matcher(config.ignore, repo_root=git.repo_root())
    label = f"Generating with {client.name}..." if client else "Generating..."
    if is_pipe:
        return asyncio.run(generate_commit_message(git, client, config, ignore, hint))
    with Spinner(label):
        return asyncio.run(generate_commit_message(git, client, config, ignore, hint))


def _commit(git: GitAnalyzer, message: str) -> int:
    try:
        output = git.commit(message)
    except GitError as e:
        print_error(str(e))
        return 1
    print_success("Committed")
    if output:
        print(dim(output.split('\n')[0]))
    return 0


def _handle_interactive_action(message: str) -> tuple[str, str, str | None]:
    """Ask whether to edit or regenerate.

    Returns:
        tuple: (action, message, hint) where action is 'done', 'edited', or 'regenerate'
    """
    try:
        action = input(f"\n{dim('(e)dit, (r)egenerate, or Enter to accept: ')}").strip().lower()
    except (KeyboardInterrupt, EOFError):
        return 'done', message, None

    if action == 'e':
        edited = edit_message(message)
        if edited:
            return 'edited', edited, None
    elif action == 'r':
        try:
            regen_hint = input(f"{dim('  Hint (Enter to skip): ')}").strip()
        except (KeyboardInterrupt, EOFError):
            return 'done', message, None
        return 'regenerate', message, regen_hint or None

    return 'done', message, None


def _generate_commit_flow(args, config: Config) -> int:
    """Main commit message generation flow.

    Returns:
        int: Exit code
    """
    is_pipe = not sys.stdout.isatty()
    is_interactive = sys.stdin.isatty() and not is_pipe

    try:
        git = GitAnalyzer()
        stats = git.staged_numstat()
    except GitError as e:
        print_error(str(e))
        return 1

    if not stats:
        print_error("No staged changes. Run 'git add' first.")
        return 1

    if not is_pipe:
        _display_file_list(stats, config.max_file_display)

    client = _resolve_client(config, is_pipe)
    hint = args.hint

    while True:
        try:
            result = _run_pipeline(git, client, config, hint, is_pipe)
        except GitError as e:
            print_error(str(e))
            return 1

        if isinstance(result, NoChanges):
            print_error("No staged changes. Run 'git add' first.")
            return 1

        message = result.message
        if is_pipe:
            print(message)
            return 0

        _display_warnings(result)
        print(f"Analyzed {bold(str(len(stats)))} files using {info(client.name if client else 'fallback')}")
        _display_message(message)
        _copy_and_report(message, args.no_copy or args.dry_run)

        if not is_interactive:
            break

        action, message, new_hint = _handle_interactive_action(message)
        if action == 'regenerate':
            hint = new_hint or hint
            print("\nRegenerating... ")
            continue
        if action == 'edited':
            _display_message(message)
            _copy_and_report(message, args.no_copy or args.dry_run)
        break

    if args.dry_run:
        print(dim("Dry run; skipping commit"))
        return 0
    if args.commit:
        return _commit(git, message)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.setup:
        return run_setup()

    config = load_config()
    for text in apply_env_overrides(config) + _apply_cli_overrides(args, config):
        print_warning(f"Config warning: {text}")

    if args.display_config:
        return display_config(config)
    if args.warmup:
        return run_warmup(config)

    return _generate_commit_flow(args, config)


if __name__ == "__main__":
    sys.exit(main())
