"""Commit Message Pipeline

collect staged changes -> generate (single-shot or summarize-then-commit)
-> sanitize, with a deterministic fallback whenever the backend can't help.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from commitmsg.config import Config, GenerationBudget
from commitmsg.git import collect_changes
from commitmsg.git.collector import GitSource, PathFilter
from commitmsg.llm import LLMClient, LLMError
from commitmsg.pipeline.generation import Deadline, GenerationResult, Orchestrator, call_with_deadline, generate_with_backend
from commitmsg.pipeline.sanitize import CONVENTIONAL_RE, fallback_message, sanitize_message


@dataclass(frozen=True)
class NoChanges:
    """Nothing is staged; there is no message to write."""


@dataclass(frozen=True)
class PipelineOutcome:
    message: str
    used_fallback: bool
    warnings: tuple[str, ...] = ()


PipelineResult = Union[NoChanges, PipelineOutcome]


async def generate_commit_message(
    git: GitSource,
    client: Optional[LLMClient],
    config: Union[Config, GenerationBudget],
    ignore: PathFilter,
    hint: Optional[str] = None,
) -> PipelineResult:
    """Generate a commit message for the staged changes.

    Only git failures escape (as GitError). Backend errors and timeouts are
    downgraded to the fallback message plus a warning.
    """
    start = time.monotonic()
    budget = config.budget() if isinstance(config, Config) else config

    changes = collect_changes(git, budget, ignore)
    if changes.is_empty:
        return NoChanges()

    warnings = list(changes.warnings)
    fallback = fallback_message(changes.all_paths, budget)

    if not changes.units:
        warnings.append("no usable diff for AI; using fallback")
        return PipelineOutcome(message=fallback, used_fallback=True, warnings=tuple(warnings))

    if client is None:
        warnings.append("provider unavailable, using fallback")
        raw = fallback
    else:
        deadline = Deadline.after(budget.timeout_secs)
        executor = ThreadPoolExecutor(max_workers=max(budget.summary_concurrency, 1),
                                      thread_name_prefix="commitmsg-llm")
        try:
            result = await generate_with_backend(client, budget, changes.units, deadline, hint, executor)
            warnings.extend(result.warnings)
            raw = result.text
        except LLMError as e:
            logger.warning("ai generation failed: {}", e)
            warnings.append(f"ai generation failed, using fallback: {e}")
            raw = fallback
        finally:
            # Abandoned calls finish in the background instead of blocking us
            executor.shutdown(wait=False, cancel_futures=True)

    message = sanitize_message(raw, budget, fallback)
    logger.debug("pipeline complete in {:.2f}s", time.monotonic() - start)
    return PipelineOutcome(
        message=message,
        used_fallback=message == fallback,
        warnings=tuple(warnings),
    )


__all__ = [
    "NoChanges",
    "PipelineOutcome",
    "PipelineResult",
    "generate_commit_message",
    "generate_with_backend",
    "call_with_deadline",
    "Deadline",
    "GenerationResult",
    "Orchestrator",
    "sanitize_message",
    "fallback_message",
    "CONVENTIONAL_RE",
]
