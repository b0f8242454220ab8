"""Generation Orchestrator - single-shot or map-reduce generation under a deadline."""

import asyncio
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from commitmsg.config import GenerationBudget
from commitmsg.git import ChangeUnit, estimate_tokens, truncate_to_tokens
from commitmsg.llm import BackendRequest, LLMClient, LLMError, LLMTimeout
from commitmsg.prompts import PromptBuilder

# Per-file cap when each file is summarized on its own
MAX_SUMMARY_INPUT_TOKENS = 2000


@dataclass(frozen=True)
class Deadline:
    """An absolute point on the monotonic clock, shared by every call in a run."""
    at: float

    @classmethod
    def after(cls, seconds: float) -> 'Deadline':
        return cls(at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.at


@dataclass
class GenerationResult:
    """Raw model text plus anything worth telling the user."""
    text: str
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Summary:
    path: str
    text: Optional[str] = None
    error: Optional[str] = None


async def call_with_deadline(
    deadline: Deadline,
    client: LLMClient,
    system_prompt: str,
    user_prompt: str,
    request: BackendRequest,
    executor: Optional[Executor] = None,
) -> str:
    """Run one blocking client call in a worker thread, bounded by the deadline.

    A call that overruns is abandoned, not interrupted: its thread finishes on
    its own and the result is dropped.
    """
    if deadline.expired():
        raise LLMTimeout(0)

    remaining = deadline.remaining()
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(executor, client.complete, system_prompt, user_prompt, request)
    try:
        return await asyncio.wait_for(future, timeout=remaining)
    except asyncio.TimeoutError:
        raise LLMTimeout(int(remaining))


class Orchestrator:
    """Decides between one call and per-file summaries, then composes the message."""

    def __init__(self, client: LLMClient, budget: GenerationBudget,
                 deadline: Deadline, executor: Optional[Executor] = None,
                 prompts: Optional[PromptBuilder] = None):
        self.client = client
        self.budget = budget
        self.deadline = deadline
        self.executor = executor
        self.prompts = prompts or PromptBuilder()

    def _request(self) -> BackendRequest:
        return BackendRequest(
            max_output_tokens=self.budget.max_output_tokens,
            temperature=self.budget.temperature,
        )

    async def _call(self, system_prompt: str, user_prompt: str) -> str:
        return await call_with_deadline(
            self.deadline, self.client, system_prompt, user_prompt, self._request(), self.executor,
        )

    async def generate(self, units: list[ChangeUnit], hint: Optional[str] = None) -> GenerationResult:
        total_tokens = sum(unit.token_estimate for unit in units)
        if total_tokens <= self.budget.max_input_tokens:
            logger.debug("single-shot generation over {} files (~{} tokens)", len(units), total_tokens)
            diff_text = "\n\n".join(unit.content for unit in units)
            text = await self._compose(diff_text, hint)
            return GenerationResult(text=text)

        logger.debug(
            "~{} tokens exceeds budget of {}; summarizing {} files",
            total_tokens, self.budget.max_input_tokens, len(units),
        )
        return await self.summarize_then_commit(units, hint)

    async def summarize_then_commit(self, units: list[ChangeUnit], hint: Optional[str] = None) -> GenerationResult:
        start = time.monotonic()
        max_file_tokens = min(self.budget.max_input_tokens, MAX_SUMMARY_INPUT_TOKENS)
        semaphore = asyncio.Semaphore(max(self.budget.summary_concurrency, 1))

        async def summarize(unit: ChangeUnit, content: str) -> _Summary:
            async with semaphore:
                try:
                    text = await self._call(
                        self.prompts.summary_system(),
                        self.prompts.summary_user(unit.path, content),
                    )
                except LLMError as e:
                    logger.warning("summary failed for {}: {}", unit.path, e)
                    return _Summary(path=unit.path, error=str(e))
                return _Summary(path=unit.path, text=text)

        tasks = []
        for unit in units:
            content = truncate_to_tokens(unit.content, max_file_tokens)
            if content.strip():
                tasks.append(summarize(unit, content))

        # gather() keeps input order, so composition is deterministic
        results = await asyncio.gather(*tasks)

        warnings = [f"summary failed for {r.path}: {r.error}" for r in results if r.error is not None]
        lines = [f"{r.path}: {r.text.strip()}" for r in results if r.text is not None]
        if not lines:
            warnings.append("no file summaries produced")
            return GenerationResult(text="", warnings=warnings)

        combined = "\n".join(lines)
        if estimate_tokens(combined) > self.budget.max_input_tokens:
            combined = truncate_to_tokens(combined, self.budget.max_input_tokens)

        text = await self._compose(combined, hint)
        logger.debug("summary pipeline complete in {:.2f}s", time.monotonic() - start)
        return GenerationResult(text=text, warnings=warnings)

    async def _compose(self, diff_text: str, hint: Optional[str]) -> str:
        return await self._call(
            self.prompts.commit_system(self.budget),
            self.prompts.commit_user(diff_text, self.budget, hint),
        )


async def generate_with_backend(
    client: LLMClient,
    budget: GenerationBudget,
    units: list[ChangeUnit],
    deadline: Deadline,
    hint: Optional[str] = None,
    executor: Optional[Executor] = None,
) -> GenerationResult:
    """Produce raw commit text for the given units. Raises LLMError on failure."""
    return await Orchestrator(client, budget, deadline, executor).generate(units, hint)
