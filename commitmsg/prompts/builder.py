"""Prompt Builder - Construct LLM prompts for commit message generation."""

from commitmsg import COMMIT_TYPES
from commitmsg.config import GenerationBudget

MAX_SUBJECT_LENGTH = 50


class PromptBuilder:
    """Constructs the commit and per-file summary prompts."""

    def commit_system(self, budget: GenerationBudget) -> str:
        sections = [
            "You are a Git commit message generator. Your commit messages are documentation for future developers.",
            self._build_format_section(budget),
            self._build_output_section(budget),
            self._build_emoji_section(budget),
            self._build_rules_section(),
        ]
        return "\n\n".join(filter(None, sections))

    def commit_user(self, diff_text: str, budget: GenerationBudget, hint: str | None = None) -> str:
        if budget.lang:
            parts = [f"Generate the commit message in {budget.lang}.", "", "Diff:", diff_text]
        else:
            parts = ["Generate the commit message from this diff:", "", diff_text]

        if hint:
            parts.extend([
                "",
                "The developer provided this context about the changes:",
                f'"{hint}"',
                "Use it to inform the message, but verify it matches the diff.",
            ])
        return "\n".join(parts)

    def summary_system(self) -> str:
        return """You are a code reviewer summarizing diffs. Summarize the changes briefly and factually.
RULES:
- Use short bullet points.
- Mention files and key changes.
- No markdown code blocks."""

    def summary_user(self, path: str, diff_text: str) -> str:
        return f"Summarize changes for {path}:\n\n{diff_text}"

    def _build_format_section(self, budget: GenerationBudget) -> str:
        if not budget.conventional:
            return "TASK: Generate a concise commit message."

        types_list = "\n".join(f"  - {t}: {desc}" for t, desc in COMMIT_TYPES.items())
        return f"""TASK: Generate a commit message in Conventional Commits format.
FORMAT: <type>(<scope>): <subject>
<type> MUST be one of:
{types_list}
(<scope>) is optional and should be a short noun such as a module name (auth, api, cli)."""

    def _build_output_section(self, budget: GenerationBudget) -> str:
        if budget.one_line:
            return "OUTPUT: Single line only. No body."
        return "OUTPUT: A short subject line, a blank line, then a short body of bullet points."

    def _build_emoji_section(self, budget: GenerationBudget) -> str:
        if not budget.emoji:
            return ""
        return "If possible, prefix the subject with a relevant emoji for the change type."

    def _build_rules_section(self) -> str:
        return f"""RULES:
- Subject must be imperative, lowercase, and concise (max {MAX_SUBJECT_LENGTH} chars).
- Prefer specific verbs ("add", "remove", "extract") over "update" or "change".
- Entire message should be plain text, no markdown.
- Do not wrap in quotes or code fences.
- Respond with only the commit message text."""
