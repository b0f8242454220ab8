"""
Commit Message Generator

Turns staged git changes into a policy-compliant commit message, using an LLM
backend when one is reachable and a deterministic fallback otherwise.
"""

__version__ = "2.0.0"

# Centralized commit types - single source of truth
# Used by: prompts/builder.py, pipeline/sanitize.py (validation), output (colors)
COMMIT_TYPES = {
    'feat': 'A new feature or capability',
    'fix': 'A bug fix',
    'build': 'Build system or external dependency changes',
    'chore': 'Maintenance tasks, dependencies, tooling',
    'ci': 'CI/CD configuration changes',
    'docs': 'Documentation only changes',
    'style': 'Formatting, whitespace, no code change',
    'refactor': 'Code restructuring without behavior change',
    'perf': 'Performance improvement',
    'test': 'Adding or updating tests',
}

COMMIT_TYPE_NAMES = list(COMMIT_TYPES.keys())
