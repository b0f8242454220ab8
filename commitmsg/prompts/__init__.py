"""Prompt Construction Package"""

from commitmsg.prompts.builder import PromptBuilder, MAX_SUBJECT_LENGTH

__all__ = ["PromptBuilder", "MAX_SUBJECT_LENGTH"]
