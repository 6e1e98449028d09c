"""Prompt context building, templates and the analysis output schema."""

from ai_comments.prompts.context import PromptContext, build_prompt_context
from ai_comments.prompts.templates import PromptManager, TemplateSection

__all__: list[str] = [
    "PromptContext",
    "PromptManager",
    "TemplateSection",
    "build_prompt_context",
]
