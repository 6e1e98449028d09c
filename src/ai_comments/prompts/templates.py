"""Prompt templates for change analysis.

Templates are declared as ordered ``TemplateSection``s. Each section is a
``str.format`` template plus an optional predicate over the ``PromptContext``;
sections whose predicate is false are left out and the remaining sections are
joined with blank lines. Rendering is pure: the same context always produces
the same text.

Example:
    >>> manager = PromptManager()
    >>> prompt = manager.render("analysis", build_prompt_context(change, context))
"""

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ai_comments.prompts.context import PromptContext
from ai_comments.prompts.schema import get_analysis_result_json_schema

TEMPLATE_NAMES: tuple[str, ...] = (
    "system",
    "analysis",
    "component-analysis",
    "style-review",
    "risk-assessment",
    "pr-scoring",
)


@dataclass(frozen=True, slots=True)
class TemplateSection:
    """One block of a prompt template.

    Args:
        text: ``str.format`` template rendered against the template variables
        when: Optional predicate; the section is skipped when it returns False
    """

    text: str
    when: Callable[[PromptContext], bool] | None = None

    def applies(self, context: PromptContext) -> bool:
        return self.when is None or self.when(context)


def _is_text(ctx: PromptContext) -> bool:
    return ctx.is_text_change


def _is_style(ctx: PromptContext) -> bool:
    return ctx.is_style_change


def _has_surrounding_html(ctx: PromptContext) -> bool:
    return bool(ctx.surrounding_html)


def _has_design_system(ctx: PromptContext) -> bool:
    return bool(ctx.design_system)


def _has_existing_classes(ctx: PromptContext) -> bool:
    return bool(ctx.existing_classes)


SYSTEM_TEMPLATE = (
    TemplateSection(
        "You are an expert frontend code reviewer and design system analyst. You analyze "
        "DOM changes made through a visual editor and provide detailed, actionable feedback."
    ),
    TemplateSection(
        "Your expertise includes:\n"
        "- CSS architecture and cascade effects\n"
        "- Responsive design and breakpoints\n"
        "- Design system consistency\n"
        "- Accessibility best practices\n"
        "- Code quality and maintainability\n"
        "- Semantic HTML structure"
    ),
    TemplateSection(
        "You always provide structured JSON responses matching the specified schema. Your "
        "analysis is thorough but practical, focusing on real risks and actionable suggestions."
    ),
    TemplateSection(
        "When analyzing changes:\n"
        "1. Consider the broader context of the page and design system\n"
        "2. Think about responsive behavior across breakpoints\n"
        "3. Evaluate accessibility implications\n"
        "4. Assess consistency with existing patterns\n"
        "5. Identify potential cascade effects"
    ),
    TemplateSection(
        "Be direct and specific. Avoid vague warnings. When you identify a risk, explain "
        "exactly what could go wrong and how to mitigate it."
    ),
)

ANALYSIS_TEMPLATE = (
    TemplateSection("Analyze the following DOM change and provide a comprehensive review."),
    TemplateSection(
        "## Change Details\n"
        "- **Type**: {change_type} change\n"
        "- **Element**: <{element_tag}>\n"
        "- **Selector**: `{selector}`\n"
        "- **Page URL**: {page_url}"
    ),
    TemplateSection("## Original State"),
    TemplateSection('**Text Content**: "{original_text}"', when=_is_text),
    TemplateSection("**Styles**:\n```json\n{original_styles}\n```", when=_is_style),
    TemplateSection("## Modified State"),
    TemplateSection('**Text Content**: "{modified_text}"', when=_is_text),
    TemplateSection("**Styles**:\n```json\n{modified_styles}\n```", when=_is_style),
    TemplateSection(
        "## Surrounding Context\n```html\n{surrounding_html}\n```", when=_has_surrounding_html
    ),
    TemplateSection("## Design System\nDetected: {design_system}", when=_has_design_system),
    TemplateSection(
        "## Existing CSS Classes on Page\n{existing_classes}", when=_has_existing_classes
    ),
    TemplateSection("## Viewport\nWidth: {viewport_width}px"),
    TemplateSection(
        "---\n\n"
        "Analyze this change and respond with a JSON object containing:\n"
        "1. **affectedComponents**: Components impacted by this change\n"
        "2. **risks**: Potential risks (cascade, responsive, accessibility, etc.)\n"
        "3. **suggestions**: Improvement suggestions\n"
        "4. **styleConsistency**: Style consistency review\n"
        "5. **prScore**: Overall PR quality score with breakdown"
    ),
    TemplateSection(
        "Response must be valid JSON matching this schema:\n```json\n{output_schema}\n```"
    ),
)

COMPONENT_ANALYSIS_TEMPLATE = (
    TemplateSection("Analyze the component impact of this DOM change."),
    TemplateSection(
        "## Change\n"
        "- Element: <{element_tag}>\n"
        "- Selector: {selector}\n"
        "- Change Type: {change_type}"
    ),
    TemplateSection("## Context"),
    TemplateSection("```html\n{surrounding_html}\n```", when=_has_surrounding_html),
    TemplateSection(
        "Identify:\n"
        "1. What component is this element part of?\n"
        "2. Are there other instances of this component on the page?\n"
        "3. What other pages might use this component?\n"
        "4. What is the impact level (high/medium/low)?"
    ),
    TemplateSection("Respond with JSON array of ComponentImpact objects."),
)

STYLE_REVIEW_TEMPLATE = (
    TemplateSection("Review the style consistency of this change."),
    TemplateSection("## Original Styles\n```json\n{original_styles}\n```"),
    TemplateSection("## Modified Styles\n```json\n{modified_styles}\n```"),
    TemplateSection("## Changed Properties\n{changed_properties}"),
    TemplateSection("## Design System: {design_system}", when=_has_design_system),
    TemplateSection(
        "Evaluate:\n"
        "1. Color consistency with the design system\n"
        "2. Spacing/padding alignment with existing patterns\n"
        "3. Typography consistency\n"
        "4. Overall style coherence"
    ),
    TemplateSection("Respond with a StyleReview JSON object."),
)

RISK_ASSESSMENT_TEMPLATE = (
    TemplateSection("Assess the risks of this DOM change."),
    TemplateSection(
        "## Change Details\n"
        "- Element: <{element_tag}>\n"
        "- Type: {change_type}\n"
        "- Selector: {selector}"
    ),
    TemplateSection(
        "## Style Changes\n"
        "Changed properties: {changed_properties}\n\n"
        "Original:\n```json\n{original_styles}\n```\n\n"
        "Modified:\n```json\n{modified_styles}\n```",
        when=_is_style,
    ),
    TemplateSection(
        '## Text Change\nOriginal: "{original_text}"\nModified: "{modified_text}"',
        when=_is_text,
    ),
    TemplateSection("## Context\nViewport: {viewport_width}px"),
    TemplateSection("Surrounding HTML available for context", when=_has_surrounding_html),
    TemplateSection(
        "Identify risks in these categories:\n"
        "- **cascade**: CSS cascade effects on other elements\n"
        "- **responsive**: Responsive design breakpoint issues\n"
        "- **accessibility**: Accessibility concerns\n"
        "- **performance**: Performance implications\n"
        "- **semantic**: Semantic HTML structure\n"
        "- **compatibility**: Browser compatibility\n"
        "- **design-consistency**: Design system alignment"
    ),
    TemplateSection(
        "For each risk, provide:\n"
        "- Severity (critical/high/medium/low)\n"
        "- Clear description\n"
        "- Specific mitigation steps"
    ),
    TemplateSection("Respond with JSON array of Risk objects."),
)

PR_SCORING_TEMPLATE = (
    TemplateSection("Score this change as if reviewing a pull request."),
    TemplateSection(
        "## Change Summary\n"
        "- Element: <{element_tag}>\n"
        "- Type: {change_type_title} change\n"
        "- Selector: {selector}"
    ),
    TemplateSection(
        'Text changed from "{original_text}" to "{modified_text}"', when=_is_text
    ),
    TemplateSection("Style properties changed: {changed_properties}", when=_is_style),
    TemplateSection(
        "## Scoring Criteria (0-100 each)\n\n"
        "1. **Code Consistency**: Does this match surrounding code patterns and conventions?\n"
        "2. **Reuse Score**: Does it leverage existing utilities or create redundant styles?\n"
        "3. **AI Detection Risk**: Would a reviewer flag this as AI-generated? "
        "(higher score = higher risk)\n"
        "4. **Cascade Risk**: Will CSS changes affect other elements unexpectedly? "
        "(higher score = higher risk)\n"
        "5. **Responsive Score**: Are there responsive breakpoint considerations handled?\n"
        "6. **Semantic Score**: Is semantic HTML structure preserved?\n"
        "7. **Intent Alignment**: Does this match what the user likely intended?"
    ),
    TemplateSection(
        "## Also Consider\n"
        "- Would you approve this PR?\n"
        "- What flags would you raise for reviewers?\n"
        "- Brief summary of change quality"
    ),
    TemplateSection(
        "Respond with a PRScore JSON object including overall score, breakdown, and flags."
    ),
)

DEFAULT_TEMPLATES: dict[str, tuple[TemplateSection, ...]] = {
    "system": SYSTEM_TEMPLATE,
    "analysis": ANALYSIS_TEMPLATE,
    "component-analysis": COMPONENT_ANALYSIS_TEMPLATE,
    "style-review": STYLE_REVIEW_TEMPLATE,
    "risk-assessment": RISK_ASSESSMENT_TEMPLATE,
    "pr-scoring": PR_SCORING_TEMPLATE,
}


def _json(value: Mapping[str, Any] | None) -> str:
    return json.dumps(dict(value or {}), indent=2)


def template_variables(context: PromptContext, output_schema: Mapping[str, Any]) -> dict[str, Any]:
    """Build the ``str.format`` variables available to every template."""
    return {
        "change_id": context.change_id,
        "change_type": context.change_type,
        "change_type_title": context.change_type.capitalize(),
        "element_tag": context.element_tag,
        "xpath": context.xpath,
        "selector": context.selector,
        "page_url": context.page_url,
        "original_text": context.original_text,
        "modified_text": context.modified_text,
        "original_styles": _json(context.original_styles),
        "modified_styles": _json(context.modified_styles),
        "surrounding_html": context.surrounding_html,
        "design_system": context.design_system,
        "existing_classes": ", ".join(context.existing_classes),
        "viewport_width": context.viewport_width,
        "changed_properties": ", ".join(context.changed_style_properties),
        "output_schema": json.dumps(output_schema, indent=2),
    }


class PromptManager:
    """Holds the named prompt templates and renders them against a context.

    Each manager owns its own template table, so overrides registered on one
    instance never leak into another.
    """

    def __init__(self) -> None:
        self._templates: dict[str, tuple[TemplateSection, ...]] = dict(DEFAULT_TEMPLATES)
        self._output_schema = get_analysis_result_json_schema()

    @property
    def template_names(self) -> list[str]:
        return sorted(self._templates)

    def get_output_schema(self) -> dict[str, Any]:
        """Return the JSON schema embedded in the analysis prompt."""
        return self._output_schema

    def register_template(self, name: str, sections: str | Iterable[TemplateSection]) -> None:
        """Register or replace a template.

        Args:
            name: Template name
            sections: A single format string, or an ordered sequence of sections
        """
        if isinstance(sections, str):
            self._templates[name] = (TemplateSection(sections),)
        else:
            self._templates[name] = tuple(sections)

    def render(self, name: str, context: PromptContext) -> str:
        """Render a template.

        Args:
            name: Template name
            context: Prompt context to render against

        Returns:
            Rendered prompt text

        Raises:
            KeyError: If no template is registered under ``name``
        """
        try:
            sections = self._templates[name]
        except KeyError:
            raise KeyError(f'Template "{name}" not found') from None

        variables = template_variables(context, self._output_schema)
        parts = [
            section.text.format(**variables) for section in sections if section.applies(context)
        ]
        return "\n\n".join(parts)
