"""Prompt context construction and change heuristics.

This module flattens a submitted change and its page context into a
``PromptContext`` record that drives both prompt rendering and the confidence
estimate. Every function here is pure and total: any well-formed
``ChangeInput`` / ``AnalysisContext`` pair produces a value.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from ai_comments.core.models import AnalysisContext, ChangeInput, ChangeType

# Substrings of CSS property names whose edits tend to reflow layout
HIGH_IMPACT_PROPERTIES: tuple[str, ...] = ("display", "position", "width", "height", "grid", "flex")


@dataclass(frozen=True, slots=True)
class PromptContext:
    """Flat, computed view of a change used by prompt templates.

    Attributes:
        change_id: ID of the change
        change_type: "text" or "style"
        element_tag: HTML tag of the edited element
        xpath: XPath to the element
        selector: CSS selector for the element
        original_text: Text content before the edit
        modified_text: Text content after the edit
        original_styles: Styles before the edit (empty if not captured)
        modified_styles: Styles after the edit (empty if not captured)
        page_url: URL of the page
        surrounding_html: Surrounding HTML, empty string if not captured
        design_system: Design system label ("unknown" if not detected)
        existing_classes: Sorted CSS classes already used on the page
        viewport_width: Viewport width in pixels
        changed_style_properties: Style keys whose values differ
    """

    change_id: str
    change_type: str
    element_tag: str
    xpath: str
    selector: str
    original_text: str
    modified_text: str
    original_styles: Mapping[str, str]
    modified_styles: Mapping[str, str]
    page_url: str
    surrounding_html: str
    design_system: str
    existing_classes: tuple[str, ...]
    viewport_width: int
    changed_style_properties: tuple[str, ...]

    @property
    def is_text_change(self) -> bool:
        return self.change_type == ChangeType.TEXT.value

    @property
    def is_style_change(self) -> bool:
        return self.change_type == ChangeType.STYLE.value

    @property
    def style_change_count(self) -> int:
        return len(self.changed_style_properties)


def build_prompt_context(change: ChangeInput, context: AnalysisContext) -> PromptContext:
    """Build the flat context record for a change.

    Args:
        change: The change being analyzed
        context: Page context for the change

    Returns:
        PromptContext with computed fields filled in
    """
    original_styles = dict(change.original.styles or {})
    modified_styles = dict(change.modified.styles or {})

    return PromptContext(
        change_id=change.id,
        change_type=change.type.value,
        element_tag=change.element_tag,
        xpath=change.xpath,
        selector=change.selector,
        original_text=change.original.text_content or "",
        modified_text=change.modified.text_content or "",
        original_styles=original_styles,
        modified_styles=modified_styles,
        page_url=context.page_url,
        surrounding_html=context.surrounding_html or "",
        design_system=context.design_system or "unknown",
        existing_classes=tuple(sorted(context.existing_classes)),
        viewport_width=context.viewport_width or 1920,
        changed_style_properties=tuple(
            get_changed_style_properties(original_styles, modified_styles)
        ),
    )


def get_changed_style_properties(
    original: Mapping[str, str] | None,
    modified: Mapping[str, str] | None,
) -> list[str]:
    """List style properties that were added, removed, or changed.

    A missing map is treated as empty, so adding styles to an element that had
    none reports every new property.

    Returns:
        Property names in first-seen order (original keys, then new keys)
    """
    original = original or {}
    modified = modified or {}

    all_keys = list(original)
    all_keys.extend(key for key in modified if key not in original)

    return [key for key in all_keys if original.get(key) != modified.get(key)]


def estimate_change_complexity(change: ChangeInput) -> float:
    """Estimate how complex a change is, from 0.0 (trivial) to 1.0.

    Text changes scale with the length delta and cap at 0.5. Style changes
    scale with the number of changed properties and cap at 0.7, plus a flat
    0.2 when a layout-affecting property is involved.
    """
    if change.type == ChangeType.TEXT:
        original_len = len(change.original.text_content or "")
        modified_len = len(change.modified.text_content or "")
        return min(abs(modified_len - original_len) / 100, 0.5)

    changed_props = get_changed_style_properties(change.original.styles, change.modified.styles)
    complexity = min(len(changed_props) / 10, 0.7)

    has_high_impact = any(
        marker in prop.lower() for prop in changed_props for marker in HIGH_IMPACT_PROPERTIES
    )
    if has_high_impact:
        complexity = min(complexity + 0.2, 1.0)

    return complexity


def estimate_context_quality(context: AnalysisContext) -> float:
    """Estimate how much useful page context is available, from 0.0 to 1.0."""
    quality = 0.3

    if context.surrounding_html and len(context.surrounding_html) > 100:
        quality += 0.3
    if context.design_system and context.design_system != "unknown":
        quality += 0.2
    if context.existing_classes:
        quality += 0.1
    if context.viewport_width:
        quality += 0.1

    return min(quality, 1.0)
