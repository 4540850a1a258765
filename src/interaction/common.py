"""Shared helpers for field interaction handlers"""

from dataclasses import dataclass, field as dc_field
from typing import Any, Iterable, List, Optional, Sequence

from loguru import logger

from src.browser.page_capability import PageCapability
from src.engine.config import FOCUS_RESET_POSITION, FOCUS_RESET_SELECTOR, FillConfig
from src.engine.models import FieldOption


@dataclass
class InteractionContext:
    """Everything a handler needs besides the field and the value"""
    page: PageCapability
    config: FillConfig = dc_field(default_factory=FillConfig)
    correlation_id: str = "N/A"

    def log(self, message: str, level: str = "INFO"):
        logger.log(level, f"[{self.correlation_id}] {message}")


def as_values(value: Any) -> List[str]:
    """Single value or list -> list of strings"""
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


def find_option_match(options: Iterable[FieldOption], value: Any) -> Optional[FieldOption]:
    """
    Exact, case-insensitive match on option value or label

    First match wins; there is deliberately no fuzzy matching at option level.
    """
    target = str(value).strip().lower()
    for option in options:
        if option.value and option.value.strip().lower() == target:
            return option
        if option.label and option.label.strip().lower() == target:
            return option
    return None


def match_text_index(texts: Sequence[str], value: Any, allow_contains: bool = False) -> Optional[int]:
    """Index of the first rendered option text matching value, exact first then substring"""
    target = str(value).strip().lower()
    for i, text in enumerate(texts):
        if text.strip().lower() == target:
            return i
    if allow_contains and target:
        for i, text in enumerate(texts):
            if target in text.strip().lower():
                return i
    return None


async def restore_focus(ctx: InteractionContext):
    """Click outside and blur so a widget that grabbed focus releases it"""
    ctx.log("Restoring focus after dropdown selection", "DEBUG")
    await ctx.page.click(FOCUS_RESET_SELECTOR, force=True, position=FOCUS_RESET_POSITION)
    await ctx.page.blur_active()
