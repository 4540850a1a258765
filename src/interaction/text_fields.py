"""Text, email and phone fill protocols"""

import re
from typing import Any

from src.engine.config import EMAIL_PATTERN, MIN_PHONE_DIGITS
from src.engine.errors import InteractionFailure
from src.engine.models import DetectedField
from src.interaction.common import InteractionContext


async def _clear_and_type(ctx: InteractionContext, selector: str, text: str):
    await ctx.page.click(selector)
    await ctx.page.fill(selector, "")
    await ctx.page.type(selector, text, delay_ms=ctx.config.typing_delay_ms)
    await ctx.page.blur(selector)


async def fill_text(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """Clear, type, blur. Verified when the control reads back the typed text."""
    text = str(value)
    await _clear_and_type(ctx, field.selector, text)
    actual = await ctx.page.input_value(field.selector)
    if actual.strip() != text.strip():
        ctx.log(f"Text read-back mismatch for {field.label}: expected '{text}', got '{actual}'", "WARNING")
        return False
    return True


async def fill_email(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    ctx.log(f"Filling email field: {field.label}")
    text = str(value)
    await _clear_and_type(ctx, field.selector, text)

    filled = await ctx.page.input_value(field.selector)
    if re.search(EMAIL_PATTERN, filled) and filled == text:
        ctx.log(f"Verified email field is populated: {filled}", "DEBUG")
        return True
    raise InteractionFailure(f"Email validation failed: '{filled}'", field.label, value)


async def fill_phone(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Type the digits of value and check enough digits stuck

    Raises:
        InteractionFailure: fewer than MIN_PHONE_DIGITS digits read back
    """
    ctx.log(f"Filling phone field: {field.label}")
    digits_in = re.sub(r"\D", "", str(value))
    await _clear_and_type(ctx, field.selector, digits_in)

    filled = await ctx.page.input_value(field.selector)
    digits = re.sub(r"\D", "", filled)
    if len(digits) >= MIN_PHONE_DIGITS:
        ctx.log(f"Verified phone field length = {len(digits)}", "DEBUG")
        return True
    raise InteractionFailure(
        f"Phone verification failed: length {len(digits)} < {MIN_PHONE_DIGITS}", field.label, value
    )
