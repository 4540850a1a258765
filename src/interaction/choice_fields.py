"""Radio and checkbox group protocols"""

from typing import Any

from src.browser.page_capability import id_selector
from src.engine.config import RETRY_CLICK_POSITION
from src.engine.errors import InteractionFailure
from src.engine.models import DetectedField, FieldOption
from src.interaction.common import InteractionContext, as_values, find_option_match


async def click_target_for(ctx: InteractionContext, option: FieldOption) -> str:
    """Prefer the option's <label for=id>, since the input itself is often hidden"""
    if option.id:
        label_selector = f'label[for="{option.id}"]'
        if await ctx.page.exists(label_selector):
            return label_selector
    return option.selector


async def is_option_checked(ctx: InteractionContext, target: str, option: FieldOption) -> bool:
    if await ctx.page.is_checked(target):
        return True
    if option.id:
        return await ctx.page.is_checked(id_selector(option.id))
    return False


async def _click_and_verify(ctx: InteractionContext, target: str, option: FieldOption) -> bool:
    """Forced click, then one retry at an offset position when the state did not change"""
    page = ctx.page
    await page.scroll_into_view(target)
    try:
        await page.click(target, force=True)
    except Exception as e:
        ctx.log(f"Standard click failed on {target}, using in-page click: {e}", "DEBUG")
        await page.js_click(target)
    await page.wait(ctx.config.settle_ms)

    if await is_option_checked(ctx, target, option):
        return True

    ctx.log(f"Check verification failed for '{option.label}', retrying with offset click", "WARNING")
    await page.click(target, force=True, position=RETRY_CLICK_POSITION)
    await page.wait(ctx.config.settle_ms)
    return await is_option_checked(ctx, target, option)


async def select_radio(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Select one radio option by exact case-insensitive value/label match

    Raises:
        InteractionFailure: no matching option, or the option never reads back as checked
    """
    ctx.log(f"Selecting radio option for: {field.label}")
    option = find_option_match(field.options, value)
    if option is None:
        raise InteractionFailure("No matching option found", field.label, value)

    target = await click_target_for(ctx, option)
    ctx.log(f"Matched option '{option.label}' via {target}", "DEBUG")
    if not await _click_and_verify(ctx, target, option):
        raise InteractionFailure("Failed to select radio option after retry", field.label, value)
    return True


async def select_checkboxes(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Check one or many options; options already checked are left alone

    Raises:
        InteractionFailure: a value has no matching option or will not stay checked
    """
    ctx.log(f"Checking options for: {field.label}")
    for item in as_values(value):
        option = find_option_match(field.options, item)
        if option is None:
            raise InteractionFailure("No matching checkbox found", field.label, item)

        target = await click_target_for(ctx, option)
        if await is_option_checked(ctx, target, option):
            ctx.log(f"'{option.label}' already checked", "DEBUG")
            continue

        if not await _click_and_verify(ctx, target, option):
            raise InteractionFailure("Failed to check option after retry", field.label, item)
        ctx.log(f"Verified checked: {option.label}", "DEBUG")
    return True
