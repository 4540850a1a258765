"""Dropdown, searchable-select, autocomplete and file protocols"""

import os
from typing import Any

from src.engine.config import (
    AUTOCOMPLETE_TOKEN_SELECTOR,
    LISTBOX_OPTION_SELECTOR,
    REACT_SELECT_MENU_SELECTOR,
    REACT_SELECT_OPTION_SELECTOR,
)
from src.engine.errors import InteractionFailure
from src.engine.models import DetectedField
from src.interaction.common import (
    InteractionContext,
    as_values,
    find_option_match,
    match_text_index,
    restore_focus,
)


# =============================================================================
# SELECT
# =============================================================================

async def _select_listbox(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    page = ctx.page
    await page.click(field.selector)
    if not await page.wait_for_selector(LISTBOX_OPTION_SELECTOR, timeout_ms=ctx.config.menu_timeout_ms):
        raise InteractionFailure("Dropdown options did not appear", field.label, value)

    texts = await page.inner_texts(LISTBOX_OPTION_SELECTOR)
    idx = match_text_index(texts, value)
    if idx is None:
        await page.keyboard_press("Escape")
        raise InteractionFailure("No matching option found", field.label, value)

    ctx.log(f"Clicking option: {texts[idx]}", "DEBUG")
    await page.click_nth(LISTBOX_OPTION_SELECTOR, idx)
    await page.wait(ctx.config.suggestion_wait_ms)

    shown = await page.inner_text(field.selector)
    return str(value).strip().lower() in shown.lower()


async def _select_native(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    option = find_option_match(field.options, value)
    if option is None:
        raise InteractionFailure("No matching option found", field.label, value)
    await ctx.page.select_option(field.selector, index=field.options.index(option))
    return await ctx.page.input_value(field.selector) == option.value


async def select_dropdown(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Select from a native <select>, a role=listbox control, or anything else dropdown-like

    Native selects match the captured options and select by index. Listbox
    controls are opened and matched on their rendered option text. Unknown
    controls get a click, typed value and Enter.
    """
    ctx.log(f"Selecting dropdown option for: {field.label}")
    page = ctx.page

    if await page.get_attribute(field.selector, "role") == "listbox":
        return await _select_listbox(ctx, field, value)
    if await page.tag_name(field.selector) == "select":
        return await _select_native(ctx, field, value)

    await page.click(field.selector)
    await page.wait(ctx.config.suggestion_wait_ms)
    await page.keyboard_type(str(value))
    await page.keyboard_press("Enter")
    shown = await page.input_value(field.selector)
    return str(value).strip().lower() in shown.lower()


# =============================================================================
# SEARCHABLE SELECT / AUTOCOMPLETE
# =============================================================================

async def select_react_select(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Pick an option in a searchable-select widget

    Opens the menu through its container, nudges it with ArrowDown, and
    matches option text exactly then by substring. When the menu never opens
    or nothing matches, the value is typed into the inner input and committed
    with Enter. Focus is always pulled back out of the widget afterwards.
    """
    ctx.log(f"Selecting searchable option for: {field.label}")
    page = ctx.page
    target = str(value).strip()

    await page.click(field.selector, force=True)
    await page.wait(ctx.config.suggestion_wait_ms)
    # some implementations only render the menu after a keyboard event
    await page.keyboard_press("ArrowDown")

    picked = False
    if await page.wait_for_selector(REACT_SELECT_MENU_SELECTOR, timeout_ms=ctx.config.menu_timeout_ms):
        texts = await page.inner_texts(REACT_SELECT_OPTION_SELECTOR)
        idx = match_text_index(texts, target, allow_contains=True)
        if idx is not None:
            await page.click_nth(REACT_SELECT_OPTION_SELECTOR, idx)
            picked = True
            ctx.log(f"Selected menu option: {texts[idx]}", "DEBUG")

    if not picked:
        inner = field.input_locator or f"{field.selector} input"
        ctx.log(f"Menu match failed, typing into {inner}", "WARNING")
        await page.fill(inner, target)
        await page.press(inner, "Enter")

    await page.wait(ctx.config.settle_ms)
    await restore_focus(ctx)

    shown = await page.inner_text(field.selector)
    return target.lower() in shown.lower()


async def fill_autocomplete(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Type each value, wait for suggestions, commit with Enter

    Verified only when every value shows up as a newly rendered token.
    """
    ctx.log(f"Filling autocomplete: {field.label}")
    page = ctx.page
    before = await page.inner_texts(AUTOCOMPLETE_TOKEN_SELECTOR)
    await page.click(field.selector)
    items = as_values(value)
    for item in items:
        await page.type(field.selector, item, delay_ms=ctx.config.typing_delay_ms)
        await page.wait(ctx.config.suggestion_wait_ms)
        await page.press(field.selector, "Enter")
        ctx.log(f"Committed: {item}", "DEBUG")

    added = list(await page.inner_texts(AUTOCOMPLETE_TOKEN_SELECTOR))
    for text in before:
        if text in added:
            added.remove(text)

    missing = [item for item in items if match_text_index(added, item, allow_contains=True) is None]
    if missing:
        ctx.log(f"No token rendered for: {', '.join(missing)}", "WARNING")
    return not missing


# =============================================================================
# FILE
# =============================================================================

async def upload_file(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Attach a file. Failures are soft: logged and reported as unverified.

    Relative paths resolve against the working directory.
    """
    path = str(value)
    if not os.path.isabs(path):
        path = os.path.abspath(path)
    ctx.log(f"Uploading file for {field.label}: {path}")
    try:
        await ctx.page.set_input_files(field.selector, path)
    except Exception as e:
        ctx.log(f"File upload failed for {field.label}: {e}", "WARNING")
        return False
    ctx.log(f"File set: {os.path.basename(path)}", "DEBUG")
    return True
