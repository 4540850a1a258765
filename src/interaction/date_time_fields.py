"""Date, date-picker and time fill protocols"""

import re
from datetime import date, datetime
from typing import Any, Tuple

from src.engine.config import (
    AMPM_OPTION_SELECTOR,
    DATEPICKER_DAY_FALLBACK_TEMPLATE,
    DATEPICKER_DAY_TEMPLATE,
    DATEPICKER_MONTH_SELECT,
    DATEPICKER_OVERLAY_SELECTOR,
    DATEPICKER_WRAPPER_SELECTOR,
    DATEPICKER_YEAR_SELECT,
)
from src.engine.errors import DateParseError, InteractionFailure
from src.engine.models import DetectedField, FieldType
from src.interaction.common import InteractionContext, match_text_index


# Accepted input formats, tried in order after ISO
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%fZ",
]


# =============================================================================
# PARSING
# =============================================================================

def parse_date(value: Any, label: str = "") -> date:
    """
    Parse a calendar date

    Raises:
        DateParseError: value is not a recognizable date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise DateParseError(value, label)


def parse_time(value: Any, label: str = "") -> Tuple[str, str, str]:
    """
    Split "HH:MM[ am|pm]" into zero-padded hour, minute and meridiem

    "14:5" -> ("14", "05", "PM"); "9:30 am" -> ("09", "30", "AM")

    Raises:
        InteractionFailure: fewer than two colon-separated parts or non-numeric parts
    """
    text = str(value).strip()
    parts = text.split(":")
    if len(parts) < 2:
        raise InteractionFailure(f'Invalid time format, expected "HH:MM", got "{text}"', label, value)

    hour_digits = re.sub(r"\D", "", parts[0])
    minute_digits = re.sub(r"\D", "", parts[1])[:2]
    if not hour_digits or not minute_digits:
        raise InteractionFailure(f'Invalid time format, expected "HH:MM", got "{text}"', label, value)

    hour = hour_digits.zfill(2)
    minute = minute_digits.zfill(2)

    lower = text.lower()
    meridiem = "PM" if "pm" in lower else "AM"
    if int(hour) >= 12 and "am" not in lower:
        meridiem = "PM"
    return hour, minute, meridiem


def to_24_hour(hour: str, meridiem: str) -> int:
    h = int(hour)
    if meridiem == "PM" and h < 12:
        return h + 12
    if meridiem == "AM" and h == 12:
        return 0
    return h


# =============================================================================
# DATE
# =============================================================================

async def _drive_datepicker(ctx: InteractionContext, field: DetectedField, parsed: date) -> bool:
    """Open the picker overlay and pick month, year and day. False when it never opened."""
    page = ctx.page
    await page.click(field.selector)
    await page.wait_for_selector(DATEPICKER_OVERLAY_SELECTOR, timeout_ms=ctx.config.datepicker_timeout_ms)
    if not await page.is_visible(DATEPICKER_OVERLAY_SELECTOR):
        return False

    try:
        await page.select_option(DATEPICKER_MONTH_SELECT, label=parsed.strftime("%B"))
        await page.select_option(DATEPICKER_YEAR_SELECT, value=str(parsed.year))
    except Exception as e:
        ctx.log(f"Date picker month/year select failed: {e}", "DEBUG")

    day = str(parsed.day)
    try:
        await page.click(DATEPICKER_DAY_TEMPLATE.format(day=day))
    except Exception as e:
        ctx.log(f"Day cell click failed, trying option fallback: {e}", "DEBUG")
        await page.click(DATEPICKER_DAY_FALLBACK_TEMPLATE.format(day=day))
    return True


async def fill_date(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Fill a date or date-picker field

    The value is parsed before the page is touched. Picker widgets are driven
    through their overlay; if the overlay does not open, a MM/DD/YYYY string is
    typed instead. Native inputs get an ISO fill, falling back to typing.

    Args:
        ctx: Interaction context
        field: Date field
        value: Date string, date or datetime

    Returns:
        True when the control holds a value afterwards

    Raises:
        DateParseError: value is not a date
    """
    parsed = parse_date(value, field.label)
    ctx.log(f"Filling date field: {field.label} = {parsed.isoformat()}")
    page = ctx.page
    iso = parsed.isoformat()
    localized = parsed.strftime("%m/%d/%Y")

    is_picker = field.type == FieldType.DATE_PICKER or await page.exists(
        f"{field.selector} {DATEPICKER_WRAPPER_SELECTOR}"
    )
    if is_picker:
        if await _drive_datepicker(ctx, field, parsed):
            return bool(await page.input_value(field.input_locator or field.selector))
        ctx.log("Date picker overlay did not open, typing the date", "WARNING")
        await page.clear(field.selector)
        await page.type(field.selector, localized, delay_ms=ctx.config.typing_delay_ms)
        await page.press(field.selector, "Enter")
        return bool(await page.input_value(field.selector))

    try:
        await page.fill(field.selector, iso)
        return await page.input_value(field.selector) == iso
    except Exception as e:
        ctx.log(f"ISO fill rejected ({e}), typing {localized}", "DEBUG")
        await page.type(field.selector, localized, delay_ms=ctx.config.typing_delay_ms)
        return bool(await page.input_value(field.selector))


# =============================================================================
# TIME
# =============================================================================

async def _type_time_part(ctx: InteractionContext, selector: str, digits: str):
    await ctx.page.click(selector)
    await ctx.page.wait(100)
    await ctx.page.clear(selector)
    # some time widgets drop keystrokes that arrive too fast
    await ctx.page.type(selector, digits, delay_ms=ctx.config.time_typing_delay_ms)


async def _select_meridiem(ctx: InteractionContext, selector: str, meridiem: str):
    page = ctx.page
    await page.click(selector)
    await page.wait(ctx.config.suggestion_wait_ms)
    texts = await page.inner_texts(AMPM_OPTION_SELECTOR)
    idx = match_text_index(texts, meridiem)
    if idx is not None:
        await page.click_nth(AMPM_OPTION_SELECTOR, idx)
        ctx.log(f"Selected AM/PM: {meridiem}", "DEBUG")
        return
    await page.keyboard_type(meridiem[0])
    await page.keyboard_press("Enter")
    ctx.log(f"Selected AM/PM via keyboard: {meridiem}", "DEBUG")


async def fill_time(ctx: InteractionContext, field: DetectedField, value: Any) -> bool:
    """
    Fill a split hour/minute(/AM-PM) control, or a native time input

    Returns:
        True when every numeric part reads back as typed

    Raises:
        InteractionFailure: unparseable value or read-back mismatch
    """
    hour, minute, meridiem = parse_time(value, field.label)
    ctx.log(f"Filling time field: {field.label} -> {hour}:{minute} {meridiem}")
    page = ctx.page

    if not field.sub_inputs:
        native = f"{to_24_hour(hour, meridiem):02d}:{minute}"
        await page.fill(field.selector, native)
        actual = await page.input_value(field.selector)
        if actual[:5] != native:
            raise InteractionFailure(f"Time read-back mismatch: expected {native}, got '{actual}'", field.label, value)
        return True

    expected = {"hour": hour, "minute": minute}
    for sub in field.sub_inputs:
        if sub.part in expected:
            await _type_time_part(ctx, sub.selector, expected[sub.part])
        elif sub.part == "ampm":
            await _select_meridiem(ctx, sub.selector, meridiem)

    mismatches = []
    for sub in field.sub_inputs:
        if sub.part not in expected:
            continue
        actual = await page.input_value(sub.selector)
        if actual != expected[sub.part]:
            mismatches.append(f"{sub.part} expected {expected[sub.part]}, got '{actual}'")

    if mismatches:
        raise InteractionFailure(f"Failed to fill time field: {'; '.join(mismatches)}", field.label, value)
    return True
