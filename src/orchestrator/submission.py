"""Submit-control location and submission confirmation"""

import re
from typing import Optional

from loguru import logger

from src.browser.page_capability import PageCapability
from src.engine.config import (
    FAILURE_INDICATORS,
    SUBMIT_KEYWORD,
    SUBMIT_SCAN_SELECTORS,
    SUBMIT_SELECTORS,
    SUCCESS_INDICATORS,
    SUCCESS_URL_MARKERS,
    FillConfig,
)
from src.engine.errors import SubmissionNotFound, SubmissionUnconfirmed
from src.engine.models import DetectedField


def success_text_selector() -> str:
    """Case-insensitive text selector matching any success indicator"""
    pattern = "|".join(re.escape(s) for s in SUCCESS_INDICATORS)
    return f"text=/{pattern}/i"


async def locate_submit(page: PageCapability) -> Optional[str]:
    """
    Find the submit control

    Tries SUBMIT_SELECTORS in order, then scans the DOM for a clickable
    element whose text equals or contains the submit keyword.

    Returns:
        Selector of the control, or None
    """
    for selector in SUBMIT_SELECTORS:
        if await page.exists(selector):
            return selector
    return await page.find_clickable_by_text(SUBMIT_SCAN_SELECTORS, SUBMIT_KEYWORD)


async def confirm_submission(
    page: PageCapability,
    url_before: str,
    first_field: Optional[DetectedField],
    config: FillConfig,
    correlation_id: str = "N/A"
) -> str:
    """
    Decide whether the submit click actually submitted

    Signals, in order: a success message, a URL change, the first detected
    field disappearing.

    Returns:
        Name of the confirming signal

    Raises:
        SubmissionUnconfirmed: no signal observed
    """
    if await page.wait_for_selector(success_text_selector(), timeout_ms=config.confirmation_timeout_ms):
        logger.info(f"[{correlation_id}] Submission confirmed by success message")
        return "success_text"

    current = page.url
    if current != url_before:
        if any(marker in current for marker in SUCCESS_URL_MARKERS):
            logger.info(f"[{correlation_id}] Submission confirmed by URL change to a success page: {current}")
        else:
            logger.info(f"[{correlation_id}] Submission confirmed by URL change: {current}")
        return "url_change"

    if first_field is not None and not await page.exists(first_field.selector):
        logger.info(f"[{correlation_id}] Submission likely successful: form elements are gone")
        return "form_gone"

    body = (await page.inner_text("body")).lower()
    hints = [i for i in FAILURE_INDICATORS if i in body]
    if hints:
        raise SubmissionUnconfirmed(
            f"Submission failed: form is still present after clicking submit (page says: {hints[0]})"
        )
    raise SubmissionUnconfirmed()


async def submit_form(
    page: PageCapability,
    first_field: Optional[DetectedField],
    config: FillConfig,
    correlation_id: str = "N/A"
) -> str:
    """
    Locate, click and confirm

    Raises:
        SubmissionNotFound: no submit control
        SubmissionUnconfirmed: click went through but nothing confirmed it
    """
    selector = await locate_submit(page)
    if selector is None:
        raise SubmissionNotFound()

    url_before = page.url
    logger.info(f"[{correlation_id}] Found submit button ({selector}), clicking")
    await page.click(selector, force=True)
    return await confirm_submission(page, url_before, first_field, config, correlation_id)
