"""Form inspection: wait for the form, snapshot it, run discovery strategies"""

from typing import List, Optional

from loguru import logger

from src.browser.page_capability import PageCapability
from src.discovery.strategies import discover_fields
from src.engine.config import FORM_READY_SELECTOR, FillConfig
from src.engine.models import DetectedField


async def inspect_form(
    page: PageCapability,
    config: Optional[FillConfig] = None,
    correlation_id: str = "N/A"
) -> List[DetectedField]:
    """
    Detect every fillable field on the currently loaded page

    Never raises for an empty page; returns [] and lets the caller decide
    whether that is a failure.

    Args:
        page: Page capability for the loaded form
        config: Timeouts (defaults used when None)
        correlation_id: Job id for log lines

    Returns:
        Detected fields in discovery order
    """
    config = config or FillConfig()

    ready = await page.wait_for_selector(
        FORM_READY_SELECTOR, timeout_ms=config.form_ready_timeout_ms, state="attached"
    )
    if not ready:
        logger.warning(f"[{correlation_id}] Timed out waiting for form controls, inspecting anyway")

    if config.inspect_settle_ms:
        await page.wait(config.inspect_settle_ms)

    snapshot = await page.snapshot()
    logger.debug(
        f"[{correlation_id}] Snapshot: {len(snapshot.containers)} containers, "
        f"{len(snapshot.elements)} elements"
    )

    fields = discover_fields(snapshot)
    logger.info(f"[{correlation_id}] Detected {len(fields)} fields")
    return fields


def summarize_fields(fields: List[DetectedField]) -> str:
    """
    Render the one-line-per-field digest used by agents and reports

    Format: ``type [*] "label" (options: [a, b])``
    """
    lines = []
    for field in fields:
        line = field.type.value
        if field.required:
            line += " *"
        line += f' "{field.label}"'
        if field.options:
            line += f" (options: [{', '.join(field.option_labels)}])"
        lines.append(line)
    return "\n".join(lines)
