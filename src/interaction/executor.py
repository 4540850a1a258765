"""Interaction executor: dispatch one field to its fill protocol"""

from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from src.browser.page_capability import PageCapability
from src.engine.config import FillConfig
from src.engine.errors import InteractionFailure
from src.engine.models import DetectedField, FieldType, InteractionOutcome
from src.interaction.choice_fields import select_checkboxes, select_radio
from src.interaction.common import InteractionContext
from src.interaction.date_time_fields import fill_date, fill_time
from src.interaction.text_fields import fill_email, fill_phone, fill_text
from src.interaction.widget_fields import (
    fill_autocomplete,
    select_dropdown,
    select_react_select,
    upload_file,
)


Handler = Callable[[InteractionContext, DetectedField, Any], Awaitable[bool]]

HANDLERS: Dict[FieldType, Handler] = {
    FieldType.TEXT: fill_text,
    FieldType.TEXTAREA: fill_text,
    FieldType.EMAIL: fill_email,
    FieldType.PHONE: fill_phone,
    FieldType.DATE: fill_date,
    FieldType.DATE_PICKER: fill_date,
    FieldType.TIME_GROUP: fill_time,
    FieldType.SELECT: select_dropdown,
    FieldType.REACT_SELECT: select_react_select,
    FieldType.AUTOCOMPLETE: fill_autocomplete,
    FieldType.RADIO_GROUP: select_radio,
    FieldType.CHECKBOX_GROUP: select_checkboxes,
    FieldType.FILE: upload_file,
}


def first_line(message: str) -> str:
    """Playwright errors append a multi-line call log; keep only the headline"""
    return message.strip().splitlines()[0] if message.strip() else message


class InteractionExecutor:
    """Runs the type-specific protocol for one field and records the outcome"""

    def __init__(
        self,
        config: Optional[FillConfig] = None,
        correlation_id: str = "N/A",
        handlers: Optional[Dict[FieldType, Handler]] = None
    ):
        self.config = config or FillConfig()
        self.correlation_id = correlation_id
        self.handlers = handlers or HANDLERS

    async def fill(self, field: DetectedField, value: Any, page: PageCapability) -> InteractionOutcome:
        """
        Fill one field. Never raises.

        Args:
            field: Detected field
            value: Caller value for the field
            page: Page capability

        Returns:
            InteractionOutcome with verified flag, and error set when the
            protocol failed or raised
        """
        handler = self.handlers.get(field.type)
        if handler is None:
            return InteractionOutcome(
                field=field,
                attempted_value=value,
                error=str(InteractionFailure(f"No handler for field type {field.type.value}", field.label, value)),
            )

        ctx = InteractionContext(page=page, config=self.config, correlation_id=self.correlation_id)
        try:
            verified = await handler(ctx, field, value)
            return InteractionOutcome(field=field, attempted_value=value, verified=bool(verified))
        except InteractionFailure as e:
            if not e.label:
                e = InteractionFailure(e.reason, field.label, value)
            logger.warning(f"[{self.correlation_id}] {e}")
            return InteractionOutcome(field=field, attempted_value=value, error=str(e))
        except Exception as e:
            logger.opt(exception=True).debug(f"[{self.correlation_id}] Handler for '{field.label}' raised")
            failure = InteractionFailure(first_line(str(e)) or e.__class__.__name__, field.label, value)
            logger.warning(f"[{self.correlation_id}] {failure}")
            return InteractionOutcome(field=field, attempted_value=value, error=str(failure))
