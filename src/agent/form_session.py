"""Form session: single-step form operations over one explicitly owned page.

Each operation (navigate, detect, fill one field, select one option,
submit) can be called on its own and returns something the caller can
verify. ``run_fill`` chains them through the orchestrator and applies the
terminal browser policy.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional

from loguru import logger
from tenacity import stop_after_attempt

from src.analytics.metrics import MetricsTracker
from src.browser.page_capability import PageCapability
from src.browser.session import BrowserSession
from src.discovery.inspector import inspect_form, summarize_fields
from src.engine.config import FillConfig
from src.engine.errors import FormFillError
from src.engine.models import DetectedField, ExecutionState, FieldType, FillResult, InteractionOutcome
from src.interaction.executor import InteractionExecutor
from src.mapping.label_mapper import normalize
from src.orchestrator.fill_orchestrator import goto_form, normalize_form_url, FillOrchestrator
from src.orchestrator.job_context import JobContext
from src.orchestrator.submission import submit_form


CHOICE_TYPES = frozenset({
    FieldType.RADIO_GROUP,
    FieldType.CHECKBOX_GROUP,
    FieldType.SELECT,
    FieldType.REACT_SELECT,
    FieldType.AUTOCOMPLETE,
})


class FormSession:
    """Owns one page and the fields detected on it"""

    def __init__(
        self,
        config: Optional[FillConfig] = None,
        page: Optional[PageCapability] = None,
        browser: Optional[BrowserSession] = None,
        metrics: Optional[MetricsTracker] = None,
        correlation_id: Optional[str] = None
    ):
        self.config = config or FillConfig()
        self.correlation_id = correlation_id or str(uuid.uuid4())[:8]
        self.page = page
        self.browser = browser
        self.metrics = metrics
        self.fields: List[DetectedField] = []
        self.filled_fields: Dict[str, Dict[str, Any]] = {}
        self.executor = InteractionExecutor(self.config, self.correlation_id)

    async def start(self) -> PageCapability:
        """Launch a browser unless a page was supplied"""
        if self.page is None:
            self.browser = self.browser or BrowserSession(self.correlation_id)
            self.page = await self.browser.start_browser(headless=self.config.headless)
        return self.page

    async def close(self):
        if self.browser:
            await self.browser.close_browser()
        self.page = None

    # =========================================================================
    # SINGLE-STEP OPERATIONS
    # =========================================================================

    async def navigate(self, url: str) -> str:
        """
        Open a form URL

        Returns:
            The URL the page ended up on

        Raises:
            NavigationTimeout: page did not load
        """
        page = await self.start()
        target = normalize_form_url(url)
        logger.info(f"[{self.correlation_id}] Navigating to {target}")
        goto = goto_form.retry_with(stop=stop_after_attempt(self.config.navigation_attempts))
        await goto(page, target, self.config.navigation_timeout_ms)
        if self.config.post_load_settle_ms:
            await page.wait(self.config.post_load_settle_ms)
        self.fields = []
        self.filled_fields = {}
        return page.url

    async def detect_fields(self) -> List[DetectedField]:
        page = await self.start()
        self.fields = await inspect_form(page, self.config, self.correlation_id)
        return self.fields

    def summary(self) -> str:
        return summarize_fields(self.fields)

    def find_field(self, label: str) -> Optional[DetectedField]:
        """
        Look up a detected field by approximate label

        Exact normalized match first, then containment either way, then the
        first email field when the query mentions email.
        """
        query = normalize(label)
        if not query:
            return None
        for field in self.fields:
            if normalize(field.label) == query:
                return field
        for field in self.fields:
            norm = normalize(field.label)
            if norm and (query in norm or norm in query):
                return field
        if "email" in query:
            for field in self.fields:
                if field.type == FieldType.EMAIL:
                    return field
        return None

    def _require_field(self, label: str) -> DetectedField:
        field = self.find_field(label)
        if field is None:
            raise FormFillError(f'Field "{label}" not found. Run detect_form_fields first.')
        return field

    async def _fill(self, field: DetectedField, value: Any) -> InteractionOutcome:
        outcome = await self.executor.fill(field, value, self.page)
        if self.metrics:
            self.metrics.record_field_outcome(field.type.value, outcome.verified, outcome.error)
        status = "FAILED" if outcome.failed else ("FILLED" if outcome.verified else "UNVERIFIED")
        self.filled_fields[field.label] = {"status": status, "value": value}
        return outcome

    async def fill_field(self, label: str, value: Any) -> InteractionOutcome:
        """Fill one field found by label"""
        await self.start()
        field = self._require_field(label)
        logger.info(f'[{self.correlation_id}] Filling "{field.label}" with "{value}"')
        return await self._fill(field, value)

    async def select_option(self, label: str, option: Any) -> InteractionOutcome:
        """
        Pick an option in a radio, checkbox, dropdown or searchable field

        Raises:
            FormFillError: no such field, or it has no options to pick
        """
        await self.start()
        field = self._require_field(label)
        if field.type not in CHOICE_TYPES:
            raise FormFillError(f'Field "{field.label}" is a {field.type.value} field, not a choice field.')
        logger.info(f'[{self.correlation_id}] Selecting "{option}" for "{field.label}"')
        return await self._fill(field, option)

    async def submit(self) -> str:
        """
        Click submit and confirm

        Returns:
            The confirming signal name
        """
        page = await self.start()
        first_field = self.fields[0] if self.fields else None
        return await submit_form(page, first_field, self.config, self.correlation_id)

    # =========================================================================
    # FULL RUN
    # =========================================================================

    async def run_fill(
        self,
        form_url: str,
        data_map: Dict[str, Any],
        context: Optional[JobContext] = None
    ) -> FillResult:
        """
        Fill and submit a form, then apply the terminal policy

        COMPLETED closes the browser after the grace period; FAILED leaves it
        open so an operator can see where it stopped.
        """
        page = await self.start()
        context = context or JobContext(form_url, data_map, correlation_id=self.correlation_id)
        orchestrator = FillOrchestrator(config=self.config, context=context, metrics=self.metrics)
        result = await orchestrator.run(page, form_url, data_map)
        self.fields = list(context.detected_fields)

        if result.final_state == ExecutionState.COMPLETED:
            context.log(f"Job successful. Closing browser in {self.config.teardown_grace_seconds:g} seconds")
            await asyncio.sleep(self.config.teardown_grace_seconds)
            await self.close()
        else:
            context.log("Job failed or incomplete. Keeping browser open for inspection", "WARN")
        return result
