"""Fill orchestrator: one form-fill attempt as a state machine.

QUEUED -> INSPECTING -> FILLING -> SUBMITTING -> COMPLETED, with FAILED
reachable from every step. Discovery and mapping run once; mapped fields are
filled in type-priority order; a required field whose fill errors ends the
job immediately.
"""

from typing import Any, Dict, List, Optional

from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.analytics.metrics import MetricsTracker
from src.browser.page_capability import PageCapability
from src.discovery.inspector import inspect_form
from src.engine.config import (
    TYPE_PRIORITY,
    UNKNOWN_TYPE_PRIORITY,
    VISIBILITY_EXEMPT_TYPES,
    FillConfig,
    RequiredFieldPolicy,
)
from src.engine.errors import DiscoveryEmpty, FormFillError, MappingGap, NavigationTimeout
from src.engine.models import (
    DetectedField,
    ExecutionState,
    FieldMapping,
    FillResult,
    InteractionOutcome,
    ValidationSummary,
)
from src.interaction.executor import InteractionExecutor, first_line
from src.mapping.label_mapper import map_fields
from src.orchestrator.job_context import JobContext
from src.orchestrator.submission import submit_form


GOOGLE_FORMS_HOST = "docs.google.com/forms"


def normalize_form_url(url: str) -> str:
    """Google Forms editor links cannot be filled; point them at the live form"""
    if GOOGLE_FORMS_HOST in url and url.endswith("/edit"):
        return url[: -len("/edit")] + "/viewform"
    return url


def fill_priority(field: DetectedField) -> int:
    return TYPE_PRIORITY.get(field.type, UNKNOWN_TYPE_PRIORITY)


def order_for_filling(fields: List[DetectedField]) -> List[DetectedField]:
    """Stable sort by type priority so overlays never cover an unfilled field"""
    return sorted(fields, key=fill_priority)


@retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type(NavigationTimeout),
    reraise=True,
)
async def goto_form(page: PageCapability, url: str, timeout_ms: int):
    await page.goto(url, timeout_ms)


class FillOrchestrator:
    """Drives discovery, mapping, filling and submission for one job"""

    def __init__(
        self,
        config: Optional[FillConfig] = None,
        context: Optional[JobContext] = None,
        metrics: Optional[MetricsTracker] = None
    ):
        self.config = config or FillConfig()
        self.context = context or JobContext()
        self.metrics = metrics
        self.executor = InteractionExecutor(self.config, self.context.correlation_id)
        self.outcomes: Dict[str, InteractionOutcome] = {}
        self.submission_signal: Optional[str] = None

    @property
    def correlation_id(self) -> str:
        return self.context.correlation_id

    # =========================================================================
    # STEPS
    # =========================================================================

    async def navigate(self, page: PageCapability, form_url: str):
        """
        Load the form, retrying once on timeout

        Raises:
            NavigationTimeout: every attempt timed out
        """
        target = normalize_form_url(form_url)
        if target != form_url:
            self.context.log(f"Rewrote editor URL to {target}")
        self.context.log(f"Navigating to {target}")

        goto = goto_form.retry_with(stop=stop_after_attempt(self.config.navigation_attempts))
        await goto(page, target, self.config.navigation_timeout_ms)
        if self.config.post_load_settle_ms:
            await page.wait(self.config.post_load_settle_ms)

    def map(self, fields: List[DetectedField], data_map: Dict[str, Any]) -> FieldMapping:
        mapping = map_fields(fields, list(data_map.keys()))
        self.context.field_mapping = mapping

        for field in fields:
            key = mapping.data_key_for(field)
            if key is not None:
                self.context.log(f'Mapped "{field.label}" -> "{key}" (score {mapping.scores[field.field_key]})', "DEBUG")

        missing = [f.label for f in fields if f.required and not mapping.is_mapped(f)]
        if missing:
            self.context.missing_fields = missing
            self.context.log(str(MappingGap(missing)), "WARN")
        return mapping

    async def fill_fields(
        self,
        page: PageCapability,
        fields: List[DetectedField],
        mapping: FieldMapping,
        data_map: Dict[str, Any]
    ) -> bool:
        """
        Fill every mapped field in priority order

        Returns:
            False when a required field ended the job (context already FAILED)
        """
        self.context.log("Filling fields in priority order: text, radio, checkbox, select, date, widgets, file")

        for field in order_for_filling(fields):
            data_key = mapping.data_key_for(field)
            if data_key is None:
                continue

            if field.disabled or field.readonly:
                self.context.log(f"Skipping {field.label}: field is disabled or read-only")
                continue
            if field.type not in VISIBILITY_EXEMPT_TYPES and not await page.is_visible(field.selector):
                self.context.log(f"Skipping {field.label}: element is hidden")
                continue

            value = data_map[data_key]
            outcome = await self.executor.fill(field, value, page)
            self.outcomes[field.field_key] = outcome
            if self.metrics:
                self.metrics.record_field_outcome(field.type.value, outcome.verified, outcome.error)

            if outcome.error:
                if field.required:
                    self.context.set_error(f"Required field failed: {outcome.error}")
                    return False
                self.context.log(f"Optional field failed, continuing: {outcome.error}", "WARN")
            elif not outcome.verified:
                if field.required and self.config.required_field_policy == RequiredFieldPolicy.STRICT:
                    self.context.set_error(f'Required field "{field.label}" could not be verified (value "{value}")')
                    return False
                level = "WARN" if field.required else "INFO"
                self.context.log(f"Could not verify {field.label}, proceeding", level)
            else:
                self.context.log(f"Filled {field.label}")
        return True

    def validation_summary(self, fields: List[DetectedField]) -> ValidationSummary:
        required = [f for f in fields if f.required]
        filled = [f for f in required if self._verified(f)]
        missing = [f.label for f in required if not self._verified(f)]
        return ValidationSummary(
            total_required=len(required),
            filled_required=len(filled),
            missing_required=missing,
        )

    def _verified(self, field: DetectedField) -> bool:
        outcome = self.outcomes.get(field.field_key)
        return outcome is not None and outcome.verified and not outcome.failed

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    async def run(self, page: PageCapability, form_url: str, data_map: Dict[str, Any]) -> FillResult:
        """
        Run one fill attempt end to end

        Args:
            page: Page capability (browser ownership stays with the caller)
            form_url: Form URL
            data_map: Logical field name -> value

        Returns:
            FillResult; errors are reported in it, never raised
        """
        ctx = self.context
        ctx.form_url = form_url
        ctx.data = dict(data_map)
        fields: List[DetectedField] = []

        try:
            ctx.update_state(ExecutionState.INSPECTING)
            await self.navigate(page, form_url)

            fields = await inspect_form(page, self.config, self.correlation_id)
            ctx.detected_fields = fields
            ctx.log(f"Detected {len(fields)} fields")
            if not fields:
                if data_map:
                    raise DiscoveryEmpty(page.url)
                ctx.log("No form fields detected and no data supplied", "WARN")

            ctx.update_state(ExecutionState.FILLING)
            mapping = self.map(fields, data_map)
            if not await self.fill_fields(page, fields, mapping, data_map):
                return self._finish(fields)

            ctx.update_state(ExecutionState.SUBMITTING)
            self.submission_signal = await submit_form(
                page, fields[0] if fields else None, self.config, self.correlation_id
            )
            ctx.log("Form submitted successfully")
            ctx.update_state(ExecutionState.COMPLETED)
        except FormFillError as e:
            ctx.set_error(str(e))
        except Exception as e:
            logger.opt(exception=True).debug(f"[{self.correlation_id}] Unexpected error during fill")
            ctx.set_error(f"Unexpected error: {first_line(str(e)) or e.__class__.__name__}")

        return self._finish(fields)

    def _finish(self, fields: List[DetectedField]) -> FillResult:
        ctx = self.context
        if self.metrics:
            self.metrics.record_job(ctx.execution_state.value, ctx.form_url, ctx.error)
        return FillResult(
            final_state=ctx.execution_state,
            validation_summary=self.validation_summary(fields),
            log=list(ctx.logs),
            outcomes=list(self.outcomes.values()),
            error=ctx.error,
            submission_signal=self.submission_signal,
        )


async def run_fill(
    page: PageCapability,
    form_url: str,
    data_map: Dict[str, Any],
    context: Optional[JobContext] = None,
    config: Optional[FillConfig] = None,
    metrics: Optional[MetricsTracker] = None
) -> FillResult:
    """Upward entry point: fill and submit one form"""
    orchestrator = FillOrchestrator(config=config, context=context, metrics=metrics)
    return await orchestrator.run(page, form_url, data_map)
