"""Error taxonomy for form discovery, mapping, interaction and submission.

Every user-visible message is a plain sentence. Interaction failures always
carry the field label and the attempted value so the caller can see which
field failed and with what input, without a stack trace.
"""

from typing import Any, Optional


class FormFillError(Exception):
    """Base class for all engine errors"""


class NavigationTimeout(FormFillError):
    """The form page never reached a ready state"""

    def __init__(self, url: str, timeout_ms: int):
        self.url = url
        self.timeout_ms = timeout_ms
        super().__init__(f"Page failed to load within {timeout_ms}ms: {url}")


class DiscoveryEmpty(FormFillError):
    """No interactive fields were found on the page"""

    def __init__(self, url: str = ""):
        self.url = url
        super().__init__(f"No form fields detected on {url}" if url else "No form fields detected")


class MappingGap(FormFillError):
    """A required field has no matching data key. Reported as a warning, never raised by the orchestrator."""

    def __init__(self, labels):
        self.labels = list(labels)
        super().__init__(f"Missing data for required fields: {', '.join(self.labels)}")


class InteractionFailure(FormFillError):
    """A field's fill/verify protocol exhausted its fallbacks"""

    def __init__(self, message: str, label: str = "", value: Any = None):
        self.reason = message
        self.label = label
        self.value = value
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.label:
            return self.reason
        return f'{self.reason} (field "{self.label}", value "{self.value}")'


class DateParseError(InteractionFailure):
    """The supplied value is not a calendar date. Raised before any DOM interaction."""

    def __init__(self, value: Any, label: str = ""):
        super().__init__(f"Invalid date value: {value}", label=label, value=value)


class SubmissionNotFound(FormFillError):
    """No clickable submit control could be located"""

    def __init__(self, message: str = "submit button not found"):
        super().__init__(message)


class SubmissionUnconfirmed(FormFillError):
    """The submit click succeeded but no success signal was observed"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Submission failed: form is still present after clicking submit")


class InvalidStateTransition(FormFillError):
    """An execution state change that the state machine does not allow"""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Illegal state transition: {current} -> {requested}")
