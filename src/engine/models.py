"""Data models for detected fields, mappings and fill results"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    """Normalized control families the engine knows how to fill"""
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    DATE = "date"
    DATE_PICKER = "date-picker"
    TIME_GROUP = "time-group"
    SELECT = "select"
    REACT_SELECT = "react-select"
    AUTOCOMPLETE = "autocomplete"
    RADIO_GROUP = "radio-group"
    CHECKBOX_GROUP = "checkbox-group"
    FILE = "file"


TEXT_LIKE_TYPES = frozenset({FieldType.TEXT, FieldType.EMAIL, FieldType.PHONE, FieldType.TEXTAREA})

# Fields addressed as a whole group rather than through one selector
GROUPED_TYPES = frozenset({FieldType.RADIO_GROUP, FieldType.CHECKBOX_GROUP, FieldType.TIME_GROUP})


class ExecutionState(str, Enum):
    """Lifecycle of one form-fill attempt"""
    QUEUED = "QUEUED"
    INSPECTING = "INSPECTING"
    FILLING = "FILLING"
    SUBMITTING = "SUBMITTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS: Dict[ExecutionState, Tuple[ExecutionState, ...]] = {
    ExecutionState.QUEUED: (ExecutionState.INSPECTING, ExecutionState.FAILED),
    ExecutionState.INSPECTING: (ExecutionState.FILLING, ExecutionState.FAILED),
    ExecutionState.FILLING: (ExecutionState.SUBMITTING, ExecutionState.FAILED),
    ExecutionState.SUBMITTING: (ExecutionState.COMPLETED, ExecutionState.FAILED),
    ExecutionState.COMPLETED: (),
    # A failed job may only be re-queued as a fresh attempt by the queue layer
    ExecutionState.FAILED: (ExecutionState.QUEUED,),
}


class FieldOption(BaseModel):
    """One selectable choice inside a grouped or list field"""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    value: str = ""
    label: str = ""
    selector: str = ""


class TimeSubInput(BaseModel):
    """One part (hour, minute or AM/PM) of a split time control"""
    model_config = ConfigDict(frozen=True)

    part: str  # 'hour', 'minute', 'ampm'
    selector: str


class DetectedField(BaseModel):
    """Normalized description of one logical form input found on a page"""
    model_config = ConfigDict(frozen=True)

    label: str = Field(min_length=1)
    type: FieldType
    required: bool = False
    selector: str
    options: Tuple[FieldOption, ...] = ()
    input_locator: Optional[str] = None
    name: Optional[str] = None
    sub_inputs: Tuple[TimeSubInput, ...] = ()
    disabled: bool = False
    readonly: bool = False

    @property
    def field_key(self) -> str:
        """Stable identity used by mappings and attempt records"""
        if self.type in GROUPED_TYPES or not self.selector:
            return f"group-{self.label}"
        return self.selector

    @property
    def option_labels(self) -> List[str]:
        return [o.label or o.value for o in self.options]


class FieldMapping(BaseModel):
    """Resolved field_key -> data key assignments produced by the label mapper"""
    model_config = ConfigDict(frozen=True)

    assignments: Dict[str, str] = Field(default_factory=dict)
    scores: Dict[str, int] = Field(default_factory=dict)

    def data_key_for(self, field: DetectedField) -> Optional[str]:
        return self.assignments.get(field.field_key)

    def is_mapped(self, field: DetectedField) -> bool:
        return field.field_key in self.assignments

    def __len__(self) -> int:
        return len(self.assignments)


class InteractionOutcome(BaseModel):
    """Result of one field's fill attempt"""
    model_config = ConfigDict(frozen=True)

    field: DetectedField
    attempted_value: Any = None
    verified: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ValidationSummary(BaseModel):
    """Required-field accounting for one fill attempt"""
    total_required: int = 0
    filled_required: int = 0
    missing_required: List[str] = Field(default_factory=list)


class LogEntry(BaseModel):
    """Job log line"""
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    level: str = "INFO"
    message: str


class FillResult(BaseModel):
    """What run_fill reports upward"""
    final_state: ExecutionState
    validation_summary: ValidationSummary = Field(default_factory=ValidationSummary)
    log: List[LogEntry] = Field(default_factory=list)
    outcomes: List[InteractionOutcome] = Field(default_factory=list)
    error: Optional[str] = None
    submission_signal: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.final_state == ExecutionState.COMPLETED
