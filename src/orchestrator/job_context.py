"""Job context: the mutable record one fill attempt writes into.

The queue/server layer owns persistence and broadcast; this object only
holds the slots, the log and the execution state, and calls ``on_update``
after every change so that layer can push updates.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from src.engine.errors import InvalidStateTransition
from src.engine.models import (
    ALLOWED_TRANSITIONS,
    DetectedField,
    ExecutionState,
    FieldMapping,
    LogEntry,
)


# Job log level -> loguru level
LOG_LEVELS = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARN": "WARNING",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
}


class JobContext:
    """State, slots and log for one form-fill job"""

    def __init__(
        self,
        form_url: str = "",
        data: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        on_update: Optional[Callable[["JobContext"], None]] = None
    ):
        self.correlation_id = correlation_id or str(uuid.uuid4())[:8]
        self.form_url = form_url
        self.data: Dict[str, Any] = dict(data or {})
        self.execution_state = ExecutionState.QUEUED
        self.logs: List[LogEntry] = []
        self.error: Optional[str] = None
        self.created_at = datetime.now().isoformat()
        self.completed_at: Optional[str] = None
        self.on_update = on_update

        # Slots written by the engine
        self.detected_fields: List[DetectedField] = []
        self.field_mapping: FieldMapping = FieldMapping()
        self.missing_fields: List[str] = []

    def _notify(self):
        if self.on_update:
            self.on_update(self)

    def log(self, message: str, level: str = "INFO") -> LogEntry:
        """
        Record a job log line and forward it to loguru

        Args:
            message: Log message
            level: DEBUG, INFO, WARN/WARNING or ERROR

        Returns:
            The recorded entry
        """
        level = level.upper()
        entry = LogEntry(level=level, message=message)
        self.logs.append(entry)
        logger.log(LOG_LEVELS.get(level, "INFO"), f"[{self.correlation_id}] {message}")
        self._notify()
        return entry

    def update_state(self, new_state: ExecutionState):
        """
        Move to new_state

        Raises:
            InvalidStateTransition: the move is not allowed from the current state
        """
        old_state = self.execution_state
        if new_state not in ALLOWED_TRANSITIONS[old_state]:
            raise InvalidStateTransition(old_state.value, new_state.value)

        self.execution_state = new_state
        if new_state in (ExecutionState.COMPLETED, ExecutionState.FAILED):
            self.completed_at = datetime.now().isoformat()
        elif new_state == ExecutionState.QUEUED:
            self.completed_at = None
            self.error = None
        self.log(f"State transition: {old_state.value} -> {new_state.value}")

    def set_error(self, message: str):
        """Record an error and fail the job (no-op transition if already FAILED)"""
        self.error = message
        self.log(message, "ERROR")
        if self.execution_state != ExecutionState.FAILED:
            self.update_state(ExecutionState.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.execution_state in (ExecutionState.COMPLETED, ExecutionState.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for the broadcast/persistence layer"""
        return {
            "correlation_id": self.correlation_id,
            "form_url": self.form_url,
            "execution_state": self.execution_state.value,
            "error": self.error,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
            "detected_fields": [f.model_dump(mode="json") for f in self.detected_fields],
            "field_mapping": dict(self.field_mapping.assignments),
            "missing_fields": list(self.missing_fields),
            "logs": [e.model_dump() for e in self.logs],
        }
