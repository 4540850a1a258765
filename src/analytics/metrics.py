"""Metrics tracking"""

from typing import Dict, Any, Optional
from datetime import datetime
from loguru import logger
from collections import defaultdict


class MetricsTracker:
    """Track fill metrics across jobs"""

    def __init__(self):
        """Initialize metrics tracker"""
        self.reset()
        logger.info("Metrics tracker initialized")

    def record_field_outcome(self, field_type: str, verified: bool, error: Optional[str] = None):
        """Record one field attempt"""
        self.metrics['fields_attempted'] += 1
        self.metrics['attempted_by_type'][field_type] += 1
        if error:
            self.metrics['fields_failed'] += 1
            self.metrics['failed_by_type'][field_type] += 1
            self.record_failure(
                failure_type="field_interaction",
                component=field_type,
                reason=error,
            )
        elif verified:
            self.metrics['fields_verified'] += 1
            self.metrics['verified_by_type'][field_type] += 1
        else:
            self.metrics['fields_unverified'] += 1

    def record_job(self, final_state: str, form_url: str = "", error: Optional[str] = None):
        """Record a finished job"""
        self.metrics['jobs'] += 1
        self.metrics['jobs_by_state'][final_state] += 1
        if error:
            self.record_failure(
                failure_type="job",
                component="fill_orchestrator",
                reason=error,
                context={"form_url": form_url}
            )

    def record_failure(
        self,
        failure_type: str,
        component: str,
        reason: str,
        context: Dict[str, Any] = None
    ):
        """
        Record a detailed failure

        Args:
            failure_type: Type of failure (field_interaction, job, tool_error)
            component: Component that failed (field type, orchestrator, tool name)
            reason: Detailed reason for failure
            context: Additional context (form_url, tool args, etc.)
        """
        self.metrics['failures'].append({
            'timestamp': datetime.now().isoformat(),
            'type': failure_type,
            'component': component,
            'reason': reason,
            'context': context or {}
        })
        self.metrics['errors'] += 1

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary"""
        attempted = self.metrics['fields_attempted']
        jobs = self.metrics['jobs']
        completed = self.metrics['jobs_by_state'].get('COMPLETED', 0)

        return {
            'total_jobs': jobs,
            'jobs_by_state': dict(self.metrics['jobs_by_state']),
            'completion_rate': completed / jobs if jobs > 0 else 0,
            'fields_attempted': attempted,
            'fields_verified': self.metrics['fields_verified'],
            'fields_unverified': self.metrics['fields_unverified'],
            'fields_failed': self.metrics['fields_failed'],
            'verification_rate': (
                self.metrics['fields_verified'] / attempted if attempted > 0 else 0
            ),
            'attempted_by_type': dict(self.metrics['attempted_by_type']),
            'verified_by_type': dict(self.metrics['verified_by_type']),
            'failed_by_type': dict(self.metrics['failed_by_type']),
            'total_errors': self.metrics['errors'],
            'failures': self.metrics['failures']
        }

    def reset(self):
        """Reset metrics"""
        self.metrics = {
            'jobs': 0,
            'jobs_by_state': defaultdict(int),
            'fields_attempted': 0,
            'fields_verified': 0,
            'fields_unverified': 0,
            'fields_failed': 0,
            'attempted_by_type': defaultdict(int),
            'verified_by_type': defaultdict(int),
            'failed_by_type': defaultdict(int),
            'errors': 0,
            'failures': []  # Detailed failure log with reasons
        }
