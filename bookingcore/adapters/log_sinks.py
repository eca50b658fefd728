"""
Notification and audit sinks that only write to the application log.

Used when no webhook is configured.
"""

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class LoggingNotifier:
    def notify_assignment(self, job_id: str, provider_id: str) -> None:
        logger.info("Provider %s assigned to job %s", provider_id, job_id)


class LoggingAuditLog:
    def record(self, action: str, resource_id: str, metadata: Dict[str, Any]) -> None:
        logger.info("audit action=%s resource=booking id=%s metadata=%s", action, resource_id, metadata)
