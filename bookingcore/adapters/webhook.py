"""
HTTP webhook adapters for assignment notifications and audit events.
"""

from typing import Any, Dict

import requests

from ..domain.exceptions import NotificationError


class WebhookNotifier:
    """
    Posts a JSON message to a webhook whenever a job is auto-assigned.

    The receiving side is expected to fan the message out to the provider
    (in-app notification, email, SMS).
    """

    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}

    def notify_assignment(self, job_id: str, provider_id: str) -> None:
        """
        Send the assignment notification.

        Raises:
            NotificationError: If the webhook call fails
        """
        payload = {
            "type": "booking",
            "title": "New Job Assigned",
            "message": f"You have been assigned to a new job (Booking #{job_id[:8]})",
            "providerId": provider_id,
            "relatedBookingId": job_id,
        }
        _post(self.url, payload, self.headers, self.timeout)


class WebhookAuditLog:
    """Forwards audit events to an external audit endpoint."""

    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}

    def record(self, action: str, resource_id: str, metadata: Dict[str, Any]) -> None:
        payload = {
            "action": action,
            "resource": "booking",
            "resourceId": resource_id,
            "metadata": metadata,
        }
        _post(self.url, payload, self.headers, self.timeout)


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float) -> None:
    try:
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise NotificationError(f"Webhook call to {url} failed: {e}") from e
