"""Realtime event publishing. Delivery is best-effort: failures are logged, never raised to the caller."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

import config

logger = logging.getLogger("festival.realtime")

# Channel names
RESULTS = "results"
ASSIGNMENTS = "assignments"
REGISTRATIONS = "registrations"
STUDENTS = "students"
SCOREBOARD = "scoreboard"
TEAMS = "teams"
NOTIFICATIONS = "notifications"

# Event names
RESULT_SUBMITTED = "result-submitted"
RESULT_APPROVED = "result-approved"
RESULT_REJECTED = "result-rejected"
RESULT_UPDATED = "result-updated"
RESULT_DELETED = "result-deleted"
ASSIGNMENT_CREATED = "assignment-created"
ASSIGNMENT_DELETED = "assignment-deleted"
REGISTRATION_CREATED = "registration-created"
REGISTRATION_DELETED = "registration-deleted"
STUDENT_CREATED = "student-created"
STUDENT_UPDATED = "student-updated"
STUDENT_DELETED = "student-deleted"
TEAM_CREATED = "team-created"
TEAM_UPDATED = "team-updated"
TEAM_DELETED = "team-deleted"
SCOREBOARD_UPDATED = "scoreboard-updated"
NOTIFICATION_CREATED = "notification-created"


class Publisher:
    """Publishes events to subscribers. Subclasses implement _send."""

    async def publish(self, channel: str, event: str, payload: Optional[dict] = None) -> None:
        data = dict(payload or {})
        data.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        try:
            await self._send(channel, event, data)
        except Exception as e:
            logger.warning("Failed to publish %s/%s: %s", channel, event, e)

    async def _send(self, channel: str, event: str, data: dict) -> None:
        raise NotImplementedError


class HttpPublisher(Publisher):
    """Forwards events to a push relay over HTTP. No URL configured: events are only logged."""

    def __init__(self, url: str, secret: str = "", timeout: float = 5.0):
        self.url = url
        self.secret = secret
        self.timeout = timeout

    async def _send(self, channel: str, event: str, data: dict) -> None:
        if not self.url:
            logger.debug("Realtime relay not configured, dropping %s/%s", channel, event)
            return
        headers = {"Authorization": f"Bearer {self.secret}"} if self.secret else {}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                self.url,
                json={"channel": channel, "event": event, "data": data},
                headers=headers,
            )
        r.raise_for_status()


_publisher: Publisher = HttpPublisher(config.REALTIME_URL, config.REALTIME_SECRET, config.REALTIME_TIMEOUT)


def get_publisher() -> Publisher:
    return _publisher


def set_publisher(publisher: Publisher) -> Publisher:
    """Swap the process-wide publisher. Returns the previous one."""
    global _publisher
    previous = _publisher
    _publisher = publisher
    return previous
