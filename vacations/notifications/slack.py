"""Slack incoming-webhook sink for leave events.

Delivery is fire-and-forget: messages are posted from a background task and
failures are only logged. Nothing is sent when ``SLACK_WEBHOOK_URL`` is empty.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Optional

import httpx

from vacations.common.constants import LEAVE_TYPE_EMOJI, EventName, LeaveType
from vacations.config import settings
from vacations.notifications.events import EventBus

logger = logging.getLogger(__name__)


def _short_date(value: str) -> str:
    if not value:
        return ""
    d = date.fromisoformat(value)
    return f"{d:%b} {d.day}"


def format_approved_message(payload: dict[str, Any]) -> str:
    emoji = LEAVE_TYPE_EMOJI.get(LeaveType(payload["leave_type"]), ":calendar:")
    return (
        f"{emoji} Leave approved for *{payload['owner_name']}*: "
        f"{payload['leave_type']} from {_short_date(payload['start_date'])} "
        f"to {_short_date(payload['end_date'])}."
    )


def format_out_of_office_report(payload: dict[str, Any]) -> str:
    """Daily report text; ``payload['entries']`` holds the people out today."""
    d = date.fromisoformat(payload["date"])
    day = f"{d:%A, %B} {d.day}, {d.year}"
    entries = payload.get("entries", [])
    if not entries:
        return f":tada: *Out of Office Report - {day}*\n\nEveryone is present today!"

    lines = [f":palm_tree: *Out of Office Report - {day}*", ""]
    for entry in entries:
        emoji = LEAVE_TYPE_EMOJI.get(LeaveType(entry["leave_type"]), ":calendar:")
        lines.append(
            f"{emoji} *{entry['owner_name']}* - {entry['leave_type']} "
            f"({_short_date(entry['start_date'])} - {_short_date(entry['end_date'])})"
        )
    count = len(entries)
    lines.append("")
    lines.append(f"_Total: {count} team member{'s' if count > 1 else ''} out today_")
    return "\n".join(lines)


class SlackNotifier:
    """Event-bus subscriber that posts formatted messages to a webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        username: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.webhook_url = settings.SLACK_WEBHOOK_URL if webhook_url is None else webhook_url
        self.username = username or settings.SLACK_USERNAME
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def register(self, bus: EventBus) -> None:
        bus.subscribe(EventName.request_approved, self.handle)
        bus.subscribe(EventName.out_of_office_report, self.handle)

    def unregister(self, bus: EventBus) -> None:
        bus.unsubscribe(EventName.request_approved, self.handle)
        bus.unsubscribe(EventName.out_of_office_report, self.handle)

    def handle(self, event: EventName, payload: dict[str, Any]) -> None:
        if not self.enabled:
            logger.debug("Slack webhook not configured; dropping %s", event.value)
            return

        if event == EventName.request_approved:
            text = format_approved_message(payload)
        elif event == EventName.out_of_office_report:
            text = format_out_of_office_report(payload)
        else:
            return

        task = asyncio.get_running_loop().create_task(self.send(text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def send(self, text: str) -> bool:
        """Post *text*; returns False instead of raising on any failure."""
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                resp = await client.post(
                    self.webhook_url,
                    json={
                        "text": text,
                        "username": self.username,
                        "icon_emoji": ":airplane:",
                    },
                )
            if resp.status_code >= 400:
                logger.error("Slack webhook error: %s %s", resp.status_code, resp.text[:200])
                return False
            return True
        except httpx.HTTPError as exc:
            logger.error("Error sending Slack message: %s", exc)
            return False

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
