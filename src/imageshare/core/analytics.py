"""Plausible analytics events."""

import json
import logging

import httpx

from imageshare.core.constants import ANALYTICS_TIMEOUT, PLAUSIBLE_EVENT_URL

logger = logging.getLogger(__name__)


def build_event(domain: str, name: str, upload_mode: str | None = None) -> dict:
    event = {"name": name, "url": "/", "domain": domain}
    if upload_mode:
        event["props"] = json.dumps({"Upload Mode": upload_mode})
    return event


async def send_event(
    event: dict,
    user_agent: str,
    forwarded_for: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Post an event to Plausible. Failures are only logged."""
    headers = {
        "User-Agent": user_agent,
        "X-Forwarded-For": forwarded_for,
        "Content-Type": "application/json",
    }
    try:
        async with httpx.AsyncClient(timeout=ANALYTICS_TIMEOUT, transport=transport) as client:
            response = await client.post(PLAUSIBLE_EVENT_URL, headers=headers, json=event)
            response.raise_for_status()
    except httpx.HTTPError as err:
        logger.warning("Failed to send analytics event %s: %s", event["name"], err)
