"""Mirror uploads to Imgur, honouring its posting rate limit."""

import logging
import time
from pathlib import Path

import httpx

from imageshare.core.constants import (
    ERROR_IMGUR_CAPACITY,
    ERROR_IMGUR_UPLOAD,
    IMGUR_DESCRIPTION,
    IMGUR_RATE_LIMIT_THRESHOLD,
    IMGUR_REMAINING_HEADER,
    IMGUR_RESET_HEADER,
    IMGUR_TIMEOUT,
    IMGUR_UPLOAD_URL,
)
from imageshare.core.models import ImgurUploadResult
from imageshare.core.qr import imgur_link
from imageshare.core.storage import delete_file

logger = logging.getLogger(__name__)


class RateLimitSentinel:
    """Unix timestamp, stored in a file, before which uploads are refused."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self) -> int:
        try:
            return int(self.path.read_text().strip())
        except FileNotFoundError:
            return 0
        except ValueError:
            logger.warning("Ignoring malformed rate limit file %s", self.path)
            return 0

    def write(self, timestamp: int) -> None:
        self.path.write_text(str(timestamp))

    def is_active(self, now: float | None = None) -> bool:
        if now is None:
            now = time.time()
        return self.read() > int(now)


def _record_rate_limit(headers: httpx.Headers, sentinel: RateLimitSentinel) -> None:
    remaining = headers.get(IMGUR_REMAINING_HEADER)
    if remaining is None:
        return
    logger.info("Imgur API Rate Limit Remaining: %s", remaining)
    try:
        below_threshold = int(remaining) < IMGUR_RATE_LIMIT_THRESHOLD
        reset_seconds = int(headers.get(IMGUR_RESET_HEADER, 0))
    except ValueError:
        logger.warning("Unexpected Imgur rate limit headers: %s", dict(headers))
        return
    if below_threshold:
        reset_time = int(time.time()) + reset_seconds
        logger.warning(
            "Imgur API Rate Limit Remaining is below %s, uploads paused for %ss "
            "(until %s)",
            IMGUR_RATE_LIMIT_THRESHOLD,
            reset_seconds,
            reset_time,
        )
        sentinel.write(reset_time)


async def upload_to_imgur(
    file_path: Path,
    title: str,
    client_id: str,
    sentinel: RateLimitSentinel,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ImgurUploadResult:
    """Upload an image to Imgur; the local copy is removed whatever happens."""
    if sentinel.is_active():
        delete_file(file_path)
        logger.info("Prevented upload to Imgur, rate limit reset at %s", sentinel.read())
        return ImgurUploadResult(success=False, reason=ERROR_IMGUR_CAPACITY)

    try:
        async with httpx.AsyncClient(timeout=IMGUR_TIMEOUT, transport=transport) as client:
            response = await client.post(
                IMGUR_UPLOAD_URL,
                headers={"Authorization": f"Client-ID {client_id}"},
                data={
                    "type": "file",
                    "title": title,
                    "description": IMGUR_DESCRIPTION,
                },
                files={"image": (file_path.name, file_path.read_bytes())},
            )
            _record_rate_limit(response.headers, sentinel)
            response.raise_for_status()
            body = response.json()
    except (httpx.HTTPError, OSError, ValueError) as err:
        logger.error("Imgur upload of %s failed: %s", file_path, err)
        return ImgurUploadResult(success=False, reason=ERROR_IMGUR_UPLOAD)
    finally:
        delete_file(file_path)

    if not isinstance(body, dict):
        body = {}
    image_id = (body.get("data") or {}).get("id")
    if not body.get("success") or not image_id:
        logger.error("Imgur rejected upload of %s: %s", file_path, body)
        return ImgurUploadResult(
            success=False,
            reason=ERROR_IMGUR_UPLOAD,
            response_received=True,
        )

    return ImgurUploadResult(
        success=True,
        link=imgur_link(image_id),
        qr_link=f"/qr/imgur/{image_id}",
        response_received=True,
    )
