import time

import httpx
import pytest

from imageshare.core.constants import ERROR_IMGUR_CAPACITY, ERROR_IMGUR_UPLOAD
from imageshare.core.imgur import RateLimitSentinel, upload_to_imgur

pytestmark = pytest.mark.anyio


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "shot.jpg"
    path.write_bytes(b"\xff\xd8fake jpeg\xff\xd9")
    return path


@pytest.fixture
def sentinel(tmp_path):
    return RateLimitSentinel(tmp_path / "rateLimitReset.txt")


def imgur_transport(status_code=200, body=None, headers=None, requests=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, json=body or {}, headers=headers or {})

    return httpx.MockTransport(handler)


async def test_successful_upload(image_file, sentinel):
    requests = []
    transport = imgur_transport(
        body={"success": True, "data": {"id": "aBc123", "link": "https://i.imgur.com/aBc123.jpg"}},
        headers={"x-post-rate-limit-remaining": "1200", "x-post-rate-limit-reset": "60"},
        requests=requests,
    )

    result = await upload_to_imgur(image_file, "Mario Kart 7", "client", sentinel, transport)

    assert result.success
    assert result.link == "https://imgur.com/aBc123"
    assert result.qr_link == "/qr/imgur/aBc123"
    assert result.response_received
    assert not image_file.exists()
    assert not sentinel.path.exists()

    request = requests[0]
    assert request.headers["Authorization"] == "Client-ID client"
    body = request.content
    assert b"Mario Kart 7" in body
    assert b'name="image"' in body


async def test_low_remaining_quota_writes_sentinel(image_file, sentinel):
    transport = imgur_transport(
        body={"success": True, "data": {"id": "aBc123"}},
        headers={"x-post-rate-limit-remaining": "5", "x-post-rate-limit-reset": "3600"},
    )
    before = int(time.time())

    result = await upload_to_imgur(image_file, "title", "client", sentinel, transport)

    assert result.success
    assert sentinel.read() >= before + 3600
    assert sentinel.is_active()


async def test_active_sentinel_blocks_upload(image_file, sentinel):
    requests = []
    sentinel.write(int(time.time()) + 600)

    result = await upload_to_imgur(
        image_file, "title", "client", sentinel, imgur_transport(requests=requests),
    )

    assert not result.success
    assert result.reason == ERROR_IMGUR_CAPACITY
    assert not result.response_received
    assert not image_file.exists()
    assert requests == []


async def test_expired_sentinel_allows_upload(image_file, sentinel):
    sentinel.write(int(time.time()) - 10)
    transport = imgur_transport(body={"success": True, "data": {"id": "xyz"}})

    result = await upload_to_imgur(image_file, "title", "client", sentinel, transport)

    assert result.success


async def test_http_error_reports_failure(image_file, sentinel):
    transport = imgur_transport(status_code=403, body={"success": False, "data": {}})

    result = await upload_to_imgur(image_file, "title", "client", sentinel, transport)

    assert not result.success
    assert result.reason == ERROR_IMGUR_UPLOAD
    assert not result.response_received
    assert not image_file.exists()


async def test_unsuccessful_body_reports_failure(image_file, sentinel):
    transport = imgur_transport(body={"success": False, "data": {"error": "nope"}})

    result = await upload_to_imgur(image_file, "title", "client", sentinel, transport)

    assert not result.success
    assert result.reason == ERROR_IMGUR_UPLOAD
    assert result.response_received
    assert not image_file.exists()


def test_malformed_sentinel_is_ignored(sentinel):
    sentinel.path.write_text("soon")

    assert sentinel.read() == 0
    assert not sentinel.is_active()


def test_missing_sentinel_is_inactive(sentinel):
    assert sentinel.read() == 0
    assert not sentinel.is_active(now=0)
