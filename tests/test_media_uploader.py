"""Media uploader tests — signed uploads against a mocked media host."""

import hashlib
import re

import httpx
import pytest

from vidtube.media.uploader import MediaHostConfig, MediaUploader, MediaUploadError

CONFIG = MediaHostConfig(
    cloud_name="demo",
    api_key="key-123",
    api_secret="secret-456",
    base_url="https://media.test/v1_1",
)


def _uploader(handler, config=CONFIG):
    return MediaUploader(config, transport=httpx.MockTransport(handler))


def test_upload_url():
    assert CONFIG.upload_url == "https://media.test/v1_1/demo/auto/upload"


@pytest.mark.asyncio
async def test_upload_returns_secure_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(
            200, json={"secure_url": "https://cdn.test/a.png", "url": "http://cdn.test/a.png", "public_id": "a"}
        )

    media = await _uploader(handler).upload(b"png-bytes", filename="a.png", folder="avatars")

    assert media.url == "https://cdn.test/a.png"
    assert media.public_id == "a"
    assert seen["url"] == CONFIG.upload_url
    assert b'name="api_key"' in seen["body"]
    assert b'name="signature"' in seen["body"]
    assert b"avatars" in seen["body"]
    assert b"png-bytes" in seen["body"]
    assert b"secret-456" not in seen["body"]


@pytest.mark.asyncio
async def test_upload_falls_back_to_plain_url():
    def handler(request):
        return httpx.Response(200, json={"url": "http://cdn.test/a.png", "public_id": "a"})

    media = await _uploader(handler).upload(b"x")
    assert media.url == "http://cdn.test/a.png"


@pytest.mark.asyncio
async def test_upload_rejected_by_host():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Invalid Signature"}})

    with pytest.raises(MediaUploadError) as exc:
        await _uploader(handler).upload(b"x")
    assert exc.value.status_code == 500


@pytest.mark.asyncio
async def test_upload_host_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(MediaUploadError):
        await _uploader(handler).upload(b"x")


@pytest.mark.asyncio
async def test_upload_without_url_in_response():
    def handler(request):
        return httpx.Response(200, json={"public_id": "a"})

    with pytest.raises(MediaUploadError):
        await _uploader(handler).upload(b"x")


@pytest.mark.asyncio
async def test_upload_unconfigured_host():
    def handler(request):  # pragma: no cover
        raise AssertionError("should not be called")

    unconfigured = MediaHostConfig(cloud_name="", api_key="", api_secret="")
    with pytest.raises(MediaUploadError) as exc:
        await _uploader(handler, unconfigured).upload(b"x")
    assert exc.value.message == "Media host is not configured"


@pytest.mark.asyncio
async def test_media_failure_surfaces_as_500(client, signup):
    """A media host outage reaches the client as an internal failure."""
    from vidtube.auth.dependencies import get_media_uploader
    from vidtube.main import app

    def handler(request):
        return httpx.Response(503)

    app.dependency_overrides[get_media_uploader] = lambda: _uploader(handler)
    tokens = await signup()
    r = await client.put(
        "/api/v1/users/me/avatar",
        content=b"img",
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )
    assert r.status_code == 500
    assert r.json()["error"] == "internal_failure"


def _form_field(body: bytes, name: str) -> str:
    match = re.search(rb'name="' + name.encode() + rb'"\r\n\r\n([^\r]*)\r\n', body)
    assert match, f"missing form field {name}"
    return match.group(1).decode()


@pytest.mark.asyncio
async def test_upload_signature_covers_sorted_params_and_secret():
    """sha1 over "folder=...&timestamp=..." followed by the API secret."""
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200, json={"secure_url": "https://cdn.test/a.png", "public_id": "a"})

    await _uploader(handler).upload(b"x", folder="avatars")

    timestamp = _form_field(seen["body"], "timestamp")
    expected = hashlib.sha1(
        f"folder=avatars&timestamp={timestamp}secret-456".encode()
    ).hexdigest()
    assert _form_field(seen["body"], "signature") == expected
    assert _form_field(seen["body"], "api_key") == "key-123"
