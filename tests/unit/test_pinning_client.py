"""Unit tests for PinningClient using httpx.MockTransport."""

import json

import httpx
import pytest

from src.nm_common.errors import FileTooLargeError, NoFileProvidedError, PinningError
from src.nm_storage.pinning import PinningClient

API_URL = "https://pin.example/pinning/pinFileToIPFS"


def _client(handler, max_bytes: int = 1024) -> PinningClient:  # type: ignore[no-untyped-def]
    return PinningClient(
        api_url=API_URL,
        jwt_token="pin-jwt",
        gateway_url="https://gw.example/ipfs/",
        max_bytes=max_bytes,
        transport=httpx.MockTransport(handler),
    )


class TestPinFile:
    async def test_returns_content_hash(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"IpfsHash": "QmNote123", "PinSize": 11})

        client = _client(handler)
        content_hash = await client.pin_file("notes.pdf", b"hello notes", "application/pdf", "0xalice")

        assert content_hash == "QmNote123"
        request = seen[0]
        assert str(request.url) == API_URL
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer pin-jwt"
        body = request.content
        assert b"hello notes" in body
        assert b'name="pinataMetadata"' in body
        assert b'"uploader": "0xalice"' in body
        assert b'filename="notes.pdf"' in body

    async def test_empty_file_rejected_without_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        with pytest.raises(NoFileProvidedError):
            await _client(handler).pin_file("empty.txt", b"")

    async def test_oversized_file_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        with pytest.raises(FileTooLargeError) as exc_info:
            await _client(handler, max_bytes=4).pin_file("big.bin", b"12345")
        assert exc_info.value.http_status == 413

    async def test_upstream_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "Invalid authentication"})

        with pytest.raises(PinningError) as exc_info:
            await _client(handler).pin_file("a.txt", b"a")
        assert "401" in exc_info.value.message

    async def test_missing_hash_in_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"PinSize": 1})

        with pytest.raises(PinningError):
            await _client(handler).pin_file("a.txt", b"a")

    async def test_non_json_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway timeout</html>")

        with pytest.raises(PinningError):
            await _client(handler).pin_file("a.txt", b"a")

    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PinningError) as exc_info:
            await _client(handler).pin_file("a.txt", b"a")
        assert "connection refused" in exc_info.value.message


def test_gateway_url_joins_hash() -> None:
    client = _client(lambda request: httpx.Response(200, json={}))
    assert client.gateway_url("QmX") == "https://gw.example/ipfs/QmX"


async def test_options_part_is_valid_json() -> None:
    captured: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        text = request.content.decode("latin-1")
        start = text.index('name="pinataOptions"')
        captured["options"] = text[start:].split("\r\n\r\n", 1)[1].split("\r\n", 1)[0]
        return httpx.Response(200, json={"IpfsHash": "Qm"})

    await _client(handler).pin_file("a.txt", b"a")
    assert json.loads(captured["options"]) == {"cidVersion": 0}
