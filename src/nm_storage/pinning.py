"""PinningClient: relays uploaded files to a content pinning service.

Stateless: accept bytes, forward them as multipart form data, return the
content hash. The ledger stores that hash verbatim and never resolves it.
"""

import json
import logging

import httpx

from config.settings import settings
from src.nm_common.datetime_utils import utc_now
from src.nm_common.errors import FileTooLargeError, NoFileProvidedError, PinningError

logger = logging.getLogger(__name__)

_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


class PinningClient:
    def __init__(
        self,
        api_url: str | None = None,
        jwt_token: str | None = None,
        gateway_url: str | None = None,
        max_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url or settings.PINNING_API_URL
        self._jwt = settings.PINNING_JWT if jwt_token is None else jwt_token
        self._gateway_url = (gateway_url or settings.PINNING_GATEWAY_URL).rstrip("/")
        self._max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES
        self._transport = transport

    def gateway_url(self, content_hash: str) -> str:
        return f"{self._gateway_url}/{content_hash}"

    async def pin_file(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        uploader: str = "notes-marketplace",
    ) -> str:
        """Pin content and return its content hash."""
        if not content:
            raise NoFileProvidedError()
        if len(content) > self._max_bytes:
            raise FileTooLargeError(len(content), self._max_bytes)

        metadata = {
            "name": filename,
            "keyvalues": {"uploader": uploader, "timestamp": utc_now().isoformat()},
        }
        data = {
            "pinataMetadata": json.dumps(metadata),
            "pinataOptions": json.dumps({"cidVersion": 0}),
        }
        files = {"file": (filename, content, content_type)}
        headers = {"Authorization": f"Bearer {self._jwt}"}

        logger.info("Pinning %s (%d bytes) for %s", filename, len(content), uploader)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=_TIMEOUT) as client:
                response = await client.post(
                    self._api_url, data=data, files=files, headers=headers
                )
        except httpx.HTTPError as exc:
            raise PinningError(str(exc)) from exc

        if response.is_error:
            logger.error("Pinning API error %d: %s", response.status_code, response.text[:500])
            raise PinningError(f"HTTP {response.status_code}")
        try:
            content_hash = response.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError) as exc:
            raise PinningError("malformed response") from exc
        if not isinstance(content_hash, str) or not content_hash:
            raise PinningError("malformed response")

        logger.info("Pinned %s -> %s", filename, content_hash)
        return content_hash
