"""
HTTP transfer transport: submits conditional transfers to a connector.

POST {base_url}/transfers with a JSON transfer (byte fields base64). The
connector answers 200 with either
    {"type": "fulfill", "fulfillment": ..., "data": ...}
or
    {"type": "reject", "code": ..., "message": ..., "triggered_by": ..., "data": ...}
"""

import base64
import binascii
import logging
from typing import Any, Optional

import httpx

from psk2.errors import TransportError
from psk2.models.transfer import Fulfillment, Rejection, Transfer, TransferResult

DEFAULT_CONNECTOR_URL = "http://localhost:7768"

logger = logging.getLogger(__name__)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(value: Optional[str], field: str) -> bytes:
    if not value:
        return b""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise TransportError(f"connector returned invalid base64 in {field!r}", code="bad_connector_response")


class HttpTransport:
    def __init__(
        self,
        base_url: str = DEFAULT_CONNECTOR_URL,
        token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "psk2-sender/0.1.0", "Accept": "application/json"},
            timeout=timeout,
        )

    def set_token(self, token: str) -> None:
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _transfer_body(transfer: Transfer) -> dict[str, Any]:
        return {
            "amount": transfer.amount,
            "execution_condition": _b64(transfer.execution_condition),
            "expires_at": transfer.expires_at.isoformat(),
            "destination_account": transfer.destination_account,
            "data": _b64(transfer.data),
        }

    @staticmethod
    def _parse_result(body: Any) -> TransferResult:
        if not isinstance(body, dict):
            raise TransportError("connector response is not a JSON object", code="bad_connector_response")
        kind = body.get("type")
        if kind == "fulfill":
            return Fulfillment(
                fulfillment=_unb64(body.get("fulfillment"), "fulfillment"),
                data=_unb64(body.get("data"), "data"),
            )
        if kind == "reject":
            if not body.get("code"):
                raise TransportError("connector rejection is missing a code", code="bad_connector_response")
            return Rejection(
                code=body["code"],
                message=body.get("message") or "",
                triggered_by=body.get("triggered_by"),
                data=_unb64(body.get("data"), "data"),
            )
        raise TransportError(f"unknown connector response type: {kind!r}", code="bad_connector_response")

    async def submit_transfer(self, transfer: Transfer) -> TransferResult:
        try:
            resp = await self._client.post("/transfers", json=self._transfer_body(transfer), headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to reach connector: {e}")
        if resp.status_code >= 400:
            raise TransportError(f"HTTP {resp.status_code}: {resp.text[:200]}", code="http_error")
        try:
            body = resp.json()
        except ValueError:
            raise TransportError("connector response is not valid JSON", code="bad_connector_response")
        result = self._parse_result(body)
        logger.debug("connector answered %s for transfer of %s", body.get("type"), transfer.amount)
        return result

    async def close(self) -> None:
        await self._client.aclose()
