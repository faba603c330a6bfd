"""
Jakamo purchase-order API client.

Talks XML over HTTPS with an OAuth2 client-credentials token. HTTP and
transport failures are turned into Err results instead of exceptions.
"""

import time
import xml.etree.ElementTree as ET
from typing import BinaryIO
from urllib.parse import quote

import httpx

from jakamo_connector.config import get_settings
from jakamo_connector.core.logging import get_logger
from jakamo_connector.core.models import Err, NotFound, Ok, OrderResponse, Result
from jakamo_connector.services.base import BasePurchaseOrderClient

log = get_logger(__name__)

TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"

# Refresh the token this many seconds before it expires
TOKEN_EXPIRY_MARGIN = 60

XML_HEADERS = {"Content-Type": "application/xml", "Accept": "application/xml"}

ORDER_NUMBER_HEADER = "X-Order-Number"
ORDER_NUMBER_ELEMENTS = ("OrderNumber", "OrderID", "ID")


class TokenError(RuntimeError):
    """OAuth2 token could not be obtained."""


class JakamoClient(BasePurchaseOrderClient):
    """HTTP client for the Jakamo purchase-order API."""

    def __init__(
        self,
        base_url: str | None = None,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        scope: str | None = None,
        timeout: float | None = None,
        token_url: str | None = None,
        http_client: httpx.Client | None = None,
    ):
        self.base_url = base_url or get_settings().api_base_url
        self.tenant_id = tenant_id or get_settings().api_tenant_id
        self.client_id = client_id or get_settings().api_client_id
        self.client_secret = client_secret or get_settings().api_client_secret
        self.scope = scope or get_settings().api_scope
        self.timeout = timeout or get_settings().api_timeout_seconds
        self.token_url = token_url or TOKEN_URL_TEMPLATE.format(tenant_id=self.tenant_id)
        self._client = http_client or httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
        )
        self._token: str | None = None
        self._token_expires_at = 0.0

    def close(self) -> None:
        self._client.close()

    # Authentication

    def _get_token(self) -> str:
        """Return a cached access token, fetching a new one when stale."""
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        try:
            response = self._client.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": self.scope,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise TokenError(f"Token request rejected: HTTP {e.response.status_code}") from e
        except (httpx.RequestError, ValueError) as e:
            raise TokenError(f"Token request failed: {e}") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenError("Token response has no access_token")
        token = data["access_token"]

        try:
            expires_in = int(data.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise TokenError(f"Token response has an invalid expires_in: {e}") from e
        self._token = token
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        log.debug("jakamo_token_acquired", expires_in=expires_in)
        return token

    def _request(
        self,
        method: str,
        url: str,
        content: bytes | None = None,
    ) -> httpx.Response | Err:
        """Send an authenticated request; failures come back as Err."""
        try:
            token = self._get_token()
        except TokenError as e:
            log.error("jakamo_auth_error", error=str(e))
            return Err([str(e)])

        headers = {**XML_HEADERS, "Authorization": f"Bearer {token}"}
        try:
            response = self._client.request(method, url, content=content, headers=headers)
        except httpx.RequestError as e:
            log.error("jakamo_request_error", method=method, url=url, error=str(e))
            return Err([f"Failed to reach Jakamo API: {e}"])

        if response.status_code == 401:
            # Force a new token on the next call
            self._token = None
        return response

    @staticmethod
    def _error_result(response: httpx.Response) -> Err:
        body = response.text.strip()
        message = f"HTTP {response.status_code} {response.reason_phrase}"
        if body:
            message = f"{message}: {body[:500]}"
        log.error(
            "jakamo_http_error",
            status=response.status_code,
            url=str(response.request.url),
        )
        return Err([message])

    def _submit(self, method: str, url: str, stream: BinaryIO) -> Result:
        response = self._request(method, url, content=stream.read())
        if isinstance(response, Err):
            return response
        if response.is_success:
            return Ok(response.text or None)
        return self._error_result(response)

    # Purchase-order operations

    def send_order(self, stream: BinaryIO) -> Result:
        return self._submit("POST", "purchaseorders", stream)

    def update_order(self, order_id: str, stream: BinaryIO) -> Result:
        return self._submit("PUT", f"purchaseorders/{quote(order_id, safe='')}", stream)

    def send_status_message(self, order_id: str, stream: BinaryIO) -> Result:
        return self._submit(
            "POST", f"purchaseorders/{quote(order_id, safe='')}/status", stream
        )

    def get_order_response(self) -> Result[OrderResponse]:
        response = self._request("GET", "orderresponses/queue")
        if isinstance(response, Err):
            return response
        if response.status_code in (204, 404):
            return NotFound()
        if not response.is_success:
            return self._error_result(response)

        payload = response.content
        order_number = response.headers.get(ORDER_NUMBER_HEADER) or _order_number_from_xml(payload)
        if not order_number:
            return Err(["Order response carries no order number"])

        ack_uri = response.headers.get("Location")
        if ack_uri:
            ack_uri = str(response.request.url.join(ack_uri))

        return Ok(OrderResponse(order_number=order_number, xml=payload, ack_uri=ack_uri))

    def remove_order_response_from_queue(self, ack_uri: str) -> Result:
        response = self._request("DELETE", ack_uri)
        if isinstance(response, Err):
            return response
        if response.is_success:
            return Ok()
        return self._error_result(response)


def _order_number_from_xml(payload: bytes) -> str | None:
    """First OrderNumber/OrderID/ID element text of a response payload."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError:
        return None

    for name in ORDER_NUMBER_ELEMENTS:
        for element in root.iter():
            if element.tag.rsplit("}", 1)[-1] == name and (element.text or "").strip():
                return element.text.strip()
    return None
