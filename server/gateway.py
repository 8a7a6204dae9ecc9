"""
REST gateway client.

Thin aiohttp client for the Tula Turismo backend. Every call either returns
validated data or raises ``GatewayError``; callers decide how to degrade.

Date: 2026-10-18
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from logic.config import get_settings
from logic.errors import GatewayError, GatewayRejected
from logic.models import Item
from logic.validation import is_sequence_payload, parse_item, parse_items

logger = logging.getLogger(__name__)

LOGIN_PATH = "/super-admin/login"
REJECTED_STATUSES = {401, 403}


class RemoteGateway:
    """Client for the artisans/places REST API.

    Args:
        base_url: API root; defaults to ``TULA_API_URL``.
        timeout: Total seconds allowed per call; defaults to ``TULA_API_TIMEOUT``.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        rejected_statuses=REJECTED_STATUSES,
    ) -> Any:
        """Perform one HTTP call and decode its JSON body.

        Args:
            method: HTTP method.
            path: Path below the API root.
            token: Bearer token to send, if any.
            payload: JSON body, if any.
            rejected_statuses: Statuses reported as ``GatewayRejected``.

        Returns:
            Decoded JSON body, or None for an empty body.

        Raises:
            GatewayRejected: The backend refused the request.
            GatewayError: Network failure, timeout, non-success status or
                undecodable body.
        """
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, json=payload, headers=headers) as resp:
                    if resp.status in rejected_statuses:
                        raise GatewayRejected(f"{method} {path} rejected", resp.status)
                    if not 200 <= resp.status < 300:
                        raise GatewayError(f"{method} {path} returned {resp.status}", resp.status)
                    text = await resp.text()
                    status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GatewayError(f"{method} {path} failed: {e or type(e).__name__}") from e

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise GatewayError(f"{method} {path} returned malformed JSON", status) from e

    async def _fetch_collection(self, path: str, token: Optional[str] = None) -> List[Item]:
        data = await self._request("GET", path, token=token)
        if not is_sequence_payload(data):
            raise GatewayError(f"GET {path} did not return an array")
        return parse_items(data)

    async def fetch_artisans(self) -> List[Item]:
        """Fetch all artisans.

        Raises:
            GatewayError: On failure or a non-array body.
        """
        return await self._fetch_collection("/artisans")

    async def fetch_places(self, token: Optional[str] = None) -> List[Item]:
        """Fetch all places; the admin surface sends its token.

        Raises:
            GatewayError: On failure or a non-array body.
        """
        return await self._fetch_collection("/places", token=token)

    async def create_place(self, payload: Dict[str, Any], token: str) -> Optional[Item]:
        """Create a place.

        Returns:
            The saved Item, or None when the response body is not an Item.
        """
        return parse_item(await self._request("POST", "/places", token=token, payload=payload))

    async def update_place(self, place_id: int, payload: Dict[str, Any], token: str) -> Optional[Item]:
        """Replace a place.

        Returns:
            The saved Item, or None when the response body is not an Item.
        """
        return parse_item(
            await self._request("PUT", f"/places/{place_id}", token=token, payload=payload)
        )

    async def delete_place(self, place_id: int, token: str) -> None:
        await self._request("DELETE", f"/places/{place_id}", token=token)

    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a bearer token.

        Returns:
            Token string.

        Raises:
            GatewayRejected: Credentials refused, or a JSON object without a
                token.
            GatewayError: The endpoint could not be used, or answered with
                an empty or non-object body.
        """
        data = await self._request(
            "POST",
            LOGIN_PATH,
            payload={"email": email, "password": password},
            rejected_statuses=REJECTED_STATUSES | {400},
        )
        if not isinstance(data, dict):
            raise GatewayError(f"POST {LOGIN_PATH} returned a malformed body")
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise GatewayRejected("login response carried no token")
        return token
