"""
Backend REST API client
Bearer auth from session storage with a single refresh-and-retry on 401
"""

from typing import Any, Dict, Optional
from decimal import Decimal
import logging

import httpx
from pydantic import ValidationError

from digistore.core.config import settings
from digistore.core.exceptions import (
    BackendUnavailableError,
    SessionExpiredException,
    UnauthorizedException,
)
from digistore.core.storage import StateStorage, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from digistore.schemas.cart import CouponValidationRequest, CouponValidationResponse

logger = logging.getLogger(__name__)


def create_http_client(
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """Shared HTTP client for backend calls"""
    return httpx.AsyncClient(
        base_url=settings.API_URL.rstrip("/") + "/",
        timeout=settings.API_TIMEOUT,
        headers={"Content-Type": "application/json"},
        transport=transport,
    )


def unwrap(payload: Any) -> Any:
    """Backend responses are sometimes wrapped as {"data": ...}"""
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload


class BackendClient:
    """Backend API calls on behalf of one shopper session"""

    def __init__(self, http: httpx.AsyncClient, storage: StateStorage, session_id: str):
        self.http = http
        self.storage = storage
        self.session_id = session_id

    async def _auth_headers(self) -> Dict[str, str]:
        token = await self.storage.get(self.session_id, ACCESS_TOKEN_KEY)
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {**kwargs.pop("headers", {}), **(await self._auth_headers())}
        try:
            return await self.http.request(method, url.lstrip("/"), headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"Backend unreachable for {method} {url}: {e}")
            raise BackendUnavailableError(f"Backend unreachable: {e}") from e

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Send a request with the session's bearer token.
        On 401 the access token is refreshed once and the request retried.
        """
        response = await self._send(method, url, **kwargs)

        if response.status_code == 401:
            refresh_token = await self.storage.get(self.session_id, REFRESH_TOKEN_KEY)
            if not refresh_token:
                raise UnauthorizedException()
            await self._refresh_access_token(refresh_token)
            response = await self._send(method, url, **kwargs)
            if response.status_code == 401:
                raise UnauthorizedException()

        if response.status_code >= 500:
            raise BackendUnavailableError(
                f"Backend error {response.status_code} for {method} {url}"
            )

        return response

    async def _refresh_access_token(self, refresh_token: str) -> str:
        try:
            response = await self.http.post("auth/refresh", json={"refreshToken": refresh_token})
            response.raise_for_status()
            access_token = unwrap(response.json())["accessToken"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            # Refresh failed, log the shopper out
            logger.info(f"Token refresh failed for session {self.session_id}: {e}")
            await self.storage.delete(self.session_id, ACCESS_TOKEN_KEY)
            await self.storage.delete(self.session_id, REFRESH_TOKEN_KEY)
            raise SessionExpiredException() from e

        await self.storage.set(self.session_id, ACCESS_TOKEN_KEY, access_token)
        return access_token

    def _json(self, response: httpx.Response) -> Any:
        try:
            return unwrap(response.json())
        except ValueError as e:
            raise BackendUnavailableError("Backend returned a non-JSON response") from e

    # ============================================
    # COUPONS API
    # ============================================

    async def validate_coupon(
        self,
        code: str,
        subtotal: Decimal,
        email: Optional[str] = None
    ) -> CouponValidationResponse:
        """POST /coupons/validate"""
        body = CouponValidationRequest(code=code, subtotal=subtotal, email=email)
        response = await self.request(
            "POST",
            "/coupons/validate",
            json=body.model_dump(by_alias=True, mode="json", exclude_none=True)
        )
        payload = self._json(response)
        if not isinstance(payload, dict):
            raise BackendUnavailableError("Unexpected coupon validation payload")
        payload.setdefault("valid", False)
        try:
            return CouponValidationResponse.model_validate(payload)
        except ValidationError as e:
            raise BackendUnavailableError("Malformed coupon validation payload") from e

    async def check_first_time_buyer(self, email: Optional[str] = None) -> bool:
        """GET /coupons/first-time-buyer"""
        params = {"email": email} if email else None
        response = await self.request("GET", "/coupons/first-time-buyer", params=params)
        if response.status_code >= 400:
            raise BackendUnavailableError(
                f"First-time buyer check failed with {response.status_code}"
            )
        payload = self._json(response)
        if not isinstance(payload, dict) or "isFirstTimeBuyer" not in payload:
            raise BackendUnavailableError("Unexpected first-time buyer payload")
        return bool(payload["isFirstTimeBuyer"])
