"""Pocket v3 API client for authorization and item management."""

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import requests
from requests.exceptions import RequestException

from ..config import REQUEST_TIMEOUT, get_api_url
from ..errors import (
    AddError,
    APIError,
    AuthExchangeFailed,
    AuthRequestFailed,
    ModifyError,
    RetrievalError,
)
from .models import (
    AccessCredential,
    AddOption,
    ArchiveAction,
    Item,
    RequestCredential,
    RetrieveFilter,
)

logger = logging.getLogger(__name__)


class PocketClient:
    """Client for interacting with the Pocket API."""

    def __init__(
        self,
        consumer_key: str,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """Initialize the Pocket API client.

        Args:
            consumer_key: Application key from the Pocket developer console
            access_token: User access token; only the authorization calls work without it
            base_url: API root, defaults to ``POCKET_API_URL`` or getpocket.com

        Raises:
            ValueError: If no consumer key is provided.
        """
        if not consumer_key:
            raise ValueError("A Pocket consumer key is required")

        self.consumer_key = consumer_key
        self.access_token = access_token
        self.base_url = (base_url or get_api_url()).rstrip("/")

        self.headers = {
            "Content-Type": "application/json; charset=UTF-8",
            "X-Accept": "application/json",
        }

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON body.

        Raises:
            APIError: On transport errors, non-2xx responses or a non-JSON body.
        """
        url = f"{self.base_url}{path}"
        logger.debug("POST %s", url)
        try:
            response = requests.post(
                url, headers=self.headers, json=payload, timeout=REQUEST_TIMEOUT
            )
        except RequestException as e:
            raise APIError(f"Request to {path} failed: {e}") from e

        if not response.ok:
            error = response.headers.get("X-Error") or response.reason or "unknown error"
            error_code = response.headers.get("X-Error-Code")
            raise APIError(
                f"{path} returned HTTP {response.status_code}: {error}",
                status_code=response.status_code,
                error_code=error_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"{path} returned invalid JSON: {e}") from e

    def _authenticated_payload(self, **extra: Any) -> dict[str, Any]:
        if not self.access_token:
            raise APIError("No access token; authorize first")
        payload = {"consumer_key": self.consumer_key, "access_token": self.access_token}
        payload.update(extra)
        return payload

    def obtain_request_token(self, redirect_url: str) -> RequestCredential:
        """Start an authorization attempt.

        Args:
            redirect_url: Where Pocket sends the browser after approval

        Returns:
            The request credential for this attempt

        Raises:
            AuthRequestFailed: If Pocket does not hand out a request token.
        """
        try:
            data = self._post(
                "/v3/oauth/request",
                {"consumer_key": self.consumer_key, "redirect_uri": redirect_url},
            )
        except APIError as e:
            raise AuthRequestFailed(f"Could not obtain request token: {e}") from e

        code = data.get("code") if isinstance(data, dict) else None
        if not code:
            raise AuthRequestFailed("Pocket response did not contain a request token")
        return RequestCredential(code=code, state=data.get("state"))

    def build_authorization_url(
        self, request: RequestCredential, redirect_url: str
    ) -> str:
        """Return the page where the user approves the request token."""
        query = urlencode({"request_token": request.code, "redirect_uri": redirect_url})
        return f"{self.base_url}/auth/authorize?{query}"

    def obtain_access_token(self, request: RequestCredential) -> AccessCredential:
        """Exchange an approved request token for an access credential.

        Raises:
            AuthExchangeFailed: If the exchange is rejected or malformed.
        """
        try:
            data = self._post(
                "/v3/oauth/authorize",
                {"consumer_key": self.consumer_key, "code": request.code},
            )
        except APIError as e:
            raise AuthExchangeFailed(f"Could not obtain access token: {e}") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthExchangeFailed("Pocket response did not contain an access token")
        return AccessCredential.from_dict(data)

    def retrieve(self, options: Optional[RetrieveFilter] = None) -> list[Item]:
        """Get items matching the filter, in the order Pocket returned them.

        Args:
            options: Filter fields passed through to the API

        Returns:
            List of items; ordering is not guaranteed by the service

        Raises:
            RetrievalError: If the request or the response parsing fails.
        """
        options = options or RetrieveFilter()
        try:
            payload = self._authenticated_payload(
                detailType="complete", **options.to_params()
            )
            data = self._post("/v3/get", payload)
        except APIError as e:
            raise RetrievalError(
                str(e), status_code=e.status_code, error_code=e.error_code
            ) from e

        # Pocket sends an empty JSON array instead of an object when nothing matches
        entries = data.get("list") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            entries = {}

        try:
            return [Item.from_api(entry) for entry in entries.values()]
        except (KeyError, TypeError, ValueError) as e:
            raise RetrievalError(f"Malformed item in response: {e}") from e

    def add(self, option: AddOption) -> None:
        """Save a new URL.

        Raises:
            AddError: If Pocket rejects the item.
        """
        try:
            payload = self._authenticated_payload(**option.to_params())
            self._post("/v3/add", payload)
        except APIError as e:
            raise AddError(
                str(e), status_code=e.status_code, error_code=e.error_code
            ) from e

    def modify(self, *actions: ArchiveAction) -> dict[str, Any]:
        """Send one or more modify actions.

        Returns:
            The decoded response with ``status`` and ``action_results``

        Raises:
            ModifyError: If the request fails or any action is reported as failed.
        """
        try:
            payload = self._authenticated_payload(
                actions=[action.to_dict() for action in actions]
            )
            data = self._post("/v3/send", payload)
        except APIError as e:
            raise ModifyError(
                str(e), status_code=e.status_code, error_code=e.error_code
            ) from e

        results = data.get("action_results", []) if isinstance(data, dict) else []
        if not all(results):
            raise ModifyError(f"Pocket rejected an action: {results}")
        return data
