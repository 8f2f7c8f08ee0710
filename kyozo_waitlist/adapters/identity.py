"""Identity provider adapter.

Two operations are needed: an anonymous session for each form submitter,
and an email/password check for admins. Both go through the Firebase
Identity Toolkit REST API. Provider failures surface as
IdentityProviderError carrying the provider's error code
(e.g. ``INVALID_LOGIN_CREDENTIALS``, ``TOO_MANY_ATTEMPTS_TRY_LATER``).
"""

import logging
import uuid
from typing import Any, Dict, Optional, Protocol

import httpx

from kyozo_waitlist.errors import IdentityProviderError

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


class IdentityProvider(Protocol):
    """Issues identity tokens and checks admin credentials."""

    async def sign_in_anonymously(self) -> str:
        ...

    async def sign_in_with_password(self, email: str, password: str) -> str:
        ...


def _error_code(response: httpx.Response) -> str:
    """Extract the provider code from an error body.

    Messages look like ``"TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled..."``;
    only the part before the separator is the code.
    """
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP_{response.status_code}"
    return str(message).split(" : ")[0].strip()


class LocalIdentityProvider:
    """Issues random anonymous ids; for local runs without a Firebase project.

    Admin login is unavailable and always fails with OPERATION_NOT_ALLOWED.
    """

    async def sign_in_anonymously(self) -> str:
        return f"local_{uuid.uuid4().hex[:24]}"

    async def sign_in_with_password(self, email: str, password: str) -> str:
        raise IdentityProviderError("OPERATION_NOT_ALLOWED")


class FirebaseIdentityProvider:
    """Identity provider backed by the Identity Toolkit REST API.

    Args:
        api_key: Web API key of the Firebase project
        client: Optional shared httpx.AsyncClient; one is opened per call otherwise
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        base_url: str = IDENTITY_TOOLKIT_URL,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")

    async def sign_in_anonymously(self) -> str:
        data = await self._post("accounts:signUp", {"returnSecureToken": True})
        logger.info("Anonymous session issued for %s", data["localId"])
        return data["localId"]

    async def sign_in_with_password(self, email: str, password: str) -> str:
        data = await self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return data["localId"]

    async def _post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if self._client is not None:
            return await self._send(self._client, endpoint, body)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._send(client, endpoint, body)

    async def _send(self, client: httpx.AsyncClient, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await client.post(
                f"{self._base_url}/{endpoint}",
                params={"key": self._api_key},
                json=body,
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError("NETWORK_REQUEST_FAILED", str(exc)) from exc

        if response.is_error:
            code = _error_code(response)
            logger.warning("Identity provider rejected %s: %s", endpoint, code)
            raise IdentityProviderError(code)
        return response.json()


__all__ = [
    "IDENTITY_TOOLKIT_URL",
    "IdentityProvider",
    "LocalIdentityProvider",
    "FirebaseIdentityProvider",
]
