"""
Frob/token handshake used to obtain an RTM auth token.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Any, Callable, Mapping
from urllib.parse import urlencode

from rtm_client.clients.http_client import AUTH_URL, RtmHttpClient
from rtm_client.config import write_token_file
from rtm_client.exceptions import ApiError, AuthenticationError

logger = logging.getLogger(__name__)

AUTH_PERMS = "delete"

PromptHandler = Callable[[str], None]


class AuthState(enum.Enum):
    NO_FROB = "no_frob"
    FROB_OBTAINED = "frob_obtained"
    AUTHORIZED = "authorized"


class AuthFlow:
    """
    Drives the three step RTM desktop authentication.

    ``prompt`` receives the authorization URL and must block until the user
    has granted access in the browser. It is the only step without a timeout.
    """

    def __init__(
        self,
        client: RtmHttpClient,
        prompt: PromptHandler,
        *,
        token_path: Path | None = None,
        perms: str = AUTH_PERMS,
        auth_url: str = AUTH_URL,
    ) -> None:
        self._client = client
        self._prompt = prompt
        self._token_path = token_path
        self._perms = perms
        self._auth_url = auth_url
        self._frob: str | None = None
        self._token: str | None = None

    @property
    def state(self) -> AuthState:
        if self._token is not None:
            return AuthState.AUTHORIZED
        if self._frob is not None:
            return AuthState.FROB_OBTAINED
        return AuthState.NO_FROB

    @property
    def token(self) -> str | None:
        return self._token

    def get_frob(self) -> str:
        envelope = self._call({"format": "json", "method": "rtm.auth.getFrob"})
        frob = envelope["rsp"].get("frob")
        if not frob:
            raise AuthenticationError("RTM did not return a frob.")
        self._frob = str(frob)
        return self._frob

    def build_auth_url(self, frob: str | None = None) -> str:
        frob = frob or self._require_frob()
        params = {"frob": frob, "perms": self._perms}
        query = {
            "api_key": self._client.credentials.api_key,
            "perms": self._perms,
            "frob": frob,
            "api_sig": self._client.sign(params),
        }
        return f"{self._auth_url}?{urlencode(query)}"

    def get_token(self, frob: str | None = None) -> str:
        frob = frob or self._require_frob()
        envelope = self._call(
            {"format": "json", "frob": frob, "method": "rtm.auth.getToken"}
        )
        auth = envelope["rsp"].get("auth") or {}
        token = auth.get("token")
        if not token:
            raise AuthenticationError("RTM did not return an auth token.")
        self._token = str(token)
        return self._token

    def check_token(self, token: str) -> dict[str, Any]:
        """Return the ``auth`` payload describing a token, or raise if invalid."""

        envelope = self._call(
            {"auth_token": token, "format": "json", "method": "rtm.auth.checkToken"}
        )
        return envelope["rsp"].get("auth") or {}

    def run(self) -> str:
        """
        Run the full handshake and return the auth token.

        Once a token has been obtained it is returned directly until
        :meth:`reset` is called.
        """
        if self._token is not None:
            return self._token

        frob = self.get_frob()
        url = self.build_auth_url(frob)
        logger.info("Waiting for the user to authorize the application")
        self._prompt(url)
        token = self.get_token(frob)

        if self._token_path is not None:
            write_token_file(self._token_path, token)
        return token

    def reset(self) -> None:
        self._frob = None
        self._token = None

    def _require_frob(self) -> str:
        if self._frob is None:
            raise AuthenticationError("No frob obtained yet; call get_frob() first.")
        return self._frob

    def _call(self, params: Mapping[str, str]) -> dict[str, Any]:
        try:
            return self._client.execute(params)
        except ApiError as exc:
            raise AuthenticationError(f"{params['method']} failed: {exc}") from exc
