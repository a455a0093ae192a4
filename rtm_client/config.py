"""
Configuration management utilities for rtm_client.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from dotenv import dotenv_values

from rtm_client.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_VAR_MAP = {
    "api_key": "RTM_API_KEY",
    "api_secret": "RTM_SECRET_KEY",
    "token_path": "RTM_TOKEN_PATH",
    "token": "RTM_TOKEN",
}

DEFAULT_TOKEN_PATH = Path("~/.rtm_token")


@dataclass(frozen=True, slots=True)
class RtmCredentials:
    """Resolved API key, shared secret and token source for one client."""

    api_key: str
    api_secret: str
    token_path: Path | None = None
    token: str | None = None

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_secret:
            raise ConfigurationError(
                "RTM_API_KEY and RTM_SECRET_KEY must both be configured."
            )

    def require_token_path(self) -> Path:
        """Return the token file path or fail if none is configured."""

        if self.token_path is None:
            raise ConfigurationError(
                "No token file configured. Set RTM_TOKEN_PATH to read or store a token."
            )
        return self.token_path.expanduser()

    def resolve_token(self) -> str | None:
        """
        Resolve the auth token from the explicit value or the token file.

        Returns:
            The token, or None when neither source provides one
        """
        if self.token:
            return self.token
        if self.token_path is None:
            return None
        path = self.token_path.expanduser()
        if not path.exists():
            return None
        return read_token_file(path)


def read_token_file(path: Path) -> str:
    """Read a token file, stripping one trailing newline."""

    text = path.read_text(encoding="utf-8")
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def write_token_file(path: Path, token: str) -> None:
    """Overwrite ``path`` with ``token``."""

    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(token, encoding="utf-8")

    # Owner read/write only
    os.chmod(path, 0o600)
    logger.info("Saved RTM token to %s", path)


class ConfigManager:
    """Assembles RTM credentials from environment variables and a .env file."""

    def __init__(
        self,
        *,
        env: Mapping[str, str] | None = None,
        dotenv_path: Path | None = None,
    ) -> None:
        self._env = os.environ if env is None else env
        self._dotenv_path = dotenv_path or Path(".env")

    def load_credentials(
        self,
        priority: Sequence[str] = ("env", "dotenv"),
    ) -> RtmCredentials:
        """
        Load credentials, consulting sources in the requested priority order.

        A value found in an earlier source wins over later sources, field by
        field. The token path falls back to ``~/.rtm_token``.

        Raises:
            ConfigurationError: when the API key or shared secret is missing.
        """

        values: dict[str, str] = {}
        for source in priority:
            if source == "env":
                found = self._load_from_env()
            elif source == "dotenv":
                found = self._load_from_dotenv()
            else:
                raise ValueError(f"Unknown credential source '{source}'.")

            for field, value in found.items():
                values.setdefault(field, value)

        if not values.get("api_key") or not values.get("api_secret"):
            raise ConfigurationError(
                "RTM_API_KEY and RTM_SECRET_KEY environment variables are required."
            )

        token_path = values.get("token_path")
        return RtmCredentials(
            api_key=values["api_key"],
            api_secret=values["api_secret"],
            token_path=Path(token_path) if token_path else DEFAULT_TOKEN_PATH,
            token=values.get("token"),
        )

    def _load_from_env(self) -> dict[str, str]:
        return self._pick(self._env)

    def _load_from_dotenv(self) -> dict[str, str]:
        if not self._dotenv_path.exists():
            return {}
        logger.debug("Reading RTM settings from %s", self._dotenv_path)
        return self._pick(dotenv_values(self._dotenv_path))

    @staticmethod
    def _pick(source: Mapping[str, str | None]) -> dict[str, str]:
        return {
            field: value
            for field, env_name in ENV_VAR_MAP.items()
            if (value := source.get(env_name))
        }
