"""
Factory for creating RTM task services with proper initialization.
"""

from __future__ import annotations

import requests

from rtm_client.auth import PromptHandler
from rtm_client.clients.http_client import RtmHttpClient
from rtm_client.config import ConfigManager, RtmCredentials
from rtm_client.rate_limit import DEFAULT_TIMEOUT, MIN_REQUEST_INTERVAL
from rtm_client.services.task_service import TaskService


class RtmClientFactory:
    """Factory for creating properly initialized RTM task services."""

    @staticmethod
    def create_from_config(
        config_manager: ConfigManager,
        *,
        prompt: PromptHandler | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        min_interval: float = MIN_REQUEST_INTERVAL,
    ) -> TaskService:
        """
        Create a TaskService from credentials resolved by ``config_manager``.

        Raises:
            ConfigurationError: If the API key or shared secret is missing
        """
        credentials = config_manager.load_credentials()
        return RtmClientFactory.create_from_credentials(
            credentials,
            prompt=prompt,
            session=session,
            timeout=timeout,
            min_interval=min_interval,
        )

    @staticmethod
    def create_from_credentials(
        credentials: RtmCredentials,
        *,
        prompt: PromptHandler | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        min_interval: float = MIN_REQUEST_INTERVAL,
    ) -> TaskService:
        client = RtmHttpClient(
            credentials,
            session=session,
            timeout=timeout,
            min_interval=min_interval,
        )
        return TaskService(client, prompt=prompt)
