"""
Task related workflows built on top of the RTM HTTP client.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, cast

from rtm_client.auth import AuthFlow, PromptHandler
from rtm_client.config import RtmCredentials
from rtm_client.exceptions import (
    ApiError,
    ApiResponseError,
    ConfigurationError,
    InvalidPriorityError,
    TimelineCreationError,
)
from rtm_client.models import PRIORITIES, Priority, TaskEntry, TaskListResult, TaskRef
from rtm_client.rate_limit import RetryPolicy, timeline_policy
from rtm_client.timeline import TimelineCache

logger = logging.getLogger(__name__)


class RtmClient(Protocol):
    """Protocol subset consumed by the service."""

    @property
    def credentials(self) -> RtmCredentials:
        ...

    def sign(self, params: Mapping[str, str]) -> str:
        ...

    def execute(
        self,
        params: Mapping[str, str],
        *,
        http_method: str = "GET",
        policy: RetryPolicy | None = None,
    ) -> dict[str, Any]:
        ...

    def close(self) -> None:
        ...


def validate_priority(priority: str) -> Priority:
    if priority not in PRIORITIES:
        raise InvalidPriorityError(priority)
    return cast(Priority, priority)


class TaskService:
    """High level orchestration for RTM task operations."""

    def __init__(
        self,
        client: RtmClient,
        *,
        timeline_cache: TimelineCache | None = None,
        timeline_retry: RetryPolicy | None = None,
        prompt: PromptHandler | None = None,
    ) -> None:
        self.client = client
        self._timeline_retry = timeline_retry or timeline_policy()
        self.timelines = timeline_cache or TimelineCache(self._create_timeline)
        self._prompt = prompt
        self._token: str | None = None

    def add_task(self, name: str, *, parse: bool = True) -> dict[str, Any]:
        params = {"name": name.strip()}
        if parse:
            params["parse"] = "1"
        return self._mutate("rtm.tasks.add", params)

    def get_task_list(self, filter: str | None = None) -> dict[str, Any]:
        params = self._base_params("rtm.tasks.getList")
        if filter:
            params["filter"] = filter
        return self.client.execute(params)

    def list_tasks(self, filter: str | None = None) -> TaskListResult:
        return TaskListResult.from_envelope(self.get_task_list(filter))

    def find_tasks(self, name: str, filter: str | None = None) -> list[TaskEntry]:
        """Return tasks whose series name is exactly ``name``."""

        return self.list_tasks(filter).find_by_name(name)

    def delete_task(self, ref: TaskRef) -> dict[str, Any]:
        return self._mutate("rtm.tasks.delete", ref.to_params())

    def complete_task(self, ref: TaskRef) -> dict[str, Any]:
        return self._mutate("rtm.tasks.complete", ref.to_params())

    def uncomplete_task(self, ref: TaskRef) -> dict[str, Any]:
        return self._mutate("rtm.tasks.uncomplete", ref.to_params())

    def set_task_name(self, ref: TaskRef, name: str) -> dict[str, Any]:
        return self._mutate("rtm.tasks.setName", {**ref.to_params(), "name": name})

    def set_task_priority(self, ref: TaskRef, priority: Priority) -> dict[str, Any]:
        priority = validate_priority(priority)
        return self._mutate(
            "rtm.tasks.setPriority", {**ref.to_params(), "priority": priority}
        )

    def set_task_due_date(self, ref: TaskRef, due: str) -> dict[str, Any]:
        return self._mutate(
            "rtm.tasks.setDueDate", {**ref.to_params(), "due": due, "parse": "1"}
        )

    def close(self) -> None:
        self.client.close()

    def authenticate(self, prompt: PromptHandler | None = None) -> str:
        """
        Run the interactive handshake and persist the token.

        Raises:
            ConfigurationError: when no prompt handler or token path is available
        """
        prompt = prompt or self._prompt
        if prompt is None:
            raise ConfigurationError("Authentication requires a prompt handler.")
        flow = AuthFlow(
            self.client,  # type: ignore[arg-type]
            prompt,
            token_path=self.client.credentials.require_token_path(),
        )
        self._token = flow.run()
        return self._token

    def get_token(self) -> str:
        if self._token is None:
            token = self.client.credentials.resolve_token()
            if not token:
                raise ConfigurationError(
                    "No RTM token found. Set RTM_TOKEN or run 'rtm auth' first."
                )
            self._token = token
        return self._token

    def _base_params(self, method: str) -> dict[str, str]:
        return {"auth_token": self.get_token(), "format": "json", "method": method}

    def _mutate(self, method: str, extra: Mapping[str, str]) -> dict[str, Any]:
        token = self.get_token()
        params = self._base_params(method)
        params.update(extra)
        params["timeline"] = self.timelines.get(token)
        try:
            return self.client.execute(params, http_method="POST")
        except ApiError:
            # A rejected timeline must not be reused by the next mutation
            self.timelines.invalidate(token)
            raise

    def _create_timeline(self, token: str) -> str:
        params = {"auth_token": token, "format": "json", "method": "rtm.timelines.create"}
        try:
            envelope = self.client.execute(params, policy=self._timeline_retry)
        except ApiResponseError as exc:
            raise TimelineCreationError(f"Unable to create timeline: {exc}") from exc
        timeline = envelope["rsp"].get("timeline")
        if not timeline:
            raise TimelineCreationError("RTM response did not include a timeline.")
        return str(timeline)
