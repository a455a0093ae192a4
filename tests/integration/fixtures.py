"""Mock responses and a scripted RTM server for integration tests."""

from __future__ import annotations

import json
from itertools import count
from typing import Any
from urllib.parse import parse_qs, urlparse

import responses

REST_URL = "https://api.rememberthemilk.com/services/rest/"

FROB_RESPONSE = {"rsp": {"stat": "ok", "frob": "0a56717c3561e53584f292bb7081a533c197270c"}}

TOKEN_RESPONSE = {
    "rsp": {
        "stat": "ok",
        "auth": {
            "token": "410c57262293e9d937ee5be75eb7b0128fd61b61",
            "perms": "delete",
            "user": {"id": "1", "username": "bob", "fullname": "Bob T. Monkey"},
        },
    }
}

TIMELINE_RESPONSE = {"rsp": {"stat": "ok", "timeline": "12741021"}}

INVALID_SIGNATURE_RESPONSE = {
    "rsp": {"stat": "fail", "err": {"code": "96", "msg": "Invalid signature"}}
}

INVALID_TOKEN_RESPONSE = {
    "rsp": {"stat": "fail", "err": {"code": "98", "msg": "Login failed / Invalid auth token"}}
}

# Single list with a single series: RTM returns objects instead of arrays
SINGLE_TASK_LIST_RESPONSE = {
    "rsp": {
        "stat": "ok",
        "tasks": {
            "rev": "abc",
            "list": {
                "id": "100",
                "taskseries": {
                    "id": "200",
                    "name": "Pay rent",
                    "created": "2024-01-01T00:00:00Z",
                    "tags": [],
                    "task": {
                        "id": "300",
                        "due": "2024-02-01T00:00:00Z",
                        "completed": "",
                        "deleted": "",
                        "priority": "1",
                    },
                },
            },
        },
    }
}

EMPTY_TASK_LIST_RESPONSE = {"rsp": {"stat": "ok", "tasks": {"rev": "abc"}}}


class FakeRtmServer:
    """
    Minimal in-memory RTM backend registered through ``responses``.

    Tracks every request so tests can assert on the API methods that were
    called, the HTTP verb used and the signed query parameters.
    """

    def __init__(self, list_id: str = "100") -> None:
        self.list_id = list_id
        self.tasks: list[dict[str, Any]] = []
        self.requests: list[tuple[str, dict[str, str]]] = []
        self._ids = count(1)
        self._timelines = count(5000)

    def register(self) -> None:
        for method in (responses.GET, responses.POST):
            responses.add_callback(
                method,
                REST_URL,
                callback=self._handle,
                content_type="application/json",
            )

    def calls_to(self, api_method: str) -> list[tuple[str, dict[str, str]]]:
        return [call for call in self.requests if call[1].get("method") == api_method]

    def _handle(self, request: Any) -> tuple[int, dict[str, str], str]:
        query = {key: values[0] for key, values in parse_qs(urlparse(request.url).query).items()}
        self.requests.append((request.method, query))
        api_method = query.get("method")

        if api_method == "rtm.timelines.create":
            payload = {"rsp": {"stat": "ok", "timeline": str(next(self._timelines))}}
        elif api_method == "rtm.tasks.add":
            payload = self._add(query)
        elif api_method == "rtm.tasks.getList":
            payload = self._list()
        elif api_method == "rtm.tasks.complete":
            payload = self._complete(query)
        else:
            payload = {"rsp": {"stat": "fail", "err": {"code": "112", "msg": "Method not found"}}}
        return 200, {}, json.dumps(payload)

    def _add(self, query: dict[str, str]) -> dict[str, Any]:
        series = {
            "id": str(next(self._ids)),
            "name": query["name"],
            "task": [{"id": str(next(self._ids)), "due": "", "completed": "", "priority": "N"}],
        }
        self.tasks.append(series)
        return {
            "rsp": {
                "stat": "ok",
                "transaction": {"id": "1", "undoable": "0"},
                "list": {"id": self.list_id, "taskseries": series},
            }
        }

    def _list(self) -> dict[str, Any]:
        return {
            "rsp": {
                "stat": "ok",
                "tasks": {"list": [{"id": self.list_id, "taskseries": self.tasks}]},
            }
        }

    def _complete(self, query: dict[str, str]) -> dict[str, Any]:
        for series in self.tasks:
            if series["id"] == query["taskseries_id"]:
                series["task"][0]["completed"] = "2024-01-01T00:00:00Z"
                return {"rsp": {"stat": "ok", "list": {"id": self.list_id, "taskseries": series}}}
        return {"rsp": {"stat": "fail", "err": {"code": "340", "msg": "taskseries_id invalid or not provided"}}}
