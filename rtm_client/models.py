"""
Pydantic models for Remember The Milk API responses used by rtm_client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Literal, Mapping, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["N", "1", "2", "3"]

PRIORITIES: tuple[Priority, ...] = get_args(Priority)
PRIORITY_LABELS = {"N": "none", "1": "high", "2": "medium", "3": "low"}


def _as_list(value: Any) -> list[Any]:
    # RTM collapses single element arrays into a bare object
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


@dataclass(frozen=True, slots=True)
class TaskRef:
    """Identifiers the API needs together to address one task."""

    list_id: str
    taskseries_id: str
    task_id: str

    def to_params(self) -> dict[str, str]:
        return {
            "list_id": self.list_id,
            "taskseries_id": self.taskseries_id,
            "task_id": self.task_id,
        }


class RtmTask(BaseModel):
    """A single occurrence of a task series."""

    id: str
    due: str = ""
    has_due_time: str | None = None
    added: str | None = None
    completed: str = ""
    deleted: str = ""
    priority: Priority = "N"
    postponed: str | None = None

    model_config = ConfigDict(extra="allow")

    @property
    def is_completed(self) -> bool:
        return self.completed != ""


class RtmTaskSeries(BaseModel):
    id: str
    name: str
    created: str | None = None
    modified: str | None = None
    tags: Any = None
    task: list[RtmTask] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("task", mode="before")
    @classmethod
    def normalize_tasks(cls, value: Any) -> list[Any]:
        return _as_list(value)


class RtmTaskList(BaseModel):
    id: str
    name: str | None = None
    taskseries: list[RtmTaskSeries] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("taskseries", mode="before")
    @classmethod
    def normalize_taskseries(cls, value: Any) -> list[Any]:
        return _as_list(value)


@dataclass(frozen=True, slots=True)
class TaskEntry:
    """Flattened view of one task together with its series and list."""

    list_id: str
    series: RtmTaskSeries
    task: RtmTask

    @property
    def ref(self) -> TaskRef:
        return TaskRef(self.list_id, self.series.id, self.task.id)

    @property
    def name(self) -> str:
        return self.series.name


class TaskListResult(BaseModel):
    """Normalized ``rtm.tasks.getList`` payload."""

    lists: list[RtmTaskList] = Field(default_factory=list)

    @classmethod
    def from_envelope(cls, envelope: Mapping[str, Any]) -> "TaskListResult":
        tasks = envelope.get("rsp", {}).get("tasks") or {}
        return cls.model_validate({"lists": _as_list(tasks.get("list"))})

    def iter_tasks(self) -> Iterator[TaskEntry]:
        for task_list in self.lists:
            for series in task_list.taskseries:
                for task in series.task:
                    yield TaskEntry(task_list.id, series, task)

    def find_by_name(self, name: str) -> list[TaskEntry]:
        return [entry for entry in self.iter_tasks() if entry.name == name]
