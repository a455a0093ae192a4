"""Client library and CLI for the Remember The Milk REST API."""

from __future__ import annotations

__all__ = [
    "RtmClientFactory",
    "RtmCredentials",
    "TaskRef",
    "TaskService",
]

from .config import RtmCredentials
from .factory import RtmClientFactory
from .models import TaskRef
from .services.task_service import TaskService
