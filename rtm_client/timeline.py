"""
Per-token cache for RTM timelines.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from rtm_client.exceptions import ApiResponseError, TimelineCreationError
from rtm_client.rate_limit import Clock

logger = logging.getLogger(__name__)

TIMELINE_TTL = 30 * 60


@dataclass(slots=True)
class _CachedTimeline:
    timeline: str
    obtained_at: float


class TimelineCache:
    """
    Memoizes the timeline handle required by mutating calls.

    Entries are checked lazily on access; an expired entry is replaced by a
    freshly created timeline.
    """

    def __init__(
        self,
        create: Callable[[str], str],
        *,
        ttl: float = TIMELINE_TTL,
        clock: Clock = time.monotonic,
    ) -> None:
        self._create = create
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, _CachedTimeline] = {}

    def get(self, token: str) -> str:
        entry = self._entries.get(token)
        now = self._clock()
        if entry is not None and now - entry.obtained_at < self._ttl:
            logger.debug("Reusing cached timeline")
            return entry.timeline

        try:
            timeline = self._create(token)
        except TimelineCreationError:
            raise
        except ApiResponseError as exc:
            raise TimelineCreationError(f"Unable to create timeline: {exc}") from exc

        if not timeline:
            raise TimelineCreationError("RTM returned an empty timeline.")

        self._entries[token] = _CachedTimeline(timeline, self._clock())
        logger.debug("Created new timeline")
        return timeline

    def invalidate(self, token: str) -> None:
        self._entries.pop(token, None)
