from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    RESULT = "result"
    ENGINE_DONE = "engine_done"
    ERROR = "error"
    DONE = "done"


ALL_ENGINES = "all"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event is EventType.DONE

    def to_sse(self) -> dict[str, str]:
        """Payload for sse-starlette's EventSourceResponse."""
        return {"event": self.event.value, "data": json.dumps(self.data)}
