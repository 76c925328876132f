from __future__ import annotations

from dataclasses import dataclass, replace

from ..errors import ResourceStateError
from .api_version import AssistantVersion


@dataclass(frozen=True)
class AssistantSession:
    """Server-side identifiers of one assistant conversation.

    Every pipeline step returns a new session. ``run_id`` is only ever set
    once ``thread_id`` exists.
    """

    model: str
    version: AssistantVersion
    instructions: str
    assistant_id: str | None = None
    thread_id: str | None = None
    run_id: str | None = None

    def with_assistant(self, assistant_id: str) -> AssistantSession:
        return replace(self, assistant_id=assistant_id)

    def with_thread(self, thread_id: str) -> AssistantSession:
        return replace(self, thread_id=thread_id)

    def with_run(self, run_id: str) -> AssistantSession:
        if self.thread_id is None:
            raise ResourceStateError("A run cannot start before its thread exists.")
        return replace(self, run_id=run_id)

    def require_assistant(self) -> str:
        if self.assistant_id is None:
            raise ResourceStateError("No active assistant.")
        return self.assistant_id

    def require_thread(self) -> str:
        if self.thread_id is None:
            raise ResourceStateError("No active thread.")
        return self.thread_id

    def require_run(self) -> str:
        if self.run_id is None:
            raise ResourceStateError("No active run.")
        return self.run_id
