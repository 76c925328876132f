from __future__ import annotations

from .api_version import AZURE, V1, V2, AssistantVersion
from .assistant import OpenAIAssistant
from .poller import RunPoller
from .session import AssistantSession

__all__ = [
    "AZURE",
    "V1",
    "V2",
    "AssistantSession",
    "AssistantVersion",
    "OpenAIAssistant",
    "RunPoller",
]
