from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..config import ProviderConfig
from ..errors import ConfigurationError


@dataclass(frozen=True)
class AssistantVersion:
    """Flavor of the stateful Assistants API.

    ``kind`` is one of ``v1``, ``v2`` or ``azure``. An Azure version may pin
    its ``api-version`` query value; otherwise the configured default is used.
    """

    kind: str
    azure_api_version: str | None = None

    @classmethod
    def parse(cls, value: str) -> AssistantVersion:
        """Accepts ``v1``, ``v2``, ``azure`` and ``azure:<api-version>`` (case and whitespace insensitive)."""
        normalized = value.strip().lower()
        if normalized in ("v1", "v2", "azure"):
            return cls(normalized)
        if normalized.startswith("azure:"):
            api_version = normalized[len("azure:") :].strip()
            if api_version:
                return cls("azure", api_version)
        raise ConfigurationError(f"Unsupported assistants API version: {value!r}")

    @property
    def is_azure(self) -> bool:
        return self.kind == "azure"

    def base_url(self, config: ProviderConfig) -> str:
        root = config.openai_api_url.rstrip("/")
        return f"{root}/openai" if self.is_azure else f"{root}/v1"

    def endpoint(self, config: ProviderConfig, resource: str) -> str:
        """Full URL for a resource path such as ``threads/{id}/runs``."""
        url = f"{self.base_url(config)}/{resource.lstrip('/')}"
        if self.is_azure:
            api_version = self.azure_api_version or config.azure_assistants_version
            return f"{url}?api-version={api_version}"
        return url

    def headers(self, api_key: str) -> dict[str, str]:
        if self.is_azure:
            return {"api-key": api_key}
        return {
            "Authorization": f"Bearer {api_key}",
            "OpenAI-Beta": f"assistants={self.kind}",
        }

    def tools_payload(self) -> list[dict[str, str]]:
        # v1 named the document search tool "retrieval".
        if self.kind == "v1":
            return [{"type": "retrieval"}]
        return [{"type": "file_search"}]

    def with_attachments(self, message: dict[str, Any], file_ids: Sequence[str]) -> dict[str, Any]:
        if not file_ids:
            return message
        message = dict(message)
        if self.kind == "v1":
            message["file_ids"] = list(file_ids)
        else:
            message["attachments"] = [
                {"file_id": file_id, "tools": [{"type": "file_search"}]} for file_id in file_ids
            ]
        return message


V1 = AssistantVersion("v1")
V2 = AssistantVersion("v2")
AZURE = AssistantVersion("azure")
