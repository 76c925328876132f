from __future__ import annotations

import json
import re
from typing import Any

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


def remove_json_wrapper(text: str) -> str:
    """Strip markdown code fences and the ``json`` language tag some models wrap their output in."""
    return text.replace("json\n", "").replace("```", "").strip()


def remove_think_wrapper(text: str) -> str:
    return _THINK_RE.sub("", text).strip()


def _unwrap_properties(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and isinstance(value.get("properties"), dict):
            return _unwrap_properties(value["properties"])
        return {k: _unwrap_properties(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_unwrap_properties(v) for v in value]
    return value


def _unwrap_items(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            v = _unwrap_items(v)
            if isinstance(v, dict) and len(v) == 1 and isinstance(v.get("items"), list):
                v = v["items"]
            out[k] = v
        return out
    if isinstance(value, list):
        return [_unwrap_items(v) for v in value]
    return value


def remove_schema_wrappers(text: str) -> str:
    """Drop ``properties`` / ``items`` schema scaffolding a model echoed back around its data.

    Text that is not valid JSON is returned unchanged.
    """
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return text
    value = _unwrap_items(_unwrap_properties(value))
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def map_to_range(low: float, high: float, target: int) -> float:
    """Map a 0-100 relative setting onto ``[low, high]``; targets above 100 are capped."""
    capped = min(max(int(target), 0), 100)
    return low + (high - low) * capped / 100
