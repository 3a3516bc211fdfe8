from __future__ import annotations

from typing import Any, Dict, Optional


def success(data: Optional[Dict[str, Any]] = None, *, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope: {"status": "success", "message"?: ..., "data"?: {...}}."""
    body: Dict[str, Any] = {"status": "success"}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
