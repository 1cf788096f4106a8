# responses.py — Uniform JSON envelope {success, data?, message?, code?, errors?}
from typing import Any, Dict, Optional


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def fail(message: str, code: Optional[str] = None, errors: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if code is not None:
        body["code"] = code
    if errors:
        body["errors"] = errors
    return body
