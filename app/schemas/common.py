# File: app/schemas/common.py
from typing import Any, Dict


def success_response(data: Any = None, message: str = "") -> Dict[str, Any]:
    return {"status": "success", "data": data, "message": message}


def error_response(message: str, data: Any = None) -> Dict[str, Any]:
    return {"status": "error", "data": data, "message": message}
