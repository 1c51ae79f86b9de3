"""Standard response envelope."""
from typing import Any, Dict, Optional

from app.config import settings


def wrap_response(
    request_id: str,
    content: Any,
    status: int = 200,
) -> Dict[str, Any]:
    """Wrap a successful result."""
    return {
        "id": request_id,
        "version": settings.api_version,
        "result": {
            "success": True,
            "status": status,
            "content": content,
        },
    }


def wrap_error(
    request_id: str,
    message: str,
    status: int,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    """Wrap a failure in the same envelope shape."""
    result = {
        "success": False,
        "status": status,
        "content": {"message": message},
    }
    if details is not None:
        result["content"]["details"] = details
    return {
        "id": request_id,
        "version": settings.api_version,
        "result": result,
    }
