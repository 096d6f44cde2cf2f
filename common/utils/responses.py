"""
Standard API response helpers.

Every response body uses the same envelope::

    {"status": "success" | "fail", "message"?: str, "data"?: any}

Example:
    from common.utils import success_response, error_response

    @app.get("/users/{id}")
    async def get_user(id: str):
        user = await users.find_one({"_id": id})
        if not user:
            return JSONResponse(
                status_code=404,
                content=error_response("User not found", code="USER_NOT_FOUND")
            )
        return success_response({"user": user}, message="User retrieved")
"""

from typing import Any, Optional, Dict


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    **fields: Any,
) -> Dict[str, Any]:
    """
    Create a standard success response.

    Args:
        data: The response data (can be dict, list, or any serializable type)
        message: Optional success message
        **fields: Extra top-level fields placed after ``status``
            (e.g. ``source`` on cached reads)

    Returns:
        Dictionary with status="success" and optional message/data
    """
    response: Dict[str, Any] = {"status": "success"}

    if message:
        response["message"] = message

    response.update(fields)

    if data is not None:
        response["data"] = data

    return response


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Any] = None,
    errors: Optional[list] = None,
) -> Dict[str, Any]:
    """
    Create a standard error response.

    Args:
        message: Human-readable error message
        code: Machine-readable error code (e.g., "USER_NOT_FOUND")
        details: Additional error details
        errors: List of specific errors (for validation errors)

    Returns:
        Dictionary with status="fail" and error info
    """
    response: Dict[str, Any] = {"status": "fail", "message": message}

    if code:
        response["code"] = code

    if details is not None:
        response["details"] = details

    if errors:
        response["errors"] = errors

    return response
