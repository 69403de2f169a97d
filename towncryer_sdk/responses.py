"""Response helpers that normalise Towncryer API results.

The API is not uniform about envelopes: some endpoints return a bare payload,
some ``{"code", "message", "data"}`` and some nest that envelope under
``data``. These helpers give callers one shape to rely on.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import ApiError


@dataclass
class ApiResponse:
    """Standard SDK response envelope."""

    code: str
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


def standardize_api_response(response: Any) -> ApiResponse:
    """Coerce any API result into an :class:`ApiResponse`.

    Example:
        >>> standardize_api_response({"data": {"code": "201", "message": "Created", "data": {"id": 1}}})
        ApiResponse(code='201', message='Created', data={'id': 1})
        >>> standardize_api_response(None)
        ApiResponse(code='500', message='Empty response received from API', data=None)
    """
    if isinstance(response, ApiResponse):
        return response

    if not response:
        return ApiResponse(code="500", message="Empty response received from API")

    if not isinstance(response, Mapping):
        return ApiResponse(code="200", message="Success", data=response)

    if response.get("code") and response.get("message"):
        return ApiResponse(code=str(response["code"]), message=str(response["message"]), data=response.get("data"))

    if "data" in response:
        inner = response["data"]
        if isinstance(inner, Mapping) and "code" in inner and "message" in inner:
            return ApiResponse(
                code=str(inner.get("code") or "200"),
                message=str(inner.get("message") or "Success"),
                data=inner.get("data"),
            )
        return ApiResponse(code="200", message="Success", data=inner)

    if "code" in response or "message" in response:
        return ApiResponse(
            code=str(response.get("code") or "200"),
            message=str(response.get("message") or "Success"),
            data=response.get("data"),
        )

    return ApiResponse(code="200", message="Success", data=response)


def handle_api_error(error: BaseException) -> ApiError:
    """Return ``error`` as an :class:`ApiError`, wrapping foreign exceptions with status 500."""
    if isinstance(error, ApiError):
        return error
    wrapped = ApiError(f"Error processing API request: {error}", status_code=500)
    wrapped.__cause__ = error
    return wrapped
