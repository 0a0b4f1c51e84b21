from app.schemas.common import ErrorOut

_EXAMPLE_MESSAGES: dict[int, str] = {
    400: "Bad request",
    401: "Not authenticated",
    404: "Customer not found",
    409: "Email already exists for another customer",
    422: "Validation failed",
    429: "Too many failed attempts. Try again later.",
    500: "Internal server error",
}

_EXAMPLE_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
}


def _envelope_example(status_code: int, path: str) -> dict:
    details = None
    if status_code == 422:
        details = [{"field": "amount", "message": "Input should be greater than or equal to 0", "type": "greater_than_equal"}]
    return {
        "error": {
            "code": _EXAMPLE_CODES.get(status_code, "http_error"),
            "message": _EXAMPLE_MESSAGES.get(status_code, "HTTP error"),
            "request_id": "8d8f2b006c794a458ff4b0a5f2bc4bc2",
            "path": path,
            "details": details,
        }
    }


def error_responses(*status_codes: int, path: str = "/example") -> dict[int, dict]:
    """OpenAPI `responses` entries documenting the shared error envelope."""
    return {
        status_code: {
            "model": ErrorOut,
            "description": _EXAMPLE_MESSAGES.get(status_code, "HTTP error"),
            "content": {"application/json": {"example": _envelope_example(status_code, path)}},
        }
        for status_code in status_codes
    }
