from __future__ import annotations

from typing import Any

INVALID_IMAGE_MARKERS = ("Image validation failed",)


class RelayError(Exception):
    """Base error rendered as ``{"error": label, "details": ...}``."""

    status_code = 500
    label = "Internal Server Error"

    def __init__(self, details: str, *, label: str | None = None, code: Any = None) -> None:
        super().__init__(details)
        self.details = details
        self.code = code
        if label is not None:
            self.label = label

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.label, "details": self.details}
        if self.code is not None:
            body["code"] = self.code
        return body


class ValidationError(RelayError):
    status_code = 400
    label = "Missing required parameters"


class NotLinkedError(RelayError):
    status_code = 400
    label = "Instagram Business Account Not Found"


class UpstreamError(RelayError):
    status_code = 400
    label = "Instagram API Error"


class InvalidImageError(RelayError):
    status_code = 400
    label = "Invalid Image"


class NotFoundError(RelayError):
    status_code = 404
    label = "Not Found"


class StoreError(RelayError):
    status_code = 500
    label = "Database Error"


class InternalError(RelayError):
    status_code = 500


def classify_upstream_error(error: UpstreamError) -> RelayError:
    """Map an upstream failure to the error the caller should see.

    Instagram reports rejected images only through free-text messages, so the
    match is a substring test against ``INVALID_IMAGE_MARKERS``.
    """
    if any(marker in error.details for marker in INVALID_IMAGE_MARKERS):
        return InvalidImageError(error.details)
    return error
