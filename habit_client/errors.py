# -*- coding: utf-8 -*-
"""Error taxonomy for backend calls.

- SessionExpiredError: the backend answered 401. The session is already cleared
  by the time this is raised.
- RequestError: any other non-2xx answer.
- NetworkError: the request never got an answer (refused, timeout, ...).
- ResponseFormatError: a 2xx answer whose body is not what the endpoint
  promises (bad field types, no access token on login).
"""

from __future__ import annotations

from typing import Optional

SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."


class ApiError(Exception):
    """Base class for everything the controller puts in the error slot."""


class SessionExpiredError(ApiError):
    def __init__(self) -> None:
        super().__init__(SESSION_EXPIRED_MESSAGE)
        self.status_code = 401


class RequestError(ApiError):
    def __init__(self, status_code: int, reason: str = "", body: Optional[str] = None) -> None:
        self.status_code = int(status_code)
        self.reason = str(reason or "").strip()
        self.body = (body or "").strip() or None
        super().__init__(self._format())

    def _format(self) -> str:
        msg = f"{self.status_code} {self.reason}".strip()
        if self.body:
            msg = f"{msg}: {self.body}"
        return msg


class NetworkError(ApiError):
    pass


class ResponseFormatError(ApiError):
    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = str(detail or "").strip()
        super().__init__(f"Unexpected response from {path}: {self.detail}")
