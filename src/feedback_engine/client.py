"""
FeedbackClient SDK: sync client used by game servers to submit feedback.

The client never retries on its own. A rejected submission carries the
server's error code and, for rate limiting, how long to wait before trying
again; the caller decides what to do with it.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx


@dataclass
class RateLimitInfo:
    """Parsed X-RateLimit-* / Retry-After headers."""

    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset_at: Optional[int] = None
    retry_after_seconds: Optional[int] = None

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "RateLimitInfo":
        def _int(name: str) -> Optional[int]:
            value = headers.get(name)
            if value is None:
                return None
            try:
                return int(value)
            except ValueError:
                return None

        return cls(
            limit=_int("X-RateLimit-Limit"),
            remaining=_int("X-RateLimit-Remaining"),
            reset_at=_int("X-RateLimit-Reset"),
            retry_after_seconds=_int("Retry-After"),
        )


@dataclass
class SubmitResult:
    """Result of submit() call."""

    success: bool
    status_code: int = 0
    id: Optional[str] = None
    error: str = ""
    message: str = ""
    rate_limit: RateLimitInfo = field(default_factory=RateLimitInfo)

    @property
    def rate_limited(self) -> bool:
        return self.error == "rate_limited"


class FeedbackClient:
    """Synchronous HTTP client for the game-facing feedback API."""

    def __init__(
        self,
        server_url: str = "http://localhost:4000",
        api_key: Optional[str] = None,
        api_prefix: str = "/v1",
        timeout: int = 10,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self.api_prefix = api_prefix.rstrip("/")
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def submit(
        self,
        body: str,
        type: str = "general",
        identity_option: str = "anonymous",
        user_id: Optional[str] = None,
        username: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
        severity: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> SubmitResult:
        """Submit one piece of player feedback."""
        payload: dict[str, Any] = {
            "type": type,
            "identityOption": identity_option,
            "body": body,
        }
        identity = {k: v for k, v in (("userId", user_id), ("username", username)) if v}
        if identity:
            payload["identity"] = identity
        if category:
            payload["category"] = category
        if tags:
            payload["tags"] = tags
        if severity:
            payload["severity"] = severity
        if metadata:
            payload["metadata"] = metadata

        try:
            resp = self._http.post(
                f"{self.api_prefix}/feedback", json=payload, headers=self._headers()
            )
        except httpx.HTTPError as e:
            return SubmitResult(success=False, error="connection_error", message=str(e))

        rate_limit = RateLimitInfo.from_headers(resp.headers)
        try:
            data = resp.json()
        except json.JSONDecodeError:
            data = {}

        if resp.status_code == 201:
            return SubmitResult(
                success=True,
                status_code=resp.status_code,
                id=data.get("id"),
                rate_limit=rate_limit,
            )

        if rate_limit.retry_after_seconds is None and "retryAfterSeconds" in data:
            rate_limit.retry_after_seconds = data["retryAfterSeconds"]
        return SubmitResult(
            success=False,
            status_code=resp.status_code,
            error=data.get("error", f"http_{resp.status_code}"),
            message=data.get("message", ""),
            rate_limit=rate_limit,
        )

    def health(self) -> dict[str, Any]:
        resp = self._http.get("/health")
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
