"""
=============================================================================
ACCESS LOG
=============================================================================

One log line per request on the ``userservice.access`` logger.

text (default):

    127.0.0.1 - - [18/Oct/2026:10:15:02 +0000] "GET /get?id=1" 200 31 0.42ms a1b2c3d4

json:

    {"request_id": "a1b2c3d4", "method": "GET", "path": "/get", "query": "id=1",
     "client_ip": "127.0.0.1", "user_agent": "curl/8.5.0", "status_code": 200,
     "content_length": 31, "duration_ms": 0.42, "timestamp": "..."}

The same request id is returned to the client in ``X-Request-ID`` so a
response can be matched to its log line.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("userservice.access")


REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestLog:
    """A single access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms {self.request_id}'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging.

    Add it first so the duration covers the whole request and requests
    answered by later middleware are still logged.

    Usage:
        pipeline.add(LoggingMiddleware())
        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown log format: {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms) {request_id}"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        response.set_header(REQUEST_ID_HEADER, request_id)

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=urlencode(request.query_params, doseq=True),
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body) if response.status.allows_body else 0,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
