from __future__ import annotations

from dataclasses import dataclass, field
import base64
from http.client import HTTPException
import json
import logging
from typing import Any, Literal, Mapping
from urllib import request
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode

from pydantic import BaseModel, Field


LOGGER = logging.getLogger(__name__)

ResponseType = Literal["json", "text", "bytes"]

_STATUS_CODE_MAP = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    429: "limit_exceeded",
    500: "internal_error",
}


class ErrorDetail(BaseModel):
    message: str = Field(description="Human readable error message")
    code: str | None = Field(default=None, description="Error code")
    details: Any = Field(default=None, description="Decoded error body, if any")


class ResponseMetadata(BaseModel):
    status_code: int | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    method: str
    url: str


class StandardResponse(BaseModel):
    success: bool
    data: Any = None
    error: ErrorDetail | None = None
    metadata: ResponseMetadata | None = None


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str

    def header_value(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"


@dataclass(frozen=True)
class HttpClientConfig:
    base_url: str = ""
    default_headers: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: float = 10


@dataclass(frozen=True)
class RequestConfig:
    """Every per-request option the client understands.

    ``timeout_seconds=None`` falls back to the client default. ``body`` is
    sent as-is when it is ``bytes`` or ``str``, otherwise JSON-encoded.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    timeout_seconds: float | None = None
    basic_auth: BasicAuth | None = None
    response_type: ResponseType = "json"
    body: Any = None


class HttpClient:
    def __init__(self, config: HttpClientConfig | None = None) -> None:
        self._config = config or HttpClientConfig()

    def request(self, method: str, endpoint: str, config: RequestConfig | None = None) -> StandardResponse:
        config = config or RequestConfig()
        method = method.upper()
        url = self._build_url(endpoint, config.params)
        headers = {**self._config.default_headers, **config.headers}
        data = _encode_body(config.body, headers)
        if config.basic_auth is not None:
            headers["Authorization"] = config.basic_auth.header_value()
        timeout = config.timeout_seconds if config.timeout_seconds is not None else self._config.timeout_seconds

        req = request.Request(url, data=data, headers=headers, method=method)
        try:
            with request.urlopen(req, timeout=timeout) as response:
                raw = response.read()
                metadata = ResponseMetadata(
                    status_code=response.status,
                    headers=dict(response.headers.items()),
                    method=method,
                    url=url,
                )
        except HTTPError as exc:
            LOGGER.error("HTTP request failed: method=%s url=%s status=%s", method, url, exc.code)
            return StandardResponse(
                success=False,
                error=ErrorDetail(
                    message=str(exc.reason),
                    code=_STATUS_CODE_MAP.get(exc.code, "http_error"),
                    details=_decode_error_body(exc.read()),
                ),
                metadata=ResponseMetadata(
                    status_code=exc.code,
                    headers=dict(exc.headers.items()) if exc.headers else {},
                    method=method,
                    url=url,
                ),
            )
        except (OSError, HTTPException) as exc:
            # URLError and TimeoutError are OSErrors; read-side failures surface as HTTPException.
            LOGGER.error("HTTP request failed: method=%s url=%s error=%s", method, url, exc)
            code = "timeout" if _is_timeout(exc) else "network_error"
            return StandardResponse(
                success=False,
                error=ErrorDetail(message=str(exc), code=code),
                metadata=ResponseMetadata(method=method, url=url),
            )

        try:
            payload = _decode_body(raw, config.response_type)
        except ValueError as exc:
            LOGGER.error("HTTP response decode failed: method=%s url=%s error=%s", method, url, exc)
            return StandardResponse(
                success=False,
                error=ErrorDetail(message=str(exc), code="decode_error"),
                metadata=metadata,
            )
        return StandardResponse(success=True, data=payload, metadata=metadata)

    def get(self, endpoint: str, config: RequestConfig | None = None) -> StandardResponse:
        return self.request("GET", endpoint, config)

    def post(self, endpoint: str, config: RequestConfig | None = None) -> StandardResponse:
        return self.request("POST", endpoint, config)

    def put(self, endpoint: str, config: RequestConfig | None = None) -> StandardResponse:
        return self.request("PUT", endpoint, config)

    def patch(self, endpoint: str, config: RequestConfig | None = None) -> StandardResponse:
        return self.request("PATCH", endpoint, config)

    def delete(self, endpoint: str, config: RequestConfig | None = None) -> StandardResponse:
        return self.request("DELETE", endpoint, config)

    def _build_url(self, endpoint: str, params: Mapping[str, Any]) -> str:
        if endpoint.startswith(("http://", "https://")) or not self._config.base_url:
            url = endpoint
        else:
            url = f"{self._config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        if params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(params, doseq=True)}"
        return url


def _encode_body(body: Any, headers: dict[str, str]) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if not any(key.lower() == "content-type" for key in headers):
        headers["Content-Type"] = "application/json"
    return json.dumps(body).encode("utf-8")


def _decode_body(raw: bytes, response_type: ResponseType) -> Any:
    if response_type == "bytes":
        return raw
    text = raw.decode("utf-8")
    if response_type == "text":
        return text
    if not text.strip():
        return None
    return json.loads(text)


def _decode_error_body(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, TimeoutError):
        return True
    return isinstance(exc, URLError) and isinstance(exc.reason, TimeoutError)
