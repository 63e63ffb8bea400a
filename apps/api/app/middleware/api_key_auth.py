"""ASGI middleware that authenticates API requests by key and records their usage."""

from __future__ import annotations

import enum
import logging
import time
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.responses import JSONResponse, Response

from app.core.permissions import required_permission
from app.schemas.api_key import UsageLogEntryCreate
from app.services.api_keys import ApiKeyService

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Missing API key. Provide your API key in the {header} header."
INVALID_KEY_MESSAGE = "Invalid or expired API key"
FORBIDDEN_MESSAGE = "API key lacks required permission: {permission}"
INTERNAL_ERROR_MESSAGE = "Internal server error"


class GateState(str, enum.Enum):
    """Stages a gated request passes through."""

    RECEIVED = "received"
    KEY_EXTRACTED = "key_extracted"
    VALIDATED = "validated"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    HANDLED = "handled"
    LOGGED = "logged"


def _client_ip(headers: Headers, scope: dict[str, Any]) -> str:
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()[:45]
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first[:45]
    client = scope.get("client")
    if client:
        return str(client[0])[:45]
    return "unknown"


class ApiKeyAuthMiddleware:
    """Guard every path under the API prefix with an API key.

    Each gated request is validated, matched against the namespace permission
    table, handed to the application when allowed, and then recorded as exactly
    one usage log entry carrying the status actually sent to the client.
    """

    def __init__(
        self,
        app,
        *,
        service: ApiKeyService,
        api_prefix: str = "/api/v1",
        header_name: str = "x-api-key",
    ) -> None:
        self.app = app
        self.service = service
        self.api_prefix = "/" + api_prefix.strip("/")
        self.header_name = header_name.lower()

    def _is_gated(self, path: str) -> bool:
        return path == self.api_prefix or path.startswith(self.api_prefix + "/")

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "http" or not self._is_gated(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        path = scope.get("path", "")
        method = scope.get("method", "UNKNOWN")
        headers = Headers(scope=scope)
        state = GateState.RECEIVED
        api_key_id: int | None = None
        status_holder: dict[str, int] = {}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
            await send(message)

        try:
            secret = headers.get(self.header_name)
            if not secret:
                state = GateState.DENIED
                response: Response | None = JSONResponse(
                    {"error": MISSING_KEY_MESSAGE.format(header=self.header_name)},
                    status_code=401,
                )
            else:
                state = GateState.KEY_EXTRACTED
                validation = await run_in_threadpool(self.service.validate, secret)
                if not validation.valid or validation.key is None or validation.permissions is None:
                    state = GateState.DENIED
                    response = JSONResponse({"error": INVALID_KEY_MESSAGE}, status_code=401)
                else:
                    state = GateState.VALIDATED
                    api_key_id = validation.key.id
                    permission = required_permission(path[len(self.api_prefix) :], method)
                    if permission is not None and not validation.permissions.allows(permission):
                        state = GateState.DENIED
                        response = JSONResponse(
                            {"error": FORBIDDEN_MESSAGE.format(permission=permission.value)},
                            status_code=403,
                        )
                    else:
                        state = GateState.AUTHORIZED
                        scope.setdefault("state", {})["api_key"] = validation.key
                        response = None
                        await self.app(scope, receive, send_wrapper)

            if response is not None:
                await response(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Unhandled error in API key gate (%s) for %s %s", state.value, method, path)
            if "status" not in status_holder:
                error_response = JSONResponse({"error": INTERNAL_ERROR_MESSAGE}, status_code=500)
                try:
                    await error_response(scope, receive, send_wrapper)
                except Exception:
                    logger.exception("Could not send error response for %s %s", method, path)
                    status_holder.setdefault("status", 500)

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        await self._record_usage(
            scope,
            headers,
            api_key_id=api_key_id,
            method=method,
            path=path,
            status_code=status_holder.get("status", 500),
            duration_ms=duration_ms,
        )

    async def _record_usage(
        self,
        scope,
        headers: Headers,
        *,
        api_key_id: int | None,
        method: str,
        path: str,
        status_code: int,
        duration_ms: int,
    ) -> None:
        """Build and write the usage log entry; failures are reported here and never propagate."""
        try:
            entry = UsageLogEntryCreate(
                api_key_id=api_key_id,
                endpoint=path[:255],
                method=method[:10],
                status_code=status_code,
                response_time_ms=max(duration_ms, 0),
                request_ip=_client_ip(headers, scope),
                user_agent=headers.get("user-agent") or "unknown",
            )
            await run_in_threadpool(self.service.log_usage, entry)
        except Exception:
            logger.exception(
                "Failed to record API usage for %s %s (status %s)",
                method,
                path,
                status_code,
            )
