import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request
from pydantic import ValidationError

from .guardrails import RateLimiter
from .interfaces import PluginInterface
from .responses import api_error, api_success
from .schemas import CommandResult

logger = logging.getLogger(__name__)


def build_plugin_router(plugin: PluginInterface, rate_limiter: Optional[RateLimiter] = None) -> APIRouter:
    """
    Routes the dashboard mounts for one plugin, under /plugins/<name>.
    Command calls are rate limited per client IP when a limiter is given.
    """
    router = APIRouter(prefix=f"/plugins/{plugin.name}", tags=[plugin.name or "plugin"])

    @router.get("/health")
    def health():
        return api_success(plugin.health_status())

    @router.get("/info")
    def info():
        return api_success(plugin.get_info())

    @router.post("/commands/{command}")
    async def run_command(command: str, request: Request, args: Optional[Dict[str, Any]] = Body(default=None)):
        client_ip = request.client.host if request.client else "unknown"
        if rate_limiter is not None and not rate_limiter.is_allowed(client_ip):
            return api_error(
                "Too many requests. Please try again shortly.",
                status_code=429,
                details={"limit": rate_limiter.max_requests, "window_ms": rate_limiter.window_ms},
            )

        raw = await plugin.execute_command(command, args or {})
        try:
            result = CommandResult.model_validate(raw)
        except ValidationError:
            logger.exception("Plugin %s returned a malformed result for %s", plugin.name, command)
            return api_error("Plugin returned an invalid command result.", status_code=500)

        if result.success:
            return api_success(result.data, result.message or "Success")
        return api_error(result.error or f"Command {command} failed", status_code=400)

    return router
