"""
Base classes for dashboard plugins.

A plugin moves through an explicit lifecycle:

    UNINITIALIZED --initialize--> INITIALIZED --start--> RUNNING --stop--> STOPPED
                                                ^                            |
                                                +-----------start------------+

cleanup() returns the plugin to UNINITIALIZED from any state. Lifecycle calls
never raise: failures are logged, kept in `last_error`, and reported as False,
which is what the dashboard's plugin loader expects. Subclasses put their own
work in the initialize_plugin / start_plugin / stop_plugin hooks.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from . import validation
from .errors import ConfigurationError, PluginError
from .guardrails import TTLCache, now_ms
from .http import create_http_client
from .schemas import LicenseValidation
from .security import LicenseValidator
from .settings import settings

logger = logging.getLogger(__name__)


class PluginState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPED = "stopped"


_INITIALIZE_FROM = (PluginState.UNINITIALIZED, PluginState.INITIALIZED, PluginState.STOPPED)
_START_FROM = (PluginState.INITIALIZED, PluginState.STOPPED)


@dataclass
class PluginContext:
    config: Optional[Dict[str, Any]] = None
    job_queue: Any = None
    task_runner: Any = None
    license_key: Optional[str] = None


class PluginInterface:
    name: str = ""
    version: str = ""
    description: str = ""
    # see validation.validate_config for the format
    config_schema: Dict[str, Any] = {}

    def __init__(self):
        self.state = PluginState.UNINITIALIZED
        self.start_time: Optional[int] = None
        self.context: Optional[PluginContext] = None
        self.config: Optional[Dict[str, Any]] = None
        self.job_queue: Any = None
        self.task_runner: Any = None
        self.last_error: Optional[str] = None

    @property
    def is_initialized(self) -> bool:
        return self.state is not PluginState.UNINITIALIZED

    def is_running(self) -> bool:
        return self.state is PluginState.RUNNING

    def get_uptime(self) -> int:
        return now_ms() - self.start_time if self.start_time else 0

    def _label(self) -> str:
        return self.name or type(self).__name__

    def _record_failure(self, action: str, exc: Exception) -> bool:
        self.last_error = str(exc)
        logger.error("Failed to %s plugin %s", action, self._label(), exc_info=exc)
        return False

    # --- lifecycle ---------------------------------------------------------

    async def initialize(self, context: PluginContext) -> bool:
        try:
            if self.state not in _INITIALIZE_FROM:
                raise PluginError(
                    f"Cannot initialize {self._label()} while it is {self.state.value}",
                    "INVALID_STATE",
                )
            config = context.config if context.config is not None else self.get_default_config()
            check = self.validate_config(config)
            if not check["valid"]:
                raise ConfigurationError(check["error"])

            self.context = context
            self.config = config
            self.job_queue = context.job_queue
            self.task_runner = context.task_runner

            await self.initialize_plugin(context)
            await self.setup_event_listeners()
            await self.setup_job_queue_tasks()
        except Exception as e:
            return self._record_failure("initialize", e)

        self.state = PluginState.INITIALIZED
        self.last_error = None
        return True

    async def start(self) -> bool:
        try:
            if self.state is PluginState.UNINITIALIZED:
                raise PluginError("Plugin must be initialized before starting", "INVALID_STATE")
            if self.state not in _START_FROM:
                raise PluginError(f"Cannot start {self._label()} while it is {self.state.value}", "INVALID_STATE")
            await self.start_plugin()
        except Exception as e:
            return self._record_failure("start", e)

        self.state = PluginState.RUNNING
        self.start_time = now_ms()
        return True

    async def stop(self) -> bool:
        if self.state is not PluginState.RUNNING:
            return True
        try:
            await self.stop_plugin()
        except Exception as e:
            return self._record_failure("stop", e)

        self.state = PluginState.STOPPED
        self.start_time = None
        return True

    async def cleanup(self) -> bool:
        await self.stop()
        self.state = PluginState.UNINITIALIZED
        self.start_time = None
        self.context = None
        self.config = None
        self.job_queue = None
        self.task_runner = None
        return True

    # --- hooks for subclasses ------------------------------------------------

    async def initialize_plugin(self, context: PluginContext) -> None:
        pass

    async def start_plugin(self) -> None:
        pass

    async def stop_plugin(self) -> None:
        pass

    async def setup_event_listeners(self) -> None:
        pass

    async def setup_job_queue_tasks(self) -> None:
        pass

    async def execute_command(self, command_name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {"success": False, "error": f"Command {command_name} not implemented"}

    def get_default_config(self) -> Dict[str, Any]:
        return {}

    def validate_config(self, config: Any) -> Dict[str, Any]:
        if not self.config_schema:
            return {"valid": True, "error": None}
        return validation.validate_config(config, self.config_schema)

    # --- job queue -----------------------------------------------------------

    async def schedule_job(self, job_config: Dict[str, Any]) -> Any:
        if self.job_queue is None:
            logger.warning("Job queue not available for plugin %s", self._label())
            return False
        try:
            return await self.job_queue.schedule_job(job_config)
        except Exception:
            logger.exception("Failed to schedule job for plugin %s", self._label())
            return False

    # --- reporting -----------------------------------------------------------

    def health_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "status": "running" if self.is_running() else "stopped",
            "state": self.state.value,
            "uptime": self.get_uptime(),
            "initialized": self.is_initialized,
            "last_error": self.last_error,
        }

    def get_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "status": "running" if self.is_running() else "stopped",
            "uptime": self.get_uptime(),
            "initialized": self.is_initialized,
        }


class PrivatePluginInterface(PluginInterface):
    """
    Licensed plugins. A plugin with price > 0 needs a valid licence key
    (PluginContext.license_key) to initialize and to start; free private
    plugins run unlicensed. Validations are cached until their valid_until.
    """
    author: str = "MyBitcoinFuture"
    license: str = "PROPRIETARY"
    price: int = 0  # monthly, USD
    tier: str = "basic"  # basic | professional | enterprise

    def __init__(self):
        super().__init__()
        self.license_status = "unlicensed"
        self.payment_status = "unpaid"
        self._license_cache = TTLCache(default_ttl_ms=settings.license_cache_ttl_ms, max_items=64)

    async def initialize(self, context: PluginContext) -> bool:
        license_valid = await self.validate_license(context.license_key)
        if not license_valid and self.price > 0:
            return self._record_failure("initialize", PluginError(f"Invalid license for {self._label()}", "LICENSE_INVALID", status_code=403))

        self.license_status = "licensed" if license_valid else "unlicensed"
        return await super().initialize(context)

    async def start(self) -> bool:
        if self.price > 0 and self.license_status != "licensed":
            return self._record_failure("start", PluginError(f"License required for {self._label()}", "LICENSE_REQUIRED", status_code=403))
        return await super().start()

    async def validate_license(self, license_key: Optional[str]) -> bool:
        if settings.dev_mode:
            logger.info("Development mode: skipping license validation for %s", self._label())
            return True
        if not license_key:
            # free plugins don't need a licence
            return self.price == 0

        try:
            cached = self.check_local_license_cache(license_key)
            if cached is not None:
                return cached.valid

            validation_result = await self.validate_with_license_server(license_key)
            self.cache_license_validation(license_key, validation_result)
            return validation_result.valid
        except Exception:
            logger.exception("License validation failed for %s", self._label())
            return False

    def check_local_license_cache(self, license_key: str) -> Optional[LicenseValidation]:
        return self._license_cache.get(license_key)

    async def validate_with_license_server(self, license_key: str) -> LicenseValidation:
        if not settings.license_server_url:
            fmt = LicenseValidator.validate_format(license_key)
            return LicenseValidation(
                valid=fmt["valid"],
                valid_until=now_ms() + settings.license_cache_ttl_ms,
                error=fmt["error"],
            )

        try:
            async with create_http_client(base_url=settings.license_server_url) as client:
                r = await client.post(
                    "/licenses/validate",
                    json={"license_key": license_key, "plugin": self.name, "version": self.version},
                )
                r.raise_for_status()
                return LicenseValidation.model_validate(r.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("License server check failed for %s: %s", self._label(), e)
            return LicenseValidation(valid=False, error=str(e))

    def cache_license_validation(self, license_key: str, result: LicenseValidation) -> None:
        # results without an expiry (server failures) are retried next time
        if result.valid_until is None:
            return
        ttl_ms = max(0, result.valid_until - now_ms())
        self._license_cache.set(license_key, result, ttl_ms)

    def health_status(self) -> Dict[str, Any]:
        return {
            **super().health_status(),
            "license_status": self.license_status,
            "payment_status": self.payment_status,
            "price": self.price,
            "tier": self.tier,
        }

    def get_info(self) -> Dict[str, Any]:
        return {
            **super().get_info(),
            "author": self.author,
            "license": self.license,
            "price": self.price,
            "tier": self.tier,
            "license_status": self.license_status,
            "payment_status": self.payment_status,
        }


class PublicPluginInterface(PluginInterface):
    """Free community plugins."""
    author: str = ""
    license: str = "MIT"
    price: int = 0
    tier: str = "community"
    community_features: bool = True
    requires_approval: bool = False

    def health_status(self) -> Dict[str, Any]:
        return {
            **super().health_status(),
            "community_features": self.community_features,
            "requires_approval": self.requires_approval,
        }

    def get_info(self) -> Dict[str, Any]:
        return {
            **super().get_info(),
            "author": self.author,
            "license": self.license,
            "price": self.price,
            "tier": self.tier,
            "community_features": self.community_features,
            "requires_approval": self.requires_approval,
        }
