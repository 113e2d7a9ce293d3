import functools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PluginError(Exception):
    """
    Error raised by plugin operations.
    Carries a machine-readable code and the HTTP status the dashboard should answer with.
    """
    def __init__(
        self,
        message: str,
        code: str = "PLUGIN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.status_code = status_code
        self.timestamp = datetime.now(timezone.utc).isoformat()


class ConfigurationError(PluginError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details, status_code=400)


def async_error_handler(fn):
    """Wrap a coroutine so that every failure surfaces as a PluginError."""
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PluginError:
            logger.exception("Plugin operation failed")
            raise
        except Exception as e:
            logger.exception("Plugin operation failed")
            raise PluginError(
                f"Operation failed: {e}",
                "OPERATION_FAILED",
                {"original_error": str(e)},
            ) from e

    return wrapper
