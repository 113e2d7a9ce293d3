import logging

from .errors import ConfigurationError, PluginError, async_error_handler
from .guardrails import RateLimitConfig, RateLimiter, TTLCache
from .http import RetryTransport, create_http_client
from .interfaces import (
    PluginContext,
    PluginInterface,
    PluginState,
    PrivatePluginInterface,
    PublicPluginInterface,
)
from .responses import api_error, api_success, register_error_handlers
from .security import (
    LicenseValidator,
    generate_secure_token,
    generate_token,
    hmac_sha256,
    sanitize_boolean,
    sanitize_email,
    sanitize_number,
    sanitize_text,
    sha256_hex,
    sha512_hex,
    validate_token,
)
from .validation import (
    VALIDATION_PATTERNS,
    BitcoinAddress,
    XPub,
    sanitize_string,
    validate_bitcoin_address,
    validate_boolean,
    validate_config,
    validate_email,
    validate_number,
    validate_password,
    validate_required,
    validate_string,
    validate_username,
    validate_xpub,
)
from .web import build_plugin_router

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # lifecycle
    "PluginContext",
    "PluginInterface",
    "PluginState",
    "PrivatePluginInterface",
    "PublicPluginInterface",
    # errors and responses
    "ConfigurationError",
    "PluginError",
    "async_error_handler",
    "api_error",
    "api_success",
    "register_error_handlers",
    "build_plugin_router",
    # guardrails
    "RateLimitConfig",
    "RateLimiter",
    "TTLCache",
    # http
    "RetryTransport",
    "create_http_client",
    # validation
    "VALIDATION_PATTERNS",
    "BitcoinAddress",
    "XPub",
    "sanitize_string",
    "validate_bitcoin_address",
    "validate_boolean",
    "validate_config",
    "validate_email",
    "validate_number",
    "validate_password",
    "validate_required",
    "validate_string",
    "validate_username",
    "validate_xpub",
    # security
    "LicenseValidator",
    "generate_secure_token",
    "generate_token",
    "hmac_sha256",
    "sanitize_boolean",
    "sanitize_email",
    "sanitize_number",
    "sanitize_text",
    "sha256_hex",
    "sha512_hex",
    "validate_token",
]
