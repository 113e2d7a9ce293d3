import hashlib
import hmac
import math
import re
import secrets
from typing import Any, Dict, Union

from .settings import settings

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_ANGLE_BRACKETS = re.compile(r"[<>]")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TOKEN = re.compile(r"^[a-zA-Z0-9_-]+$")
_LICENSE_KEY = re.compile(r"^[A-Z]+-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")


# --- sanitization -----------------------------------------------------------

def sanitize_text(value: Any, max_length: int = 1000) -> str:
    if not isinstance(value, str):
        return ""
    value = _SCRIPT_BLOCK.sub("", value)
    value = _ANGLE_BRACKETS.sub("", value)
    return value[:max_length].strip()


def sanitize_number(value: Any, min_value: float = -math.inf, max_value: float = math.inf) -> float:
    """Parse the leading number of `value` (so "12px" -> 12.0) and clamp it; garbage becomes 0."""
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        m = _LEADING_FLOAT.match(str(value))
        num = float(m.group(1)) if m else math.nan
    if math.isnan(num):
        return 0.0
    return max(min_value, min(max_value, num))


def sanitize_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def sanitize_email(value: Any) -> str:
    cleaned = sanitize_text(value, 255)
    return cleaned if _EMAIL.fullmatch(cleaned) else ""


# --- hashing ----------------------------------------------------------------

def _as_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def sha256_hex(data: Union[str, bytes]) -> str:
    return hashlib.sha256(_as_bytes(data)).hexdigest()


def sha512_hex(data: Union[str, bytes]) -> str:
    return hashlib.sha512(_as_bytes(data)).hexdigest()


def hmac_sha256(data: Union[str, bytes], secret: Union[str, bytes]) -> str:
    return hmac.new(_as_bytes(secret), _as_bytes(data), hashlib.sha256).hexdigest()


# --- tokens -----------------------------------------------------------------

def generate_token(length: int = 32) -> str:
    """Hex token built from `length` random bytes."""
    return secrets.token_hex(length)


def generate_secure_token(length: int = 64) -> str:
    """URL-safe base64 token (no padding) built from `length` random bytes."""
    return secrets.token_urlsafe(length)


def validate_token(token: Any, pattern: re.Pattern = _TOKEN) -> bool:
    return isinstance(token, str) and pattern.fullmatch(token) is not None


# --- licence keys -----------------------------------------------------------

class LicenseValidator:
    """Offline checks for keys shaped like PLUGIN-XXXX-XXXX-XXXX-XXXX."""

    @staticmethod
    def validate_format(license_key: Any) -> Dict[str, Any]:
        if not license_key or not isinstance(license_key, str):
            return {"valid": False, "error": "License key must be a string"}
        if not _LICENSE_KEY.fullmatch(license_key):
            return {"valid": False, "error": "Invalid license key format"}
        return {"valid": True, "error": None}

    @staticmethod
    def generate_checksum(license_key: str, plugin_name: str) -> str:
        return sha256_hex(f"{license_key}:{plugin_name}:{settings.license_secret}")[:8]

    @classmethod
    def validate_checksum(cls, license_key: str, plugin_name: str, expected_checksum: str) -> bool:
        actual = cls.generate_checksum(license_key, plugin_name)
        return hmac.compare_digest(actual, expected_checksum or "")
