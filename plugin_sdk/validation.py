"""
Field validators shared by plugin command handlers.

The validate_<field> helpers return True or a human readable error message,
which is what the dashboard forms display. The generic validate_<type> helpers
raise ValueError instead and return the cleaned value.
"""
import re
from typing import Annotated, Any, Dict, Optional, Union

from pydantic import AfterValidator

VALIDATION_PATTERNS: Dict[str, re.Pattern] = {
    "username": re.compile(r"^[a-zA-Z0-9_-]{3,20}$"),
    "email": re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
    "password": re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"),
    "wallet_label": re.compile(r"^[a-zA-Z0-9\s_-]{1,50}$"),
    "xpub": re.compile(r"^(xpub|ypub|zpub|tpub|upub|vpub)[a-zA-Z0-9]{100,120}$"),
    "bitcoin_address": re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$|^bc1[a-z0-9]{39,59}$"),
    "amount": re.compile(r"^\d+(\.\d{1,8})?$"),
    "alphanumeric": re.compile(r"^[a-zA-Z0-9]+$"),
    "filename": re.compile(r"^[a-zA-Z0-9._-]+$"),
    "url": re.compile(
        r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
    ),
    "uuid": re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE),
    "hex": re.compile(r"^[0-9a-fA-F]+$"),
    "base64": re.compile(r"^[A-Za-z0-9+/]*={0,2}$"),
    "ipv4": re.compile(r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"),
    "ipv6": re.compile(r"^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$"),
    "phone": re.compile(r"^\+?[\d\s\-()]{10,20}$"),
    "date": re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    "time": re.compile(r"^\d{2}:\d{2}:\d{2}$"),
    "datetime": re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{3})?Z?$"),
    "color": re.compile(r"^#[0-9a-fA-F]{6}$"),
    "slug": re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$"),
    "path": re.compile(r"^[a-zA-Z0-9/._-]+$"),
    "json": re.compile(r"^\{.*\}$|^\[.*\]$", re.DOTALL),
}

# (prefix, min length, max length, label)
_ADDRESS_LENGTHS = [
    ("bc1", 42, 62, "Bech32"),
    ("1", 26, 35, "P2PKH"),
    ("3", 26, 35, "P2SH"),
]

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_ANGLE_BRACKETS = re.compile(r"[<>]")

_SCHEMA_TYPES = {
    "string": str,
    "number": (int, float),
    "boolean": bool,
    "object": dict,
    "array": list,
}


def _matches(name: str, value: str) -> bool:
    return VALIDATION_PATTERNS[name].fullmatch(value) is not None


def validate_bitcoin_address(address: Any) -> Union[bool, str]:
    if not address or not isinstance(address, str):
        return "Bitcoin address is required"

    address = address.strip()
    if not _matches("bitcoin_address", address):
        return "Invalid Bitcoin address format"

    for prefix, lo, hi, label in _ADDRESS_LENGTHS:
        if address.startswith(prefix):
            if not lo <= len(address) <= hi:
                return f"Invalid {label} address length"
            break
    return True


def validate_xpub(xpub: Any) -> Dict[str, Any]:
    if not xpub or not isinstance(xpub, str):
        return {"valid": False, "message": "XPUB is required"}
    if not _matches("xpub", xpub.strip()):
        return {"valid": False, "message": "Invalid XPUB format"}
    return {"valid": True, "message": "XPUB is valid"}


def validate_email(email: Any) -> Union[bool, str]:
    if not email or not isinstance(email, str):
        return "Email is required"
    if not _matches("email", email.strip()):
        return "Invalid email format"
    return True


def validate_username(username: Any) -> Union[bool, str]:
    if not username or not isinstance(username, str):
        return "Username is required"
    if not _matches("username", username.strip()):
        return "Username must be 3-20 characters, letters, numbers, underscores, and hyphens only"
    return True


def validate_password(password: Any) -> Union[bool, str]:
    if not password or not isinstance(password, str):
        return "Password is required"
    # not stripped: whitespace is part of the secret
    if not _matches("password", password):
        return "Password must be 8+ characters with uppercase, lowercase, number, and special character"
    return True


def validate_string(value: Any, name: str = "value") -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {type(value).__name__}")
    if not value.strip():
        raise ValueError(f"{name} cannot be empty")
    return value.strip()


def validate_number(value: Any, name: str = "value") -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        raise ValueError(f"{name} must be a valid number, got {type(value).__name__}")
    return value


def validate_boolean(value: Any, name: str = "value") -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a boolean, got {type(value).__name__}")
    return value


def validate_required(value: Any, name: str = "value") -> Any:
    if value is None:
        raise ValueError(f"{name} is required")
    return value


def sanitize_string(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    value = _CONTROL_CHARS.sub("", value)
    return _ANGLE_BRACKETS.sub("", value).strip()


def _end_anchored(pattern: str) -> str:
    # a bare `$` also matches before a trailing newline; `\Z` only at the real end
    out = []
    escaped = in_class = False
    for ch in pattern:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif in_class:
            in_class = ch != "]"
        elif ch == "[":
            in_class = True
        elif ch == "$":
            out.append(r"\Z")
            continue
        out.append(ch)
    return "".join(out)


def validate_config(config: Any, schema: Dict[str, Any]) -> Dict[str, Optional[Union[bool, str]]]:
    """
    Check a plugin config dict against a JSON-schema-like description:
    {"properties": {"api_key": {"required": True, "type": "string", "pattern": r"^sk_"}}}
    Returns {"valid": bool, "error": str | None} with the first problem found.

    Types are JSON types: "object" means a dict (lists are "array"), and a
    bool is never a "number". Patterns are searched, and `$` only matches at
    the very end of the value.
    """
    if not isinstance(config, dict):
        return {"valid": False, "error": "Configuration must be an object"}

    for key, rules in (schema.get("properties") or {}).items():
        value = config.get(key)

        if rules.get("required") and value is None:
            return {"valid": False, "error": f"Required field '{key}' is missing"}
        if value is None:
            continue

        expected = rules.get("type")
        if expected:
            py_type = _SCHEMA_TYPES.get(expected)
            # bool is an int subclass; don't let True pass as a number
            wrong_bool = expected == "number" and isinstance(value, bool)
            if py_type is None or wrong_bool or not isinstance(value, py_type):
                return {"valid": False, "error": f"Field '{key}' must be of type {expected}"}

        pattern = rules.get("pattern")
        if pattern and isinstance(value, str) and not re.search(_end_anchored(pattern), value):
            return {"valid": False, "error": f"Field '{key}' does not match required pattern"}

    return {"valid": True, "error": None}


def _bitcoin_address(v: str) -> str:
    result = validate_bitcoin_address(v)
    if result is not True:
        raise ValueError(result)
    return v.strip()


def _xpub(v: str) -> str:
    result = validate_xpub(v)
    if not result["valid"]:
        raise ValueError(result["message"])
    return v.strip()


# For plugin config / request models:  address: BitcoinAddress
BitcoinAddress = Annotated[str, AfterValidator(_bitcoin_address)]
XPub = Annotated[str, AfterValidator(_xpub)]
