"""
Server Utilities

Generic, context-agnostic helpers shared by the engine, node handlers and API.
"""

import json
import re
import uuid
from typing import Any, Optional

# Try Python's uuid.uuid7() first (3.14+), fall back to uuid6 package
if hasattr(uuid, "uuid7"):
    _uuid7_func = uuid.uuid7
else:
    import uuid6
    _uuid7_func = uuid6.uuid7


_CODE_FENCE_RE = re.compile(r'^```(?:json)?\s*\n?(.*?)\n?```\s*$', re.DOTALL)
_NUMBER_RE = re.compile(r'^-?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$')


def uuid7_str() -> str:
    """
    Generate a UUID v7 string (time-sortable UUID).

    Returns a 32-character hex string (no hyphens).
    """
    return _uuid7_func().hex


def sanitize_error_message(error: Exception | str) -> str:
    """
    Sanitize error message to prevent sensitive info leakage.
    Removes API keys, tokens, file paths with usernames.
    """
    msg = str(error)

    msg = re.sub(r'sk-[a-zA-Z0-9]{20,}', '[API_KEY_REDACTED]', msg)
    msg = re.sub(r'AIza[0-9A-Za-z_-]{20,}', '[API_KEY_REDACTED]', msg)
    msg = re.sub(r'api[_-]?key["\']?\s*[:=]\s*["\']?[a-zA-Z0-9_-]+', 'api_key=[REDACTED]', msg, flags=re.IGNORECASE)
    msg = re.sub(r'Bearer\s+[A-Za-z0-9._~+/-]+=*', 'Bearer [REDACTED]', msg)

    msg = re.sub(r'/home/[^/\s]+', '/home/[USER]', msg)
    msg = re.sub(r'/Users/[^/\s]+', '/Users/[USER]', msg)
    msg = re.sub(r'C:\\Users\\[^\\]+', r'C:\\Users\\[USER]', msg)

    return msg


def make_json_serializable(obj: Any) -> Any:
    """
    Convert an object to be JSON serializable.

    Handles enums, sets, bytes, pydantic models and nested structures.
    """
    if obj is None:
        return None

    if isinstance(obj, (str, int, float, bool)):
        return obj

    if hasattr(obj, 'value') and not isinstance(obj, dict):
        return obj.value

    if isinstance(obj, set):
        return [make_json_serializable(item) for item in obj]

    if isinstance(obj, dict):
        return {str(k): make_json_serializable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [make_json_serializable(item) for item in obj]

    if isinstance(obj, bytes):
        return obj.decode('utf-8', errors='replace')

    if hasattr(obj, 'model_dump'):
        return make_json_serializable(obj.model_dump(by_alias=True))
    if hasattr(obj, 'isoformat'):
        return obj.isoformat()

    return str(obj)


def strip_code_fence(text: str) -> str:
    """Return the body of a ```json fenced block, or the text unchanged."""
    match = _CODE_FENCE_RE.match(text.strip())
    if match:
        return match.group(1)
    return text


def parse_json_lenient(text: str) -> Optional[Any]:
    """
    Parse JSON text, tolerating a surrounding markdown code fence.

    Returns None when the text is not JSON. Note that the JSON literal
    ``null`` also yields None.
    """
    if not isinstance(text, str):
        return None
    try:
        return json.loads(strip_code_fence(text))
    except (ValueError, TypeError):
        return None


def is_numeric_string(value: Any) -> bool:
    return isinstance(value, str) and bool(_NUMBER_RE.match(value.strip()))


def normalize_number(value: float) -> int | float:
    """Collapse integral floats to int (2.0 -> 2)."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def parse_number(value: Any) -> Optional[int | float]:
    """Lenient numeric parse of a string; None when it is not a number."""
    if not is_numeric_string(value):
        return None
    text = value.strip()
    if re.match(r'^-?\d+$', text):
        return int(text)
    return normalize_number(float(text))


def coerce_number(value: Any) -> Any:
    """
    Turn a numeric string into int/float when the number prints back as the
    same text, so "42" and "1.5" convert but "02134", "1.50" and "1e3" stay
    strings. Everything else is returned unchanged.
    """
    number = parse_number(value)
    if number is not None and stringify_value(number) == value:
        return number
    return value


def stringify_value(value: Any) -> str:
    """
    Render a variable value as template text.

    Mappings and lists become compact JSON, booleans lowercase, None empty.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    if isinstance(value, float):
        return str(normalize_number(value))
    return str(value)
