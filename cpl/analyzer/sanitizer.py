"""
Redaction of credential-like content.

Every rendered transcript passes through sanitize() before it is sent to a
completion provider. Each rule replaces its whole match with REDACTED; a
key whose value is already REDACTED is not matched again, so sanitize() is
idempotent.
"""

import re
from typing import Any

REDACTED = "[REDACTED]"

# key: value / key=value, optional quotes around the value
_VALUE = r"""\s*[:=]\s*['"]?(?!\[REDACTED\])[^\s'"]+['"]?"""

API_KEY_PATTERN = re.compile(r"(api[_-]?key)" + _VALUE, re.IGNORECASE)

PASSWORD_PATTERN = re.compile(r"(password|passwd|pwd|secret)" + _VALUE, re.IGNORECASE)

TOKEN_PATTERN = re.compile(r"(token)" + _VALUE, re.IGNORECASE)

# Vendor key literals that show up without a key name in front of them
VENDOR_KEY_PATTERNS = [
    re.compile(r"\bsk-(?:ant-|proj-)?[A-Za-z0-9_\-]{16,}"),  # OpenAI / Anthropic
    re.compile(r"\bgh[pousr]_[A-Za-z0-9]{36,}"),  # GitHub
    re.compile(r"\bAKIA[0-9A-Z]{16}\b"),  # AWS access key id
    re.compile(r"\bxox[abprs]-[A-Za-z0-9\-]{10,}"),  # Slack
    re.compile(r"\bAIza[0-9A-Za-z_\-]{35}"),  # Google
]

BEARER_PATTERN = re.compile(r"Bearer\s+(?!\[REDACTED\])[^\s]+", re.IGNORECASE)

BASIC_PATTERN = re.compile(r"Basic\s+(?!\[REDACTED\])[^\s]+", re.IGNORECASE)


def mask_api_keys(text: str) -> str:
    """Mask api_key pairs and vendor key literals."""
    text = API_KEY_PATTERN.sub(REDACTED, text)
    for pattern in VENDOR_KEY_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def mask_passwords(text: str) -> str:
    return PASSWORD_PATTERN.sub(REDACTED, text)


def mask_tokens(text: str) -> str:
    """Mask token pairs and Bearer/Basic authorization values."""
    text = TOKEN_PATTERN.sub(REDACTED, text)
    text = BEARER_PATTERN.sub(REDACTED, text)
    text = BASIC_PATTERN.sub(REDACTED, text)
    return text


def sanitize(text: str) -> str:
    """Mask all sensitive substrings in text."""
    result = mask_api_keys(text)
    result = mask_passwords(result)
    result = mask_tokens(result)
    return result


def sanitize_object(obj: Any) -> Any:
    """Recursively sanitize every string inside dicts and lists."""
    if isinstance(obj, str):
        return sanitize(obj)
    if isinstance(obj, list):
        return [sanitize_object(item) for item in obj]
    if isinstance(obj, dict):
        return {key: sanitize_object(value) for key, value in obj.items()}
    return obj
