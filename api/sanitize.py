"""
Payload sanitizer for user-supplied text.

Strips the obvious script-injection vectors from every string in a request
body before validation: script/style blocks, embedded iframe/object/embed/svg
content, inline on*= event handlers, javascript: URIs, <base> tags and
<meta http-equiv> tags. Non-string values pass through untouched; lists and
dicts are walked recursively.

This is a blunt filter for generation prompts, not an HTML sanitizer.
"""

import re
from typing import Any

_PATTERNS = [
    re.compile(r"<script\b[^>]*>[\s\S]*?</script>", re.IGNORECASE),
    re.compile(r"<style\b[^>]*>[\s\S]*?</style>", re.IGNORECASE),
    re.compile(r"<(iframe|object|embed|svg)\b[^>]*>[\s\S]*?</\1>", re.IGNORECASE),
    re.compile(r"\son\w+\s*=\s*(\"[\s\S]*?\"|'[\s\S]*?'|[^\s>]+)", re.IGNORECASE),
    re.compile(r"\s(href|src)\s*=\s*(\"|')?\s*javascript:[^\"'\s>]+(\2)?", re.IGNORECASE),
    re.compile(r"<base\b[^>]*>", re.IGNORECASE),
    re.compile(r"<meta\b[^>]*http-equiv[^>]*>", re.IGNORECASE),
    # any tag still carrying an event handler
    re.compile(r"<[^>]*on[a-z]+\s*=\s*[^>]*>", re.IGNORECASE),
]


def sanitize_string(value: str) -> str:
    for pattern in _PATTERNS:
        value = pattern.sub("", value)
    return value


def sanitize_value(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return [sanitize_value(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize_value(item) for key, item in value.items()}
    return value
