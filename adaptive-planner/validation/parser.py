"""Extract structured data from free-text model output.

Parsing never raises: the caller always gets a ParseResult that is either
``ok`` (validated schema instance) or a fallback carrying the caller's
default and the reason parsing failed.
"""

import json
import re
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ValidationError

_FENCE = re.compile(r"```(?:json)?\s*|```", re.IGNORECASE)


class ParseResult(NamedTuple):
    value: Any
    ok: bool
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return not self.ok

    @classmethod
    def success(cls, value) -> "ParseResult":
        return cls(value=value, ok=True)

    @classmethod
    def fallback(cls, default, error: str) -> "ParseResult":
        return cls(value=default, ok=False, error=error)


def extract_json(text: str) -> Any:
    """Return the JSON value embedded in *text*.

    Strips markdown fences, then falls back to the outermost ``{...}`` span
    when the model wrapped the object in prose. Raises ValueError when no
    JSON object can be decoded.
    """
    cleaned = _FENCE.sub("", text or "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object found in model output")
    return json.loads(cleaned[start:end + 1])


def parse_model_output(raw: str, schema: type[BaseModel], default: Any) -> ParseResult:
    """Validate *raw* model text against *schema*; fall back to *default*."""
    try:
        return ParseResult.success(schema.model_validate(extract_json(raw)))
    except (ValidationError, ValueError) as exc:
        return ParseResult.fallback(default, str(exc).splitlines()[0] if str(exc) else type(exc).__name__)
