"""Character-based token estimation. No tokenizer dependency."""

import math
import re

_WHITESPACE = re.compile(r"\s")
_SPECIAL = re.compile(r"[^\w\s]")

# Per-message overhead for role/formatting
MESSAGE_OVERHEAD_TOKENS = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count: ~1 token per 3.5 chars, nudged up for
    whitespace and punctuation."""
    if not text:
        return 0
    char_estimate = math.ceil(len(text) / 3.5)
    spaces = len(_WHITESPACE.findall(text))
    specials = len(_SPECIAL.findall(text))
    return math.ceil(char_estimate + spaces * 0.3 + specials * 0.5)


def estimate_messages_tokens(messages: list[dict[str, str]]) -> int:
    content = sum(estimate_tokens(m.get("content", "")) for m in messages)
    return content + len(messages) * MESSAGE_OVERHEAD_TOKENS


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    """Cut *text* so its estimate fits under *max_tokens* (5% safety margin)."""
    estimated = estimate_tokens(text)
    if estimated <= max_tokens:
        return text
    ratio = max_tokens / estimated
    char_limit = int(len(text) * ratio * 0.95)
    return text[:char_limit] + "..."


def extract_text_content(content) -> str:
    """Flatten LangChain message content (str, list of parts, or dict) to text."""
    if not content:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict):
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    if isinstance(content, dict) and "text" in content:
        return str(content["text"])
    return str(content)
