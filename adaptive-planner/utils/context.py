"""Context Summarizer: keeps conversation history and long documents bounded."""

import logging

from errors import ModelInvocationError
from prompts.summary_prompt import HISTORY_SUMMARY_SYSTEM, SUMMARIZE_SYSTEM
from utils.tokens import estimate_tokens, truncate_to_token_limit

logger = logging.getLogger(__name__)

_ROLE_LABELS = {"user": "User", "assistant": "Assistant", "system": "System"}


def _message_text(msg: dict) -> str:
    if msg.get("role") == "assistant" and msg.get("summary"):
        return msg["summary"]
    return msg.get("content", "")


def extract_key_lines(text: str, max_lines: int = 8, max_chars: int = 400) -> str:
    """Deterministic summary: headings and stack/architecture lines."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    key_lines = [
        line for line in lines
        if line.startswith("#") or "Tech Stack" in line or "Architecture" in line
    ]
    if not key_lines:
        key_lines = lines
    return "\n".join(key_lines[:max_lines])[:max_chars]


class ContextSummarizer:
    """Builds bounded prompt context and compresses text through the model.

    Every model-backed method except ``summarize`` degrades to a heuristic
    when the model call fails.
    """

    def __init__(
        self,
        client,
        max_messages: int = 6,
        history_token_budget: int = 2_000,
        summary_max_tokens: int = 300,
        summary_input_tokens: int = 3_000,
    ):
        self.client = client
        self.max_messages = max_messages
        self.history_token_budget = history_token_budget
        self.summary_max_tokens = summary_max_tokens
        self.summary_input_tokens = summary_input_tokens

    def build_context(
        self, prompt: str, history: list[dict], cached_summary: str | None = None
    ) -> tuple[str, int]:
        """Return (context, estimated_tokens) for the most recent exchange.

        Only the last ``max_messages`` messages are included; assistant turns
        are replaced by their summary when one is attached. A cached summary
        of the wider conversation, if given, leads the context.
        """
        parts: list[str] = []
        if cached_summary:
            parts.append(f"Earlier conversation (summary): {cached_summary}")
        for msg in history[-self.max_messages:]:
            label = _ROLE_LABELS.get(msg.get("role", "user"), "User")
            parts.append(f"{label}: {_message_text(msg)}")
        parts.append(f"User: {prompt}")

        context = "\n\n".join(parts)
        return context, estimate_tokens(context)

    def history_tokens(self, history: list[dict]) -> int:
        return sum(estimate_tokens(_message_text(m)) for m in history)

    def needs_compression(self, history: list[dict]) -> bool:
        return self.history_tokens(history) > self.history_token_budget

    def compress_history(self, history: list[dict]) -> list[dict]:
        """Swap assistant turns for their summaries when over budget."""
        total = sum(estimate_tokens(m.get("content", "")) for m in history)
        if total <= self.history_token_budget:
            return history
        return [{**m, "content": _message_text(m)} for m in history]

    def summarize(self, text: str):
        """Summarize a long document. Raises ModelInvocationError on failure."""
        truncated = truncate_to_token_limit(text, self.summary_input_tokens)
        result = self.client.invoke(
            messages=[
                {"role": "system", "content": SUMMARIZE_SYSTEM},
                {"role": "user", "content": truncated},
            ],
            temperature=0.1,
            max_tokens=self.summary_max_tokens,
            agent_name="summarizer",
        )
        return result.model_copy(update={"content": result.content.strip()})

    def summarize_history(self, history: list[dict]) -> tuple[str, int]:
        """Compress the conversation into a short summary.

        Returns (summary, tokens_used); the heuristic fallback costs no tokens.
        """
        transcript = "\n\n".join(
            f"{_ROLE_LABELS.get(m.get('role', 'user'), 'User')}: {_message_text(m)}"
            for m in self.compress_history(history)
        )
        truncated = truncate_to_token_limit(transcript, self.summary_input_tokens)
        try:
            result = self.client.invoke(
                messages=[
                    {"role": "system", "content": HISTORY_SUMMARY_SYSTEM},
                    {"role": "user", "content": truncated},
                ],
                temperature=0.1,
                max_tokens=self.summary_max_tokens,
                agent_name="summarizer",
            )
        except ModelInvocationError as e:
            logger.warning(f"[context] History summary failed, using heuristic: {e}")
            return extract_key_lines(transcript), 0
        return result.content.strip(), result.tokens_used
