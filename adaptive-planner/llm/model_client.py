"""Model Invocation Client: role-tagged messages in, text and token usage out.

Walks the fallback model chain on API errors. When every model in the chain
fails the last error is re-raised as a TransientModelError (worth retrying
later) or a ModelExhaustedError (no usable model remains).
"""

import logging
from typing import Callable, Optional

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from config import REQUEST_TIMEOUT_SECONDS
from errors import ModelExhaustedError, TransientModelError
from llm.model_selector import get_model, model_chain
from observability.langfuse_tracer import traced_invoke, usage_tokens
from observability.metrics import MODEL_FALLBACKS, TOKENS_USED
from utils.tokens import estimate_messages_tokens, estimate_tokens, extract_text_content

logger = logging.getLogger(__name__)

_TRANSIENT_TYPES = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    TimeoutError,
    ConnectionError,
)
_TRANSIENT_KEYWORDS = ("timeout", "timed out", "rate limit", "network", "502", "503")

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


class ModelResult(BaseModel):
    content: str
    tokens_used: int
    model_used: str


def is_transient(exc: Exception) -> bool:
    if isinstance(exc, _TRANSIENT_TYPES):
        return True
    message = str(exc).lower()
    return any(k in message for k in _TRANSIENT_KEYWORDS)


def to_langchain_messages(messages: list[dict[str, str]]) -> list[BaseMessage]:
    return [_MESSAGE_TYPES.get(m["role"], HumanMessage)(content=m["content"]) for m in messages]


def _default_llm_factory(model: str, temperature: float, max_tokens: int) -> ChatOpenAI:
    return ChatOpenAI(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=REQUEST_TIMEOUT_SECONDS,
        max_retries=0,
    )


class ModelClient:
    """Sends messages to the configured chat model, falling back along the chain."""

    def __init__(
        self,
        llm_factory: Optional[Callable[[str, float, int], object]] = None,
        default_temperature: float = 0.2,
        default_max_tokens: int = 3000,
    ):
        self._llm_factory = llm_factory or _default_llm_factory
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    def invoke(
        self,
        messages: list[dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        agent_name: str = "",
    ) -> ModelResult:
        temperature = self.default_temperature if temperature is None else temperature
        max_tokens = max_tokens or self.default_max_tokens
        lc_messages = to_langchain_messages(messages)

        last_error: Optional[Exception] = None
        chain = model_chain()
        for attempt in range(len(chain)):
            model = get_model(agent_name, attempt)
            if attempt > 0:
                MODEL_FALLBACKS.labels(model=model).inc()
                logger.warning(
                    f"[model_client] {agent_name}: retrying with fallback model '{model}' "
                    f"(attempt {attempt + 1}/{len(chain)})"
                )
            llm = self._llm_factory(model, temperature, max_tokens)
            try:
                response = traced_invoke(llm, lc_messages, agent_name, model)
            except Exception as e:
                last_error = e
                logger.error(f"[model_client] {agent_name}: API error on '{model}': {e}")
                continue

            content = extract_text_content(response.content)
            input_tokens, output_tokens = usage_tokens(response)
            tokens_used = input_tokens + output_tokens
            if not tokens_used:
                tokens_used = estimate_messages_tokens(messages) + estimate_tokens(content)
            TOKENS_USED.inc(tokens_used)
            return ModelResult(content=content, tokens_used=tokens_used, model_used=model)

        if last_error is not None and is_transient(last_error):
            raise TransientModelError(f"Model backend unavailable: {last_error}") from last_error
        raise ModelExhaustedError(f"All models in chain failed: {last_error}") from last_error
