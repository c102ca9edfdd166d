"""Error taxonomy for the planning pipeline."""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class RequestValidationError(PipelineError):
    """Malformed request, rejected before the pipeline starts. Never retried."""


class ModelInvocationError(PipelineError):
    """A call to the generative-model backend failed."""

    # Tokens already spent by the failing node before this error was raised
    tokens_used: int = 0


class TransientModelError(ModelInvocationError):
    """Timeout, rate limit, or network failure. Retried with backoff."""


class ModelExhaustedError(ModelInvocationError):
    """No usable model or credential remains in the fallback chain."""


class BudgetExceededError(PipelineError):
    """The step or retry budget of a run is spent. Never retried."""


def analyze_error(error: str) -> dict[str, object]:
    """Classify a recorded error message for logging and retry decisions.

    Returns a dict with ``recoverable`` (bool), ``action``
    ("retry" | "skip" | "fail") and a short ``reason``.
    """
    lower = error.lower()

    if any(k in lower for k in ("timeout", "timed out", "network", "rate limit", "503", "502")):
        return {"recoverable": True, "action": "retry", "reason": "Transient network/API error"}

    if "json" in lower or "parse" in lower:
        return {"recoverable": True, "action": "retry", "reason": "Response format issue"}

    if any(k in lower for k in ("auth", "401", "403", "forbidden")):
        return {"recoverable": False, "action": "fail", "reason": "Authentication/authorization error"}

    if any(k in lower for k in ("max", "exceeded", "invalid")):
        return {"recoverable": False, "action": "skip", "reason": "Validation or limit error"}

    return {"recoverable": True, "action": "retry", "reason": "Unknown error, attempting recovery"}


def is_recoverable(exc: Exception) -> bool:
    """False when a retry cannot help: no model left, or credentials rejected."""
    if isinstance(exc, ModelExhaustedError):
        return False
    return analyze_error(str(exc))["action"] != "fail"
