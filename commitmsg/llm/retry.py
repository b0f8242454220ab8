"""HTTP transport with retry/backoff shared by every backend client."""

import http.client
import json
import random
import socket
import time
import urllib.error
import urllib.request

from loguru import logger

from commitmsg.llm.base import LLMError

MAX_ATTEMPTS = 3
BASE_DELAY_MS = 200
MAX_DELAY_MS = 2000


def should_retry(status: int) -> bool:
    """429, request-timeout and any 5xx are worth another attempt."""
    return status == 429 or status == 408 or 500 <= status < 600


def backoff_delay(attempt: int, base_delay_ms: int = BASE_DELAY_MS, max_delay_ms: int = MAX_DELAY_MS) -> float:
    """Seconds to wait before retrying after the given 0-based attempt."""
    base = min(base_delay_ms * (2 ** attempt), max_delay_ms)
    jitter = random.randint(0, base_delay_ms)
    return (base + jitter) / 1000


def _sleep_for_retry(seconds: float) -> None:
    """Sleep helper for retry delays (wrapped for deterministic tests)."""
    time.sleep(seconds)


def is_unsupported_param(error: Exception, param: str) -> bool:
    """True when the backend rejected a request because of the named field."""
    message = str(error).lower()
    return (
        ("unsupported_parameter" in message or "unsupported parameter" in message)
        and param.lower() in message
    )


def _read_error_body(error: urllib.error.HTTPError) -> str:
    try:
        return error.read().decode('utf-8', errors='replace')
    except (OSError, http.client.HTTPException):
        return ""


def post_json_with_retries(
    url: str,
    payload: dict,
    *,
    headers: dict | None = None,
    timeout: float = 30,
    label: str = "llm",
    error_detail=None,
) -> dict:
    """POST a JSON payload and decode the JSON reply.

    Retries on retryable statuses and network failures, up to MAX_ATTEMPTS.
    Any other HTTP error is terminal. `error_detail` may turn an error body
    into a friendlier message.
    """
    data = json.dumps(payload).encode('utf-8')
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    last_error: LLMError | None = None

    for attempt in range(MAX_ATTEMPTS):
        req = urllib.request.Request(url, data=data, headers=request_headers, method="POST")
        try:
            with urllib.request.urlopen(req, timeout=timeout) as response:
                body = response.read().decode('utf-8', errors='replace')
            try:
                reply = json.loads(body)
            except json.JSONDecodeError:
                raise LLMError(f"{label} returned invalid JSON")
            if not isinstance(reply, dict):
                raise LLMError(f"{label} returned non-object JSON")
            return reply
        except urllib.error.HTTPError as e:
            body = _read_error_body(e)
            detail = error_detail(body) if error_detail else body
            err = LLMError(f"{label} error {e.code}: {detail or e.reason}")
            if not should_retry(e.code):
                raise err
            last_error = err
        except (urllib.error.URLError, socket.timeout, http.client.HTTPException, ConnectionError) as e:
            reason = getattr(e, "reason", e)
            last_error = LLMError(f"{label} request failed: {reason}")

        if attempt + 1 < MAX_ATTEMPTS:
            delay = backoff_delay(attempt)
            logger.debug("{} attempt {} failed ({}); retrying in {:.2f}s", label, attempt + 1, last_error, delay)
            _sleep_for_retry(delay)

    raise last_error or LLMError(f"{label} request failed")
