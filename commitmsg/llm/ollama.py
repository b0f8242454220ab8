"""Ollama LLM Client for Local Models"""

import json
import urllib.error
import urllib.request

from commitmsg.llm.base import BackendRequest, LLMClient, LLMError
from commitmsg.llm.retry import post_json_with_retries


def _ollama_error_detail(body: str) -> str:
    """Ollama reports failures as {"error": "..."}."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return body


class OllamaClient(LLMClient):
    """Ollama chat client for local models. Requires: ollama serve"""

    DEFAULT_MODEL = "qwen2.5-coder:1.5b"
    DEFAULT_HOST = "http://localhost:11434"
    KEEP_ALIVE = "10m"

    def __init__(self, model: str | None = None, host: str | None = None, timeout: float = 20):
        self.model = model or self.DEFAULT_MODEL
        self.host = (host or self.DEFAULT_HOST).rstrip('/')
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"Ollama ({self.model})"

    def verify_connection(self) -> None:
        """Check if Ollama is running and accessible."""
        try:
            req = urllib.request.Request(f"{self.host}/api/tags")
            with urllib.request.urlopen(req, timeout=5):
                pass
        except (urllib.error.URLError, OSError):
            raise LLMError("Ollama not running. Start with: ollama serve")

    def is_model_loaded(self) -> bool:
        """Check if the model is currently loaded in memory."""
        try:
            req = urllib.request.Request(f"{self.host}/api/ps")
            with urllib.request.urlopen(req, timeout=5) as response:
                data = json.loads(response.read().decode('utf-8'))
        except (urllib.error.URLError, OSError, json.JSONDecodeError):
            return False
        loaded = [m.get('name', '') for m in data.get('models', [])]
        return any(self.model in name or name in self.model for name in loaded if name)

    def warmup(self) -> bool:
        """Pre-load the model with a one-token request. Returns True on success."""
        if self.is_model_loaded():
            return True
        payload = {
            "model": self.model,
            "prompt": "hi",
            "stream": False,
            "options": {"num_predict": 1},
            "keep_alive": self.KEEP_ALIVE,
        }
        try:
            post_json_with_retries(f"{self.host}/api/generate", payload, timeout=self.timeout, label="ollama")
        except LLMError:
            return False
        return True

    def complete(self, system_prompt: str, user_prompt: str, request: BackendRequest) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "keep_alive": self.KEEP_ALIVE,
            "options": {
                "temperature": request.temperature,
                "num_predict": request.max_output_tokens,
            },
        }
        try:
            data = post_json_with_retries(
                f"{self.host}/api/chat",
                payload,
                timeout=self.timeout,
                label="ollama",
                error_detail=_ollama_error_detail,
            )
        except LLMError as e:
            if "404" in str(e) and "not found" in str(e).lower():
                raise LLMError(f"Model '{self.model}' not found. Run: ollama pull {self.model}")
            raise

        content = (data.get("message") or {}).get("content") if isinstance(data, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise LLMError("ollama response missing content")
        return content.strip()
