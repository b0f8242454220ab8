"""OpenAI-compatible LLM Clients (chat completions and responses APIs)"""

from loguru import logger

from commitmsg.llm.base import BackendRequest, LLMClient, LLMError
from commitmsg.llm.retry import is_unsupported_param, post_json_with_retries


def is_gpt5_model(model: str) -> bool:
    return model.strip().lower().startswith("gpt-5")


def resolve_openai_mode(model: str, mode: str) -> str:
    """gpt-5 models only speak the responses API; 'auto' means chat otherwise."""
    if is_gpt5_model(model):
        return "responses"
    if mode in ("chat", "responses"):
        return mode
    return "chat"


def parse_chat_output(data: dict) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content.strip():
        logger.debug("openai chat response missing content: {}", data)
        raise LLMError("openai response missing content")
    return content.strip()


def parse_responses_output(data: dict) -> str:
    if not isinstance(data, dict):
        raise LLMError("openai response is not a JSON object")
    text = data.get("output_text")
    if isinstance(text, str) and text.strip():
        return text.strip()

    collected = []
    for item in data.get("output") or []:
        if not isinstance(item, dict):
            continue
        for part in item.get("content") or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                collected.append(part["text"])

    joined = "".join(collected).strip()
    if joined:
        return joined
    logger.debug("openai responses output missing text: {}", data)
    raise LLMError("openai response missing output text")


class _OpenAIClient(LLMClient):
    """Shared auth and transport for both OpenAI API styles."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    LABEL = "openai"

    def __init__(self, api_key: str | None, model: str | None = None,
                 base_url: str | None = None, timeout: float = 20):
        if not api_key:
            raise LLMError(
                "OpenAI API key is missing. Set OPENAI_API_KEY environment variable:\n"
                "  export OPENAI_API_KEY='your-key-here'"
            )
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip('/')
        self.timeout = timeout

    @property
    def is_gpt5(self) -> bool:
        return is_gpt5_model(self.model)

    def _temperature_for(self, request: BackendRequest) -> float | None:
        return None if self.is_gpt5 else request.temperature

    def _post(self, path: str, payload: dict) -> dict:
        return post_json_with_retries(
            f"{self.base_url}/{path}",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            label=self.LABEL,
        )


class OpenAIChatClient(_OpenAIClient):
    """Chat completions: messages in, choices[0].message.content out."""

    @property
    def name(self) -> str:
        return f"OpenAI chat ({self.model})"

    def build_payload(self, system_prompt: str, user_prompt: str,
                      max_tokens: int, temperature: float | None) -> dict:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        return payload

    def complete(self, system_prompt: str, user_prompt: str, request: BackendRequest) -> str:
        temperature = self._temperature_for(request)
        payload = self.build_payload(system_prompt, user_prompt, request.max_output_tokens, temperature)
        try:
            data = self._post("chat/completions", payload)
        except LLMError as e:
            if temperature is None or not is_unsupported_param(e, "temperature"):
                raise
            logger.debug("{} rejected temperature; resending without it", self.model)
            payload = self.build_payload(system_prompt, user_prompt, request.max_output_tokens, None)
            data = self._post("chat/completions", payload)
        return parse_chat_output(data)


class OpenAIResponsesClient(_OpenAIClient):
    """Responses API: typed input parts in, output_text (or output[]) out."""

    TOKEN_PARAM = "max_output_tokens"
    ALT_TOKEN_PARAM = "max_completion_tokens"

    @property
    def name(self) -> str:
        return f"OpenAI responses ({self.model})"

    def build_payload(self, system_prompt: str, user_prompt: str, temperature: float | None) -> dict:
        payload = {
            "model": self.model,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": system_prompt}]},
                {"role": "user", "content": [{"type": "input_text", "text": user_prompt}]},
            ],
        }
        if self.is_gpt5:
            payload["reasoning"] = {"effort": "minimal"}
            payload["text"] = {"format": {"type": "text"}}
        if temperature is not None:
            payload["temperature"] = temperature
        return payload

    def _complete_with_token_param(self, base: dict, max_tokens: int) -> str:
        try:
            data = self._post("responses", {**base, self.TOKEN_PARAM: max_tokens})
        except LLMError as e:
            if not is_unsupported_param(e, self.TOKEN_PARAM):
                raise
            logger.debug("{} rejected {}; using {}", self.model, self.TOKEN_PARAM, self.ALT_TOKEN_PARAM)
            data = self._post("responses", {**base, self.ALT_TOKEN_PARAM: max_tokens})
        return parse_responses_output(data)

    def complete(self, system_prompt: str, user_prompt: str, request: BackendRequest) -> str:
        temperature = self._temperature_for(request)
        base = self.build_payload(system_prompt, user_prompt, temperature)
        try:
            return self._complete_with_token_param(base, request.max_output_tokens)
        except LLMError as e:
            if temperature is None or not is_unsupported_param(e, "temperature"):
                raise
            logger.debug("{} rejected temperature; resending without it", self.model)
            base = self.build_payload(system_prompt, user_prompt, None)
            return self._complete_with_token_param(base, request.max_output_tokens)
