"""LLM Client Package"""

from commitmsg.config import Config
from commitmsg.llm.base import BackendRequest, LLMClient, LLMError, LLMTimeout
from commitmsg.llm.ollama import OllamaClient
from commitmsg.llm.openai import (
    OpenAIChatClient,
    OpenAIResponsesClient,
    resolve_openai_mode,
)


def _openai_client(config: Config) -> LLMClient:
    client_class = {
        "chat": OpenAIChatClient,
        "responses": OpenAIResponsesClient,
    }[resolve_openai_mode(config.model or OpenAIChatClient.DEFAULT_MODEL, config.openai_mode)]
    return client_class(
        api_key=config.openai_api_key,
        model=config.model,
        base_url=config.openai_base_url,
        timeout=config.timeout_secs,
    )


def _ollama_client(config: Config) -> LLMClient:
    client = OllamaClient(model=config.model, host=config.ollama_host, timeout=config.timeout_secs)
    client.verify_connection()
    return client


PROVIDERS = {
    "openai": _openai_client,
    "ollama": _ollama_client,
}

AUTO_DETECT_ORDER = ["ollama", "openai"]


def get_client(config: Config) -> LLMClient:
    """Build the configured client. Provider can be 'openai', 'ollama', or 'auto'."""
    provider = config.provider
    if provider in PROVIDERS:
        return PROVIDERS[provider](config)

    if provider == "auto":
        for name in AUTO_DETECT_ORDER:
            try:
                return PROVIDERS[name](config)
            except LLMError:
                continue

        raise LLMError(
            "No LLM provider available.\n\n"
            "Option 1 - Use Ollama (free, local):\n"
            "  1. Install: https://ollama.ai\n"
            "  2. Start: ollama serve\n"
            f"  3. Pull: ollama pull {OllamaClient.DEFAULT_MODEL}\n\n"
            "Option 2 - Use the OpenAI API:\n"
            "  export OPENAI_API_KEY='your-key-here'"
        )

    raise LLMError(f"Unknown provider: {provider}. Use 'openai', 'ollama', or 'auto'.")


__all__ = [
    "BackendRequest",
    "LLMClient",
    "LLMError",
    "LLMTimeout",
    "OllamaClient",
    "OpenAIChatClient",
    "OpenAIResponsesClient",
    "get_client",
    "resolve_openai_mode",
    "PROVIDERS",
]
