"""CLI Commands"""

import time

from commitmsg.config import Config, load_config, save_config, get_config_path
from commitmsg.llm import LLMError, OllamaClient
from commitmsg.output import bold, dim, info, print_success, print_error

_DISPLAY_FIELDS = (
    "provider", "model", "openai_mode", "conventional", "one_line", "emoji", "lang",
    "timeout_secs", "max_input_tokens", "max_output_tokens", "max_file_bytes",
    "max_file_lines", "max_files", "summary_concurrency", "temperature", "ignore",
)


def display_config(config: Config | None = None) -> int:
    """Display current configuration."""
    config = config or load_config()
    config_path = get_config_path()

    print(f"\n{bold('Current Configuration')}\n")

    if config_path:
        print(f"  {dim('Loaded from:')} {config_path}")
    else:
        print(f"  {dim('Loaded from:')} defaults (no .cmrc found)")

    print()
    print(f"  {bold('Settings:')}")
    width = max(len(name) for name in _DISPLAY_FIELDS) + 1
    for name in _DISPLAY_FIELDS:
        value = getattr(config, name)
        if value is None:
            value = 'auto' if name == 'model' else 'default'
        elif isinstance(value, bool):
            value = str(value).lower()
        print(f"    {(name + ':').ljust(width)} {info(str(value))}")

    print(f"\n  {dim('Config locations:')}")
    print("    Local:  .cmrc (in current directory)")
    print("    Global: ~/.cmrc")
    print(f"  {dim('Environment:')} CM_* variables override the file, e.g. CM_PROVIDER, CM_MODEL")
    print(f"\n  {dim('Run')} cm --setup {dim('to configure')}\n")

    return 0


def _ask_choice(prompt: str, choices: dict[str, str], default: str | None = None) -> str:
    while True:
        choice = input(prompt).strip()
        if choice == '' and default is not None:
            return default
        if choice in choices:
            return choices[choice]


def _ask_yes_no(prompt: str, default: bool) -> bool:
    answer = input(prompt).strip().lower()
    if not answer:
        return default
    return answer.startswith('y')


def run_setup() -> int:
    """Quick setup wizard."""
    current = load_config()
    display_config(current)
    print(f"{bold('Setup Wizard')}\n")

    print("Choose provider:\n")
    print("  1. Ollama (free, local)")
    print("  2. OpenAI API (paid)")
    print("  3. Auto-detect (Ollama first, then OpenAI)\n")
    provider = _ask_choice("Select [1/2/3]: ", {'1': 'ollama', '2': 'openai', '3': 'auto'})

    model = None
    if provider == 'ollama':
        print(f"\nRecommended: {OllamaClient.DEFAULT_MODEL}, llama3.2:3b, mistral:7b\n")
        model = input("Model (Enter for default): ").strip() or None
    elif provider == 'openai':
        print("\nRecommended: gpt-4o-mini, gpt-5-nano\n")
        model = input("Model (Enter for default): ").strip() or None

    conventional = _ask_yes_no("\nRequire Conventional Commits format? [Y/n]: ", True)
    one_line = _ask_yes_no("Subject line only, no body? [Y/n]: ", True)

    timeout_input = input(f"Time budget in seconds (Enter for {current.timeout_secs}): ").strip()
    timeout_secs = int(timeout_input) if timeout_input.isdigit() and int(timeout_input) > 0 else current.timeout_secs

    config = Config(
        provider=provider,
        model=model,
        conventional=conventional,
        one_line=one_line,
        timeout_secs=timeout_secs,
        ignore=list(current.ignore),
    )
    path = save_config(config, global_config=True)

    print_success(f"Saved to {path}")
    return 0


def run_warmup(config: Config) -> int:
    """Pre-load Ollama model into memory."""
    if config.provider == 'openai':
        print_error("--warmup only works with Ollama (local models)")
        return 1

    client = OllamaClient(model=config.model, host=config.ollama_host, timeout=config.timeout_secs)
    try:
        client.verify_connection()
    except LLMError as e:
        print_error(f"Failed to connect to Ollama: {e}")
        return 1

    if client.is_model_loaded():
        print_success(f"Model {bold(client.model)} is already loaded")
        return 0

    print(f"Loading {bold(client.model)}... ", end='', flush=True)
    start = time.time()
    loaded = client.warmup()
    elapsed = time.time() - start

    if loaded:
        print_success(f"ready! ({elapsed:.1f}s)")
        print(dim(f"Model will stay loaded for ~{OllamaClient.KEEP_ALIVE}"))
        return 0
    print_error("failed to load model")
    return 1
