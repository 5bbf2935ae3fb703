import copy
import json
import os
from pathlib import Path

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "ragpilot.json"

DEFAULT_CONFIG: dict = {
    "log_level": "INFO",
    "log_file": None,
    "storage_dir": "~/.ragpilot",
    "embedding_model": "BAAI/bge-base-en-v1.5",
    "chunk_size": 100,
    "chunk_overlap": 20,
    "top_k": 5,
    "include_patterns": [
        "*.ts", "*.js", "*.tsx", "*.jsx",
        "*.py", "*.java", "*.cpp", "*.c", "*.h", "*.cs",
        "*.go", "*.rs", "*.rb", "*.php", "*.swift",
        "*.md", "*.txt", "*.json", "*.yaml", "*.yml",
    ],
    "exclude_patterns": ["**/node_modules/**", "**/.git/**"],
    "max_file_bytes": 1_000_000,
    "prompt_dirs": [".github/prompts", ".ragpilot/prompts"],
    "max_tool_rounds": 15,
    "llm": {
        "model": "gpt-4o",
        "base_url": None,
        "api_key": None,
        "max_tokens": 4096,
        "temperature": 0.2,
    },
}

_ENV_OVERRIDES = {
    "RAGPILOT_STORAGE_DIR": ("storage_dir",),
    "RAGPILOT_EMBEDDING_MODEL": ("embedding_model",),
    "RAGPILOT_LLM_BASE_URL": ("llm", "base_url"),
    "RAGPILOT_LLM_MODEL": ("llm", "model"),
    "RAGPILOT_LOG_FILE": ("log_file",),
}


def load_config(path: str | Path | None = None) -> dict:
    """Build the application configuration.

    Starts from DEFAULT_CONFIG, merges a JSON file (ragpilot.json in the
    current directory unless ``path`` is given) and finally applies
    RAGPILOT_* environment overrides.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_FILE)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            file_config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("Could not load %s: %s (using defaults)", config_path, e)
        file_config = {}

    if isinstance(file_config, dict):
        llm_overrides = file_config.pop("llm", None)
        config.update(file_config)
        if isinstance(llm_overrides, dict):
            config["llm"].update(llm_overrides)
    else:
        logger.warning("Ignoring %s: expected a JSON object", config_path)

    for env_var, keys in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is None:
            continue
        target = config
        for key in keys[:-1]:
            target = target[key]
        target[keys[-1]] = value

    if os.getenv("RAGPILOT_LOG_LEVEL"):
        config["log_level"] = os.getenv("RAGPILOT_LOG_LEVEL").upper()

    config["verbose"] = config["log_level"] == "DEBUG"
    return config


def storage_dir(config: dict) -> Path:
    """Resolve the directory holding the index, registry and repo checkouts."""
    return Path(config["storage_dir"]).expanduser().resolve()
