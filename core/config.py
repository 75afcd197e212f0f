import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigError

# --- Base Path ---
BASE_DIR = Path(__file__).resolve().parent.parent
logger = logging.getLogger(__name__)

# --- Environment-based Settings ---

class AppSettings(BaseSettings):
    """
    Main application settings loaded from environment variables.
    The .env file is loaded automatically by pydantic-settings.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- General & Core ---
    LOG_LEVEL: str = Field("INFO", description="Log level for the application (e.g., DEBUG, INFO, WARNING, ERROR)")
    LOG_FILE: Optional[str] = Field(None, description="Optional: Path of the rotating JSON log file.")
    ROUTING_CONFIG_PATH: Optional[str] = Field(None, description="Optional: Path to a YAML file overriding the default routes.")
    REQUEST_TIMEOUT: float = Field(300.0, description="Per-call timeout in seconds for backend requests.")
    OUTPUT_LANGUAGE: str = Field("Chinese", description="Language generated content is written in.")

    # --- Ollama / Local LLMs ---
    OLLAMA_HOST: str = Field("http://localhost:11434", description="The full URL of your Ollama server.")
    DEFAULT_LOCAL_MODEL: Optional[str] = Field("qwen2.5:7b", description="Local model registered as the first route candidate.")
    EMBEDDING_MODEL: str = Field("nomic-embed-text", description="Ollama model used for embeddings.")
    EMBEDDING_DIMENSIONS: int = Field(768)

    # --- Anthropic ---
    CLAUDE_ENABLED: bool = Field(False)
    ANTHROPIC_API_KEY: Optional[str] = Field(None)
    CLAUDE_DEFAULT_MODEL: str = Field("claude-3-5-sonnet-20241022")

    # --- OpenAI ---
    OPENAI_ENABLED: bool = Field(False)
    OPENAI_API_KEY: Optional[str] = Field(None)
    OPENAI_DEFAULT_MODEL: str = Field("gpt-4o")

# --- YAML-based Configuration Models ---

class RoutingConfig(BaseModel):
    """Task kind -> ordered adapter names. Tasks left out keep their default route."""
    routes: Dict[str, List[str]] = Field(default_factory=dict)


def load_routing_config(path: Optional[str] = None) -> Optional[RoutingConfig]:
    """Loads and validates the routing YAML file at ``path``.

    Returns None when no path is given or the file does not exist, leaving
    the default routes in place.
    """
    if not path:
        return None
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Routing config '{config_path}' not found, using default routes")
        return None
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        return RoutingConfig.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Invalid routing config {config_path}: {e}") from e

# --- Global Settings Instance ---
_settings_instance: Optional[AppSettings] = None

def get_settings() -> AppSettings:
    """
    Returns a singleton instance of the settings object.
    This function controls when the settings are loaded and validated,
    making the application more testable.
    """
    global _settings_instance
    if _settings_instance is None:
        try:
            _settings_instance = AppSettings()
        except ValidationError as e:
            raise ConfigError(f"Configuration validation error: {e}") from e
    return _settings_instance


def reset_settings() -> None:
    """Drops the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None
