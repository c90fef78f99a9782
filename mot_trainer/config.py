"""Configuration management for API keys and settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from mot_trainer.errors import ConfigurationError

# config.py is in mot_trainer/, .env is in project root
ENV_PATH = Path(__file__).parent.parent / ".env"

PROVIDERS = ("gemini", "groq", "ollama")


def load_env_file(path: Path = ENV_PATH) -> bool:
    """Load variables from the project .env file into the process environment."""
    if not path.exists():
        return False
    return load_dotenv(path, override=False)


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _parse_thresholds(raw: str) -> Tuple[int, int, int]:
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if len(parts) != 3:
        raise ConfigurationError(
            f"MOT_STAGE_THRESHOLDS needs three comma-separated integers, got {raw!r}"
        )
    try:
        values = tuple(int(p) for p in parts)
    except ValueError:
        raise ConfigurationError(f"MOT_STAGE_THRESHOLDS must be integers, got {raw!r}")
    return values  # type: ignore[return-value]


@dataclass(frozen=True)
class Settings:
    """Application settings, built once at startup and passed down explicitly."""

    provider: str = "gemini"

    # Gemini settings
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"

    # Groq settings (OpenAI-compatible chat completions)
    groq_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"
    groq_base_url: str = "https://api.groq.com/openai/v1"

    # Ollama settings (no API key needed, it's local)
    local_llm_url: str = "http://127.0.0.1:11434"
    local_llm_model: str = "gemma3:4b"

    timeout_seconds: float = 60.0
    stage_thresholds: Tuple[int, int, int] = (4, 8, 12)
    max_sessions: int = 100  # idle sessions beyond this are dropped, oldest first

    reply_temperature: float = 0.8
    coach_temperature: float = 0.7
    eval_temperature: float = 0.2

    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8010

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed
        """
        if env is None:
            env = os.environ

        def get(name: str, default: str = "") -> str:
            return (env.get(name) or default).strip()

        return cls(
            provider=get("MOT_PROVIDER", "gemini").lower(),
            gemini_api_key=get("GEMINI_API_KEY") or None,
            gemini_model=get("GEMINI_MODEL", cls.gemini_model),
            gemini_base_url=get("GEMINI_BASE_URL", cls.gemini_base_url).rstrip("/"),
            groq_api_key=get("GROQ_API_KEY") or None,
            groq_model=get("GROQ_MODEL", cls.groq_model),
            groq_base_url=get("GROQ_BASE_URL", cls.groq_base_url).rstrip("/"),
            local_llm_url=get("LOCAL_LLM_URL", cls.local_llm_url).rstrip("/"),
            local_llm_model=get("LOCAL_LLM_MODEL", cls.local_llm_model),
            timeout_seconds=_get_float(env, "LLM_TIMEOUT_SECONDS", cls.timeout_seconds),
            stage_thresholds=_parse_thresholds(get("MOT_STAGE_THRESHOLDS", "4,8,12")),
            max_sessions=_get_int(env, "MOT_MAX_SESSIONS", cls.max_sessions),
            reply_temperature=_get_float(env, "MOT_REPLY_TEMPERATURE", cls.reply_temperature),
            coach_temperature=_get_float(env, "MOT_COACH_TEMPERATURE", cls.coach_temperature),
            eval_temperature=_get_float(env, "MOT_EVAL_TEMPERATURE", cls.eval_temperature),
            log_level=get("LOG_LEVEL", cls.log_level).upper(),
            host=get("MOT_HOST", cls.host),
            port=_get_int(env, "MOT_PORT", cls.port),
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of missing or invalid settings."""
        problems = []

        if self.provider not in PROVIDERS:
            problems.append(f"MOT_PROVIDER must be one of {', '.join(PROVIDERS)} (got '{self.provider}')")

        # Check provider-specific requirements
        if self.provider == "gemini" and not self.gemini_api_key:
            problems.append("GEMINI_API_KEY (required when MOT_PROVIDER=gemini)")
        if self.provider == "groq" and not self.groq_api_key:
            problems.append("GROQ_API_KEY (required when MOT_PROVIDER=groq)")

        if self.timeout_seconds <= 0:
            problems.append("LLM_TIMEOUT_SECONDS must be positive")
        if self.max_sessions < 1:
            problems.append("MOT_MAX_SESSIONS must be at least 1")

        return problems

    def require_valid(self) -> "Settings":
        """Raise ConfigurationError listing every problem, or return self."""
        problems = self.validate()
        if problems:
            raise ConfigurationError("Invalid configuration: " + "; ".join(problems))
        return self
