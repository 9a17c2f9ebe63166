import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from prsift_core.errors import ConfigurationError
from prsift_core.prompts import REVIEW_PROMPT
from prsift_core.quality import DEFAULT_JUDGE_MODEL, DEFAULT_MIN_SCORE, QUALITY_RUBRIC, JudgeConfig

PROVIDERS = ("claude", "gemini")

DEFAULT_CONFIG: dict = {
    "provider": "claude",
    "review_model": None,  # None = the provider's default model
    "dry_run": False,
    "judge": False,
    "judge_model": DEFAULT_JUDGE_MODEL,
    "judge_min_score": DEFAULT_MIN_SCORE,
    "timeout": None,  # seconds for the whole run; None = no deadline
    "max_tool_turns": 20,
}


@dataclass(frozen=True)
class ReviewSettings:
    """Immutable per-run settings handed to ReviewPipeline."""

    provider: str = "claude"
    dry_run: bool = False
    judge: JudgeConfig = field(default_factory=JudgeConfig)
    prompt_template: str = REVIEW_PROMPT
    rubric: str = QUALITY_RUBRIC
    review_model: Optional[str] = None
    timeout: Optional[float] = None
    max_tool_turns: int = 20


def load_config(config_path: str = ".prsift.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prsift.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")

    return config


def build_settings(config: dict) -> ReviewSettings:
    """Validate a merged config mapping and freeze it into ReviewSettings."""
    provider = config.get("provider", "claude")
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown provider: {provider!r}. Choose 'claude' or 'gemini'.")

    try:
        min_score = float(config.get("judge_min_score", DEFAULT_MIN_SCORE))
    except (TypeError, ValueError):
        raise ConfigurationError(f"judge_min_score must be a number, got {config.get('judge_min_score')!r}")
    if not 0.0 <= min_score <= 1.0:
        raise ConfigurationError(f"judge_min_score must be between 0.0 and 1.0, got {min_score}")

    timeout = config.get("timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(f"timeout must be a number of seconds, got {timeout!r}")
        if timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")

    return ReviewSettings(
        provider=provider,
        dry_run=bool(config.get("dry_run", False)),
        judge=JudgeConfig(
            enabled=bool(config.get("judge", False)),
            model=config.get("judge_model") or DEFAULT_JUDGE_MODEL,
            min_score=min_score,
        ),
        review_model=config.get("review_model"),
        timeout=timeout,
        max_tool_turns=int(config.get("max_tool_turns", 20)),
    )


def require_credentials(config: dict, settings: ReviewSettings) -> None:
    """Raise ConfigurationError when a key needed by this run is missing."""
    if not config.get("github_token"):
        raise ConfigurationError("GITHUB_TOKEN environment variable is not set.")
    needed = {settings.provider}
    if settings.judge.enabled:
        needed.add("claude" if settings.judge.model.startswith("claude") else "gemini")
    if "claude" in needed and not config.get("anthropic_api_key"):
        raise ConfigurationError("ANTHROPIC_API_KEY environment variable is not set.")
    if "gemini" in needed and not config.get("gemini_api_key"):
        raise ConfigurationError("GEMINI_API_KEY environment variable is not set.")
