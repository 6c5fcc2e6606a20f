"""Configuration management for AlignMatch."""

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from alignmatch.errors import ConfigurationError

# Default paths
DATA_DIR = Path(__file__).parent.parent / "data"
DEFAULT_SETTINGS_PATH = DATA_DIR / "settings.yaml"
DEFAULT_DB_PATH = DATA_DIR / "alignmatch.db"
ENGINE_LOG_PATH = DATA_DIR / "engine.log"
DEFAULT_EXPORT_PATH = DATA_DIR / "matches.json"

# Environment overrides
CONFIG_ENV_VAR = "ALIGNMATCH_CONFIG"
DATABASE_URL_ENV_VAR = "ALIGNMATCH_DATABASE_URL"


class DimensionWeights(BaseModel):
    """Weight of each compatibility dimension in the overall score (sums to 100)."""

    psychological: int = Field(25, ge=0, le=100)
    behavioral: int = Field(15, ge=0, le=100)
    values_vision: int = Field(20, ge=0, le=100)
    interests: int = Field(10, ge=0, le=100)
    lifestyle: int = Field(10, ge=0, le=100)
    dealbreakers: int = Field(15, ge=0, le=100)
    astrological: int = Field(5, ge=0, le=100)

    @model_validator(mode="after")
    def check_total(self) -> "DimensionWeights":
        total = sum(self.as_dict().values())
        if total != 100:
            raise ValueError(f"dimension weights must sum to 100, got {total}")
        return self

    def as_dict(self) -> Dict[str, int]:
        return self.model_dump()


class Settings(BaseModel):
    """Tunable parameters for scoring and batch generation."""

    database_url: Optional[str] = Field(
        None, description="SQLAlchemy URL; defaults to data/alignmatch.db"
    )
    algorithm_version: str = Field("2.0", description="Stamped on every Match row")
    weights: DimensionWeights = Field(default_factory=DimensionWeights)

    # Scoring
    extraction_confidence_threshold: float = Field(0.5, ge=0.0, le=1.0)
    dealbreaker_penalty: int = Field(
        25, ge=0, le=100, description="Points deducted from overall per listed dealbreaker"
    )
    min_poll_sample: int = Field(3, ge=1, description="Shared polls needed before agreement counts")

    # Generation
    min_overall_score: int = Field(70, ge=0, le=100)
    weekly_cap: int = Field(2, ge=0, description="Default max new matches per user per window")
    quota_window_days: int = Field(7, ge=1)
    max_workers: int = Field(4, ge=1, description="Parallel per-user pipelines")
    respect_user_preferences: bool = True

    def resolved_database_url(self) -> str:
        """Return the database URL, honouring the environment override."""
        env_url = os.environ.get(DATABASE_URL_ENV_VAR)
        if env_url:
            return env_url
        if self.database_url:
            return self.database_url
        return f"sqlite:///{DEFAULT_DB_PATH}"


def ensure_data_dir() -> None:
    """Ensure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Optional path to the settings file. Falls back to the
            ALIGNMATCH_CONFIG environment variable, then data/settings.yaml.

    Returns:
        Settings instance. Returns defaults if the file doesn't exist.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else DEFAULT_SETTINGS_PATH

    if not path.exists():
        return Settings()

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from e


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """Save settings to a YAML file.

    Args:
        settings: Settings instance to save.
        path: Optional path to save to. Defaults to data/settings.yaml.

    Returns:
        Path where settings were saved.
    """
    if path is None:
        path = DEFAULT_SETTINGS_PATH

    path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(mode="json", exclude_none=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    return path
