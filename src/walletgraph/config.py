from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from walletgraph import log

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class WalletGraphConfig(BaseModel):
    """Deployment settings of the API layer.

    Args:
        dropzone_users: Ids of the users in the dropzone cohort
        max_page_size: Upper bound for ``first``/``last`` on connections, None for no bound
        log_level: Level of the ``walletgraph`` logger
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    dropzone_users: list[str] = Field(default_factory=list, alias="dropzoneUsers")
    max_page_size: int | None = Field(None, alias="maxPageSize", ge=1)
    log_level: str = Field("INFO", alias="logLevel")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{value}', expected one of {list(LOG_LEVELS)}")
        return level

    @property
    def dropzone_cohort(self) -> frozenset[str]:
        return frozenset(self.dropzone_users)


def load_config(config_path: Path | None) -> WalletGraphConfig:
    """
    Load and validate the configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None for the defaults.

    Returns:
        A validated WalletGraphConfig.

    Raises:
        OSError: If the file cannot be read.
        yaml.YAMLError: If the file is not valid YAML.
        TypeError: If the YAML root is not a mapping.
        ValidationError: If validation against WalletGraphConfig fails.
    """
    if config_path is None:
        log.debug("No config file provided, using defaults")
        return WalletGraphConfig()

    raw: Any
    with config_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    log.debug("Loaded config from %s", config_path)

    # Treat empty file or explicit YAML null as "defaults"
    if raw is None or raw == {}:
        return WalletGraphConfig()

    if not isinstance(raw, dict):
        raise TypeError(f"Config root must be a mapping (YAML object), got {type(raw).__name__}")

    return WalletGraphConfig.model_validate(cast(dict[str, Any], raw))
