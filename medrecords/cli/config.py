#!/usr/bin/env python3
"""
Configuration Management Layer.

Provides centralized configuration with support for:
- Environment variables (MEDRECORDS_* prefix)
- Config files (./.medrecords.json or an explicit path)
- Command-line overrides
- Validated defaults

Configuration priority (highest to lowest):
1. Command-line overrides
2. Explicit config file
3. Project config file
4. Environment variables
5. Hardcoded defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".medrecords.json"
ENV_PREFIX = "MEDRECORDS_"


class AppConfig(BaseModel):
    """
    Central configuration for the patient records application.

    Data file paths default to files inside ``data_dir`` unless set
    explicitly.
    """

    # Directory and file paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the JSON data files"
    )
    users_file: Optional[Path] = Field(
        default=None,
        description="User accounts file (default: <data_dir>/users.json)"
    )
    patients_file: Optional[Path] = Field(
        default=None,
        description="Patient records file (default: <data_dir>/patients.json)"
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for rotating log files"
    )

    # Behavior settings
    app_title: str = Field(
        default="Patient Health System",
        min_length=1,
        description="Title shown at the top of every screen"
    )
    verbose: bool = Field(
        default=False,
        description="Log debug records (every dispatch)"
    )
    demo_patients: int = Field(
        default=10,
        ge=0,
        le=500,
        description="Number of random patients created by demo-data"
    )

    # Config metadata (not user-configurable)
    config_version: str = Field(
        default="1.0.0",
        description="Configuration schema version"
    )

    model_config = {
        "validate_assignment": True,
    }

    @field_validator("data_dir", "users_file", "patients_file", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v) -> Optional[Path]:
        """
        Resolve paths to absolute paths.
        Relative paths are resolved relative to current working directory.
        """
        if v is None:
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path.resolve()

    @model_validator(mode="after")
    def default_data_files(self):
        """Point unset data files at data_dir."""
        # object.__setattr__ skips validate_assignment, which would re-enter this validator
        if self.users_file is None:
            object.__setattr__(self, "users_file", self.data_dir / "users.json")
        if self.patients_file is None:
            object.__setattr__(self, "patients_file", self.data_dir / "patients.json")
        return self

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "AppConfig":
        """
        Load configuration from environment variables.

        Environment variable format: {prefix}{FIELD_NAME}
        Example: MEDRECORDS_VERBOSE=true, MEDRECORDS_DATA_DIR=/srv/records

        Args:
            prefix: Prefix for environment variables (default: "MEDRECORDS_")

        Returns:
            AppConfig instance with values from environment
        """
        config_dict = {}

        for field_name, field_info in cls.model_fields.items():
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            if field_info.annotation is bool:
                config_dict[field_name] = env_value.lower() in ("true", "1", "yes", "on")
            else:
                # pydantic coerces ints and paths from strings
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_file(cls, config_file: Path) -> "AppConfig":
        """
        Load configuration from JSON config file.

        Args:
            config_file: Path to JSON configuration file

        Returns:
            AppConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
            json.JSONDecodeError: If config file is invalid JSON
        """
        config_file = Path(config_file)

        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        with open(config_file, "r", encoding="utf-8") as f:
            config_dict = json.load(f)

        # Remove any comments or metadata fields that aren't part of the model
        config_dict = {k: v for k, v in config_dict.items() if k in cls.model_fields}

        return cls(**config_dict)

    def save(self, config_file: Path, pretty: bool = True) -> None:
        """
        Save current configuration to JSON file.

        Args:
            config_file: Path where to save configuration
            pretty: If True, format JSON with indentation
        """
        config_file = Path(config_file)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json")

        with open(config_file, "w", encoding="utf-8") as f:
            if pretty:
                json.dump(config_dict, f, indent=2, sort_keys=False)
                f.write("\n")
            else:
                json.dump(config_dict, f)

    def merge_with(self, **overrides) -> "AppConfig":
        """
        Create a new config with specified overrides.

        Data file paths that followed the old ``data_dir`` follow the new one.

        Args:
            **overrides: Field values to override

        Returns:
            New AppConfig instance with overrides applied
        """
        config_dict = self.model_dump()
        if "data_dir" in overrides:
            for name, filename in (("users_file", "users.json"), ("patients_file", "patients.json")):
                if name not in overrides and config_dict[name] == self.data_dir / filename:
                    config_dict[name] = None
        config_dict.update(overrides)
        return AppConfig(**config_dict)


def load_config_with_precedence(
    config_file: Optional[Path] = None,
    check_env: bool = True,
    check_project_config: bool = True,
    **overrides
) -> AppConfig:
    """
    Load configuration with proper precedence handling.

    Precedence (highest to lowest):
    1. Explicit overrides (**overrides)
    2. Specified config file (config_file parameter)
    3. Project-local config (./.medrecords.json)
    4. Environment variables (MEDRECORDS_*)
    5. Defaults

    Args:
        config_file: Explicit config file path
        check_env: Whether to load from environment variables
        check_project_config: Whether to check current directory for config
        **overrides: Direct field overrides (highest priority)

    Returns:
        AppConfig instance with merged configuration

    Raises:
        FileNotFoundError, json.JSONDecodeError, ValidationError:
            If the explicit config file is missing or invalid
    """
    config = AppConfig()

    if check_env:
        try:
            config = AppConfig.from_env()
        except (ValidationError, ValueError) as e:
            logger.warning(f"Ignoring invalid environment configuration: {e}")

    if check_project_config:
        project_config_path = Path.cwd() / PROJECT_CONFIG_NAME
        if project_config_path.exists():
            try:
                config = AppConfig.from_file(project_config_path)
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Ignoring unreadable project config {project_config_path}: {e}")

    if config_file is not None:
        config = AppConfig.from_file(config_file)

    if overrides:
        config = config.merge_with(**overrides)

    return config
