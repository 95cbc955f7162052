"""Reconciler settings: retry bounds, remote paths and bootstrap location."""

import os
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from pool_reconciler.exceptions import ConfigurationError
from pool_reconciler.logging_config import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "POOL_RECONCILER_"
TOKEN_ENV_VAR = "DIGITALOCEAN_ACCESS_TOKEN"


class ReconcilerSettings(BaseModel):
    """Tunable bounds and locations used by the reconciliation phases."""

    master_attempts: int = 100
    master_interval: float = 5.0
    delete_attempts: int = 25
    delete_interval: float = 3.0
    delete_count_interval: float = 5.0
    overlay_address_path: str = "/tmp/.ip"
    overlay_config_path: str = "/tmp/clients.conf"
    bootstrap_dir: str = "bootstrap"

    @field_validator("master_attempts", "delete_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Validate retry bounds allow at least one attempt."""
        if v < 1:
            raise ValueError("attempt bounds must be at least 1")
        return v

    @field_validator("master_interval", "delete_interval", "delete_count_interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate sleep intervals are not negative."""
        if v < 0:
            raise ValueError("intervals cannot be negative")
        return v

    @classmethod
    def load(
        cls, path: str | Path | None = None, environ: dict | None = None
    ) -> "ReconcilerSettings":
        """Load settings from an optional YAML file plus environment overrides.

        Environment variables named ``POOL_RECONCILER_<FIELD>`` win over the file.

        Raises:
            ConfigurationError: If the file is unreadable or a value is invalid
        """
        import yaml

        environ = os.environ if environ is None else environ
        data: dict = {}

        if path is not None:
            path = Path(path)
            logger.debug(f"Reading reconciler settings from {path}")
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except FileNotFoundError:
                raise ConfigurationError(
                    f"Settings file not found: {path}",
                    f"Expected location: {path.absolute()}",
                )
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in settings file {path}", str(e))

        for field in cls.model_fields:
            env_name = f"{ENV_PREFIX}{field.upper()}"
            if env_name in environ:
                data[field] = environ[env_name]
                logger.debug(f"Setting {field} overridden by {env_name}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError("Invalid reconciler settings", str(e))


def get_api_token(token: str | None = None, environ: dict | None = None) -> str:
    """Return the provider API token from ``token`` or the environment.

    Raises:
        ConfigurationError: If no token is available
    """
    environ = os.environ if environ is None else environ
    token = token or environ.get(TOKEN_ENV_VAR, "")
    if not token:
        raise ConfigurationError(
            "No DigitalOcean API token configured",
            f"Set {TOKEN_ENV_VAR} or pass --token.",
        )
    return token
