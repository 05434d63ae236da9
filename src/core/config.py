"""Runtime configuration model for the lineage conductor.

This module owns all environment variable and config file parsing.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping, cast

from core.constants import DEFAULT_BOOTSTRAP_REGION, DEFAULT_TIMEOUT_SECONDS
from core.errors import ConductorConfigError, ConductorDependencyError

_FILE_KEYS = (
    "aws_profile",
    "aws_access_key_id",
    "aws_secret_access_key",
    "bootstrap_region",
    "allowed_regions",
    "default_timeout_seconds",
    "inventory_url",
    "inventory_user",
    "inventory_password",
    "inventory_account",
)


@dataclass(frozen=True)
class ConductorConfig:
    """Validated runtime configuration.

    Attributes:
        aws_profile: Optional AWS profile for boto3 session initialization.
        aws_access_key_id: Optional explicit access key id.
        aws_secret_access_key: Optional explicit secret access key.
        bootstrap_region: Region used to enumerate all other regions.
        allowed_regions: Optional allow-list restricting the region registry.
        default_timeout_seconds: Readiness wait budget for workflows.
        inventory_url: Base URL of the secondary inventory API.
        inventory_user: Inventory basic-auth user.
        inventory_password: Inventory basic-auth password.
        inventory_account: Inventory account number.
    """

    aws_profile: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    bootstrap_region: str = DEFAULT_BOOTSTRAP_REGION
    allowed_regions: tuple[str, ...] | None = None
    default_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    inventory_url: str | None = None
    inventory_user: str | None = None
    inventory_password: str | None = None
    inventory_account: str | None = None

    def __post_init__(self) -> None:
        _validate_credentials(self.aws_access_key_id, self.aws_secret_access_key)
        _validate_inventory(self)
        if self.default_timeout_seconds <= 0:
            raise ConductorConfigError(
                "Invalid timeout: expected a positive number of seconds, "
                f"got {self.default_timeout_seconds}."
            )

    @property
    def inventory_enabled(self) -> bool:
        """Whether the secondary inventory collaborator is configured."""
        return bool(self.inventory_url)

    @classmethod
    def from_env(cls) -> "ConductorConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConductorConfigError: If environment values are invalid.
        """
        return cls(**_env_values())

    @classmethod
    def from_file(cls, config_path: str) -> "ConductorConfig":
        """Build config from a YAML file layered over the environment.

        Args:
            config_path: Path to a YAML mapping keyed by config field names.

        Returns:
            A validated config object.

        Raises:
            ConductorConfigError: If the file is missing, malformed, or invalid.
        """
        payload = _load_yaml_mapping(config_path)
        unknown_keys = sorted(set(payload) - set(_FILE_KEYS))
        if unknown_keys:
            raise ConductorConfigError(
                f"Unsupported config keys in {config_path}: {', '.join(unknown_keys)}. "
                f"Supported keys: {', '.join(_FILE_KEYS)}."
            )
        values = _env_values()
        for key, value in payload.items():
            if key == "allowed_regions":
                values[key] = _coerce_regions(value)
            elif key == "default_timeout_seconds":
                values[key] = _parse_timeout(str(value))
            else:
                values[key] = None if value is None else str(value)
        return cls(**values)  # type: ignore[arg-type]


def _env_values() -> dict[str, object]:
    """Read raw config values from the process environment."""
    timeout_value = os.getenv("CONDUCTOR_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
    return {
        "aws_profile": os.getenv("CONDUCTOR_AWS_PROFILE"),
        "aws_access_key_id": os.getenv("CONDUCTOR_AWS_ACCESS_KEY_ID"),
        "aws_secret_access_key": os.getenv("CONDUCTOR_AWS_SECRET_ACCESS_KEY"),
        "bootstrap_region": os.getenv("CONDUCTOR_BOOTSTRAP_REGION", DEFAULT_BOOTSTRAP_REGION),
        "allowed_regions": _parse_regions(os.getenv("CONDUCTOR_REGIONS")),
        "default_timeout_seconds": _parse_timeout(timeout_value),
        "inventory_url": os.getenv("CONDUCTOR_INVENTORY_URL"),
        "inventory_user": os.getenv("CONDUCTOR_INVENTORY_USER"),
        "inventory_password": os.getenv("CONDUCTOR_INVENTORY_PASSWORD"),
        "inventory_account": os.getenv("CONDUCTOR_INVENTORY_ACCOUNT"),
    }


def _parse_timeout(raw_value: str) -> int:
    """Parse the timeout value.

    Args:
        raw_value: Raw string from environment or file.

    Returns:
        Parsed positive integer timeout.

    Raises:
        ConductorConfigError: If value is not a positive integer.
    """
    try:
        timeout = int(raw_value)
    except ValueError as error:
        raise ConductorConfigError(
            "Invalid CONDUCTOR_TIMEOUT_SECONDS value: "
            f"expected integer, got '{raw_value}'. "
            "Set CONDUCTOR_TIMEOUT_SECONDS to a number of seconds."
        ) from error
    if timeout <= 0:
        raise ConductorConfigError(
            f"Invalid CONDUCTOR_TIMEOUT_SECONDS value: expected a positive integer, got {timeout}."
        )
    return timeout


def _parse_regions(raw_value: str | None) -> tuple[str, ...] | None:
    if not raw_value:
        return None
    regions = tuple(item.strip() for item in raw_value.split(",") if item.strip())
    return regions or None


def _coerce_regions(value: object) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return _parse_regions(value)
    if isinstance(value, list):
        return tuple(str(item) for item in value) or None
    raise ConductorConfigError(
        f"Invalid allowed_regions value: expected list or comma string, got {type(value).__name__}."
    )


def _validate_credentials(access_key_id: str | None, secret_access_key: str | None) -> None:
    if bool(access_key_id) != bool(secret_access_key):
        raise ConductorConfigError(
            "AWS credentials are incomplete: set both CONDUCTOR_AWS_ACCESS_KEY_ID and "
            "CONDUCTOR_AWS_SECRET_ACCESS_KEY, or neither to use the default credential chain."
        )


def _validate_inventory(config: ConductorConfig) -> None:
    values = {
        "inventory_url": config.inventory_url,
        "inventory_user": config.inventory_user,
        "inventory_password": config.inventory_password,
        "inventory_account": config.inventory_account,
    }
    missing = [name for name, value in values.items() if not value]
    if missing and len(missing) < len(values):
        raise ConductorConfigError(
            f"Inventory configuration is incomplete: missing {', '.join(missing)}. "
            "Provide url, user, password and account together, or none of them."
        )


def _load_yaml_mapping(config_path: str) -> Mapping[str, object]:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise ConductorDependencyError(
            "Config file support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    config_file = Path(config_path).expanduser().resolve()
    if not config_file.exists():
        raise ConductorConfigError(
            f"Config file does not exist at {config_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(config_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise ConductorConfigError(
            f"Failed to read config at {config_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise ConductorConfigError(
            f"Failed to parse YAML config at {config_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConductorConfigError(
            f"Config at {config_file} must be a mapping of field names to values."
        )
    return cast(Mapping[str, object], payload)
