"""Configuration loader and settings helpers for Hotel_Curator."""

import base64
import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)
from pydantic import (
    ValidationError as PydanticValidationError,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError

ENV_PREFIX = "CURATOR_"

logger = logging.getLogger(__name__)


def load_yaml_config(config_path: str | Path) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If file not found or invalid YAML
    """
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
            return config if config else {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {config_path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc


def _coerce_code_list(value: Any, *, upper: bool = True) -> list[str]:
    """Accept comma-separated strings or iterables and return cleaned entries."""

    if value is None:
        return []
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, list | tuple | set):
        items = [str(item).strip() for item in value]
    else:
        raise ValueError("expected a comma-separated string or a list of strings")
    cleaned = [item for item in items if item]
    return [item.upper() for item in cleaned] if upper else cleaned


class AWSSettings(BaseModel):
    """AWS-specific configuration options derived from global settings."""

    model_config = ConfigDict(extra="forbid")

    region: str | None = None


class DatabasePoolSettings(BaseModel):
    """Connection pooling configuration for the SQLAlchemy engine."""

    model_config = ConfigDict(extra="forbid")

    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    recycle_seconds: int = Field(default=1800, ge=0)
    pre_ping: bool = True


class SecretsManagerSettings(BaseModel):
    """AWS Secrets Manager integration settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    secret_name: str | None = None
    region: str | None = None
    profile: str | None = None
    endpoint_url: str | None = None
    overwrite_env: bool = False
    required_env: list[str] = Field(default_factory=list)


class VendorSettings(BaseModel):
    """Connection settings for the hotel-inventory vendor API."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = "https://api.wanderbeds.com"
    username: str | None = None
    password: SecretStr | None = None
    default_timeout_ms: int = Field(default=15000, gt=0)
    max_timeout_hint_seconds: int = Field(default=120, gt=0)
    catalog_timeout_ms: int = Field(default=60000, gt=0)
    search_timeout_ms: int = Field(default=30000, gt=0)
    default_retries: int = Field(default=2, ge=0)
    retry_base_delay_seconds: float = Field(default=0.2, ge=0)
    retry_jitter_seconds: float = Field(default=0.05, ge=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class SearchSettings(BaseModel):
    """Defaults for the search orchestrator."""

    model_config = ConfigDict(extra="forbid")

    sweep_enabled: bool = False
    fallback_nationalities: list[str] = Field(default_factory=lambda: ["GB", "US", "PH"])
    timeout_hint: str = "20"
    retries: int = Field(default=1, ge=0)

    @field_validator("fallback_nationalities", mode="before")
    @classmethod
    def _parse_codes(cls, value: Any) -> list[str]:
        return _coerce_code_list(value)


class CurationSettings(BaseModel):
    """Sampling limits, budgets and trigger policy for curated seeding."""

    model_config = ConfigDict(extra="forbid")

    stream_countries: list[str] = Field(
        default_factory=lambda: ["AE", "GB", "US", "CH", "PT", "FR", "ES", "IT"]
    )
    per_country_limit: int = Field(default=40, ge=1)
    overall_limit: int = Field(default=250, ge=1)
    hard_timeout_ms: int = Field(default=120000, gt=0)
    first_batch_size: int = Field(default=20, ge=1)
    batch_size: int = Field(default=200, ge=1)

    countries: list[str] = Field(
        default_factory=lambda: ["AE", "US", "CH", "FR", "GB", "IT", "ES"]
    )
    cities: list[str] = Field(
        default_factory=lambda: [
            "Dubai",
            "Abu Dhabi",
            "Aspen",
            "Miami",
            "New York",
            "London",
            "Paris",
            "St. Moritz",
            "Zurich",
            "Milan",
            "Ibiza",
        ]
    )
    min_stars: float = Field(default=4, ge=0)
    limit_per_city: int = Field(default=30, ge=1)
    limit_total: int = Field(default=200, ge=1)
    require_geo: bool = True
    enrich_details: bool = True
    max_runtime_ms: int = Field(default=480000, gt=0)
    first_write_batch: int = Field(default=10, ge=1)
    write_batch: int = Field(default=500, ge=1)
    enrich_chunk_size: int = Field(default=20, ge=1)

    trigger_cooldown_seconds: int = Field(default=300, ge=0)
    ready_threshold: int = Field(default=80, ge=1)
    schedule_min_entries: int = Field(default=120, ge=1)
    run_stale_seconds: int = Field(default=900, gt=0)

    cache_ttl_hours: float = Field(default=24, gt=0)
    warm_countries: list[str] = Field(default_factory=lambda: ["US", "AE", "GB"])

    @field_validator("stream_countries", "countries", "warm_countries", mode="before")
    @classmethod
    def _parse_countries(cls, value: Any) -> list[str]:
        return _coerce_code_list(value)

    @field_validator("cities", mode="before")
    @classmethod
    def _parse_cities(cls, value: Any) -> list[str]:
        return _coerce_code_list(value, upper=False)


class ServiceConfiguration(BaseModel):
    """Validated runtime configuration merged from base and environment overrides."""

    version: int = Field(default=1, ge=1)
    environment: str = "development"
    required_env: list[str] = Field(default_factory=list)
    secrets_manager: SecretsManagerSettings = Field(default_factory=SecretsManagerSettings)

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return value.lower()


class GlobalSettings(BaseSettings):
    """Global application settings sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    config_profile: str | None = None
    log_level: str = "INFO"
    redis_url: str | None = None
    database_url: str | None = None
    database: DatabasePoolSettings = DatabasePoolSettings()
    config_dir: Path = Path("config")
    aws: AWSSettings = AWSSettings()
    secrets_manager: SecretsManagerSettings = SecretsManagerSettings()
    api_keys: list[str] = Field(default_factory=list)
    vendor: VendorSettings = VendorSettings()
    search: SearchSettings = SearchSettings()
    curation: CurationSettings = CurationSettings()

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Ensure log level values are uppercase for logging config."""

        return value.upper()

    @field_validator("api_keys", mode="before")
    @classmethod
    def _parse_api_keys(cls, value: Any) -> list[str]:
        """Support comma-separated strings or iterables for API key configuration."""

        try:
            return _coerce_code_list(value, upper=False)
        except ValueError as exc:
            raise ValueError(
                "api_keys must be a comma-separated string or iterable of strings"
            ) from exc

    @field_validator("config_dir", mode="before")
    @classmethod
    def _expand_paths(cls, value: Any) -> Any:
        """Allow string paths and expand user markers."""

        if isinstance(value, Path):
            return value
        if isinstance(value, str):
            return Path(value).expanduser()
        return value

    @field_validator("config_profile", mode="before")
    @classmethod
    def _normalize_config_profile(cls, value: Any) -> Any:
        if value is None:
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError("config_profile must be a non-empty string if provided")
        return value.strip().lower()


def _deep_merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries without mutating the inputs."""

    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


@lru_cache(maxsize=8)
def _load_service_configuration_cached(config_dir: str, profile: str) -> ServiceConfiguration:
    """Load and cache the service configuration for a given profile."""

    directory = Path(config_dir)
    base_path = directory / "settings.base.yaml"
    if not base_path.exists():
        logger.debug("No base configuration template at '%s'; using defaults", base_path)
        return ServiceConfiguration(environment=profile)

    base_config = load_yaml_config(base_path)

    profile_path = directory / f"settings.{profile}.yaml"
    profile_config: dict[str, Any] = {}
    if profile_path.exists():
        profile_config = load_yaml_config(profile_path)
    else:
        logger.debug("No configuration override found for profile '%s'", profile)

    merged = _deep_merge_dicts(base_config, profile_config)
    merged.setdefault("environment", profile)

    try:
        return ServiceConfiguration.model_validate(merged)
    except PydanticValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration template for profile '{profile}': {exc}"
        ) from exc


def get_service_configuration(
    settings: GlobalSettings | None = None,
    *,
    reload: bool = False,
) -> ServiceConfiguration:
    """Return the merged service configuration for the active profile."""

    if settings is None:
        settings = get_settings()

    profile = settings.config_profile or settings.environment

    if reload:
        _load_service_configuration_cached.cache_clear()

    return _load_service_configuration_cached(str(settings.config_dir), profile.lower())


def _fetch_secrets_from_manager(
    *,
    secret_name: str,
    region: str | None,
    profile: str | None,
    endpoint_url: str | None,
) -> dict[str, str]:
    """Retrieve secrets from AWS Secrets Manager."""

    session_kwargs: dict[str, Any] = {}
    if region:
        session_kwargs["region_name"] = region
    if profile:
        session_kwargs["profile_name"] = profile

    session = Session(**session_kwargs)
    client = session.client("secretsmanager", endpoint_url=endpoint_url)

    try:
        response = client.get_secret_value(SecretId=secret_name)
    except (BotoCoreError, ClientError) as exc:  # pragma: no cover - dependency errors
        raise ConfigurationError(
            f"Unable to retrieve secret '{secret_name}' from AWS Secrets Manager: {exc}"
        ) from exc

    secret_string = response.get("SecretString")
    if secret_string is None:
        secret_binary = response.get("SecretBinary")
        if secret_binary is None:
            return {}
        secret_string = base64.b64decode(secret_binary).decode("utf-8")

    try:
        payload = json.loads(secret_string)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            "Secrets Manager payload must be valid JSON mapping of environment variables"
        ) from exc

    if not isinstance(payload, dict):
        raise ConfigurationError("Secrets Manager payload must be a JSON object of key/value pairs")

    return {
        str(key): json.dumps(value) if isinstance(value, dict | list) else str(value)
        for key, value in payload.items()
        if value is not None
    }


def _inject_secrets_into_environment(secrets: dict[str, str], *, overwrite: bool) -> None:
    """Inject secrets into os.environ respecting overwrite flag."""

    for key, value in secrets.items():
        env_key = key.upper()
        if not env_key.startswith(ENV_PREFIX):
            logger.debug("Ignoring secret '%s' because it does not use %s prefix", env_key, ENV_PREFIX)
            continue
        if not overwrite and env_key in os.environ:
            continue
        os.environ[env_key] = value


def load_runtime_secrets(
    settings: GlobalSettings,
    service_config: ServiceConfiguration,
) -> dict[str, str]:
    """Load secrets defined in configuration or environment and inject them."""

    secrets_cfg = settings.secrets_manager
    config_cfg = service_config.secrets_manager

    if not (secrets_cfg.enabled or config_cfg.enabled):
        return {}

    secret_name = secrets_cfg.secret_name or config_cfg.secret_name
    if not secret_name:
        raise ConfigurationError("Secrets Manager integration enabled but no secret_name configured")

    secrets = _fetch_secrets_from_manager(
        secret_name=secret_name,
        region=secrets_cfg.region or config_cfg.region or settings.aws.region,
        profile=secrets_cfg.profile or config_cfg.profile,
        endpoint_url=secrets_cfg.endpoint_url or config_cfg.endpoint_url,
    )

    _inject_secrets_into_environment(
        secrets, overwrite=secrets_cfg.overwrite_env or config_cfg.overwrite_env
    )
    return secrets


def ensure_runtime_configuration(settings: GlobalSettings | None = None) -> GlobalSettings:
    """Validate configuration templates, load secrets, and ensure required env vars."""

    settings = settings or get_settings()

    service_config = get_service_configuration(settings=settings, reload=True)

    secrets = load_runtime_secrets(settings, service_config)
    if secrets:
        logger.info("Loaded %d secrets from AWS Secrets Manager", len(secrets))
        settings = get_settings(reload=True)

    required_env: set[str] = set(service_config.required_env)
    required_env.update(service_config.secrets_manager.required_env)

    # The vendor credentials and the curated store are needed by every entrypoint.
    required_env.update(
        {
            f"{ENV_PREFIX}DATABASE_URL",
            f"{ENV_PREFIX}VENDOR__USERNAME",
            f"{ENV_PREFIX}VENDOR__PASSWORD",
        }
    )

    missing = sorted(var for var in required_env if not os.environ.get(var))

    if missing:
        joined = ", ".join(missing)
        raise ConfigurationError(
            "Missing required environment variables: "
            f"{joined}. Configure them via configuration templates, Secrets Manager, or .env files."
        )

    return settings


@lru_cache(maxsize=1)
def _get_settings_cached() -> GlobalSettings:
    return GlobalSettings()


def get_settings(*, reload: bool = False) -> GlobalSettings:
    """Return cached settings, optionally forcing a reload."""

    if reload:
        _get_settings_cached.cache_clear()
    return _get_settings_cached()
