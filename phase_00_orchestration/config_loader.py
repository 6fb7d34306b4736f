"""
config_loader.py — Phase 00: Orchestration
--------------------------------------------
Loads and validates the pipeline configuration from
phase_00_orchestration/config/pipeline_config.yaml plus the environment.

The YAML file holds tuning values and the *names* of the environment
variables that carry secrets. Everything is resolved once at startup into
an immutable PipelineConfig that is passed to every component.

Raises ConfigError listing every missing key or variable, so
misconfiguration is caught before any network call.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from phase_00_orchestration.errors import ConfigError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONFIG_PATH = Path(__file__).parent / "config" / "pipeline_config.yaml"


# ---------------------------------------------------------------------------
# Settings containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GoogleSettings:
    account_id: str
    client_id: str
    client_secret: str
    refresh_token: str
    token_url: str
    business_info_base_url: str
    reviews_base_url: str
    location_page_size: int = 100
    review_page_size: int = 50
    stale_page_limit: int = 2


@dataclass(frozen=True)
class PrefillSettings:
    api_url: str
    secret: str
    public_app_url: str


@dataclass(frozen=True)
class DeliverySettings:
    webhook_url: str
    batch_size: int = 200
    source: str = "google_business_profile"


@dataclass(frozen=True)
class HttpSettings:
    retries: int = 4
    backoff_base_seconds: float = 0.8
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class PacingSettings:
    page_delay_seconds: float = 0.12
    link_delay_seconds: float = 0.06


@dataclass(frozen=True)
class PipelineConfig:
    """
    Root settings container, built once by load_config().

    Usage:
        config = load_config()
        print(config.google.account_id)
    """

    timezone: str
    data_root: str
    concurrency: int
    google: GoogleSettings
    prefill: PrefillSettings
    delivery: DeliverySettings
    http: HttpSettings
    pacing: PacingSettings


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PipelineConfig:
    """
    Load pipeline_config.yaml and resolve secrets from the environment.

    Args:
        path:    Alternative YAML path (defaults to CONFIG_PATH).
        environ: Environment mapping (defaults to os.environ).

    Returns:
        PipelineConfig: Fully validated configuration.

    Raises:
        ConfigError: If the file is absent, malformed, or values are missing.
    """
    config_path = Path(path) if path is not None else CONFIG_PATH
    env = os.environ if environ is None else environ

    if not config_path.exists():
        raise ConfigError(f"Pipeline config not found at: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Pipeline config is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("pipeline_config.yaml must be a YAML mapping (key: value pairs).")

    _validate(raw, config_path)
    return _build(raw, env)


def mask_secret(value: str) -> str:
    """Mask a secret for log output: 'abc***xyz'."""
    if not value:
        return ""
    if len(value) <= 8:
        return "***"
    return f"{value[:3]}***{value[-3:]}"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

# Keys that must be present (dot-notation for nested paths)
_REQUIRED_KEYS = [
    "timezone",
    "data_root",
    "google.account_id_env_var",
    "google.client_id_env_var",
    "google.client_secret_env_var",
    "google.refresh_token_env_var",
    "google.token_url",
    "google.business_info_base_url",
    "google.reviews_base_url",
    "prefill.api_url_env_var",
    "prefill.secret_env_var",
    "delivery.webhook_url_env_var",
]


def _validate(config: dict, config_path: Path) -> None:
    """Validate that all required keys exist in the config."""
    missing = [key for key in _REQUIRED_KEYS if not _has_key(config, key)]
    if missing:
        raise ConfigError(
            "Pipeline config is missing required keys:\n  - "
            + "\n  - ".join(missing)
            + f"\n\nCheck: {config_path}"
        )


def _has_key(config: dict, key_path: str) -> bool:
    """Traverse a dot-separated key path in a nested dict."""
    node: Any = config
    for part in key_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return False
        node = node[part]
    return True


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def _build(raw: dict, env: Mapping[str, str]) -> PipelineConfig:
    google = raw["google"]
    prefill = raw["prefill"]
    delivery = raw["delivery"]
    concurrency = raw.get("concurrency") or {}
    http = raw.get("http") or {}
    pacing = raw.get("pacing") or {}

    missing: list[str] = []

    def secret(section: dict, key: str) -> str:
        var_name = section[key]
        value = (env.get(var_name) or "").strip()
        if not value:
            missing.append(var_name)
        return value

    account_id = secret(google, "account_id_env_var")
    client_id = secret(google, "client_id_env_var")
    client_secret = secret(google, "client_secret_env_var")
    refresh_token = secret(google, "refresh_token_env_var")
    prefill_url = secret(prefill, "api_url_env_var")
    prefill_secret = secret(prefill, "secret_env_var")
    webhook_url = secret(delivery, "webhook_url_env_var")

    if missing:
        raise ConfigError(
            "Missing required environment variables:\n  - " + "\n  - ".join(missing)
        )

    public_app_url = _optional_env(env, prefill.get("public_app_url_env_var")) or str(
        prefill.get("public_app_url", "")
    )

    return PipelineConfig(
        timezone=str(raw["timezone"]),
        data_root=str(raw["data_root"]),
        concurrency=_int_setting(
            env, concurrency.get("locations_env_var"), concurrency.get("locations", 5),
            "concurrency.locations", minimum=1,
        ),
        google=GoogleSettings(
            account_id=account_id,
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            token_url=str(google["token_url"]),
            business_info_base_url=str(google["business_info_base_url"]).rstrip("/"),
            reviews_base_url=str(google["reviews_base_url"]).rstrip("/"),
            location_page_size=_int_setting(
                env, None, google.get("location_page_size", 100),
                "google.location_page_size", minimum=1,
            ),
            review_page_size=_int_setting(
                env, None, google.get("review_page_size", 50),
                "google.review_page_size", minimum=1,
            ),
            stale_page_limit=_int_setting(
                env, None, google.get("stale_page_limit", 2),
                "google.stale_page_limit", minimum=1,
            ),
        ),
        prefill=PrefillSettings(
            api_url=prefill_url,
            secret=prefill_secret,
            public_app_url=public_app_url,
        ),
        delivery=DeliverySettings(
            webhook_url=webhook_url,
            batch_size=_int_setting(
                env, delivery.get("batch_size_env_var"), delivery.get("batch_size", 200),
                "delivery.batch_size",
            ),
            source=str(delivery.get("source", "google_business_profile")),
        ),
        http=HttpSettings(
            retries=_int_setting(env, None, http.get("retries", 4), "http.retries", minimum=1),
            backoff_base_seconds=float(http.get("backoff_base_seconds", 0.8)),
            timeout_seconds=float(http.get("timeout_seconds", 30)),
        ),
        pacing=PacingSettings(
            page_delay_seconds=float(pacing.get("page_delay_seconds", 0.12)),
            link_delay_seconds=float(pacing.get("link_delay_seconds", 0.06)),
        ),
    )


def _optional_env(env: Mapping[str, str], var_name: Optional[str]) -> str:
    if not var_name:
        return ""
    return (env.get(var_name) or "").strip()


def _int_setting(
    env: Mapping[str, str],
    var_name: Optional[str],
    default: Any,
    label: str,
    minimum: Optional[int] = None,
) -> int:
    """Read an integer from the env override if set, else the YAML default."""
    override = _optional_env(env, var_name)
    value = override if override else default
    source = var_name if override else label
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{source} must be an integer, got {value!r}.") from exc
    if minimum is not None and number < minimum:
        raise ConfigError(f"{source} must be >= {minimum}, got {number}.")
    return number
