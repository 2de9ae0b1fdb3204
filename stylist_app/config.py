"""Configuration helpers for the stylist service."""

from dataclasses import dataclass, field
from pathlib import Path
import os
from typing import List, Optional

DEFAULT_CLAUDE_MODEL = "claude-3-7-sonnet-20250219"
DEFAULT_ALLOWED_IMAGE_HOSTS = ["firebasestorage.googleapis.com"]


@dataclass
class StylistConfig:
    """Configuration values for the stylist service.

    Secrets (API keys, service account paths) are normally injected through
    the environment; the optional YAML file carries per-environment defaults
    such as the store backend or the monthly cost ceiling.
    """

    project_id: str = "stylist-local"
    model: str = DEFAULT_CLAUDE_MODEL
    anthropic_api_key: Optional[str] = None
    weather_api_key: Optional[str] = None
    firebase_credentials_path: Optional[str] = None
    storage_bucket: Optional[str] = None
    store_backend: str = "sqlite"
    store_path: Optional[str] = None
    blob_dir: Optional[str] = None
    blob_base_url: Optional[str] = None
    environment: str | None = None
    monthly_cost_limit_usd: float = 10.0
    recommendation_max_tokens: int = 8000
    analysis_max_tokens: int = 2000
    analysis_timeout_seconds: float = 60.0
    allowed_image_hosts: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_IMAGE_HOSTS))

    @property
    def is_development(self) -> bool:
        return (self.environment or "").lower() in {"development", "dev", "local"}

    @classmethod
    def from_env(cls) -> "StylistConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables, which win.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("STYLIST_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        hosts = get_value("allowed_image_hosts")
        allowed_image_hosts = (
            [host.strip() for host in hosts.split(",") if host.strip()] if hosts else list(DEFAULT_ALLOWED_IMAGE_HOSTS)
        )

        return cls(
            project_id=str(get_value("firebase_project_id") or "stylist-local"),
            model=str(get_value("model") or DEFAULT_CLAUDE_MODEL),
            anthropic_api_key=get_value("anthropic_api_key"),
            weather_api_key=get_value("openweather_api_key"),
            firebase_credentials_path=get_value("firebase_credentials_path"),
            storage_bucket=get_value("storage_bucket"),
            store_backend=str(get_value("store_backend") or "sqlite"),
            store_path=get_value("store_path"),
            blob_dir=get_value("blob_dir"),
            blob_base_url=get_value("blob_base_url"),
            environment=env_name or get_value("environment"),
            monthly_cost_limit_usd=float(get_value("monthly_cost_limit_usd") or 10.0),
            recommendation_max_tokens=int(get_value("recommendation_max_tokens") or 8000),
            analysis_max_tokens=int(get_value("analysis_max_tokens") or 2000),
            analysis_timeout_seconds=float(get_value("analysis_timeout_seconds") or 60.0),
            allowed_image_hosts=allowed_image_hosts,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
