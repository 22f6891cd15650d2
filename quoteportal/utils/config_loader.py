"""
Configuration loader for the quotation portal
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "portal_config.yml"


class DatabaseConfig(BaseModel):
    """Quotation store selection"""

    url: Optional[str] = None
    use_postgres: bool = False


class AuthConfig(BaseModel):
    """Session token verification and role resolution"""

    jwt_secret: str = ""
    jwt_audience: Optional[str] = None
    algorithms: list[str] = Field(default_factory=lambda: ["HS256"])
    leeway_seconds: int = Field(default=0, ge=0, le=300)
    role_claim: str = "app_metadata.role"
    admin_role: str = "admin"


class StorageConfig(BaseModel):
    """Object store holding uploaded specification files"""

    bucket: str = "quotation-files"
    endpoint_url: Optional[str] = None
    region: str = "ap-south-1"
    signed_url_ttl_seconds: int = Field(default=60, ge=1, le=3600)


class PaymentsConfig(BaseModel):
    """Razorpay checkout and webhook settings"""

    key_id: str = ""
    key_secret: str = ""
    webhook_secret: str = ""
    api_url: str = "https://api.razorpay.com"
    timeout_seconds: float = Field(default=20.0, gt=0)
    merchant_name: str = "Miccroten Circuits"


class OutboxConfig(BaseModel):
    """Parked payment completions awaiting replay"""

    directory: str = "data/outbox"


class PortalConfig(BaseModel):
    """Complete portal configuration"""

    integrations_mode: str = "auto"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    payments: PaymentsConfig = Field(default_factory=PaymentsConfig)
    outbox: OutboxConfig = Field(default_factory=OutboxConfig)


# env var -> (section, field); section None means top level
_ENV_OVERRIDES = {
    "DATABASE_URL": ("database", "url"),
    "USE_POSTGRES": ("database", "use_postgres"),
    "JWT_SECRET": ("auth", "jwt_secret"),
    "JWT_AUDIENCE": ("auth", "jwt_audience"),
    "AUTH_ROLE_CLAIM": ("auth", "role_claim"),
    "AUTH_ADMIN_ROLE": ("auth", "admin_role"),
    "STORAGE_BUCKET": ("storage", "bucket"),
    "STORAGE_ENDPOINT_URL": ("storage", "endpoint_url"),
    "AWS_REGION": ("storage", "region"),
    "RAZORPAY_KEY_ID": ("payments", "key_id"),
    "RAZORPAY_KEY_SECRET": ("payments", "key_secret"),
    "RAZORPAY_WEBHOOK_SECRET": ("payments", "webhook_secret"),
    "RAZORPAY_API_URL": ("payments", "api_url"),
    "INTEGRATIONS_MODE": (None, "integrations_mode"),
    "OUTBOX_DIR": ("outbox", "directory"),
}


def _apply_env_overrides(data: Dict[str, Any], environ) -> Dict[str, Any]:
    for env_name, (section, field) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        if section is None:
            data[field] = value
        else:
            data.setdefault(section, {})
            data[section][field] = value
    return data


def load_portal_config(config_path: Optional[Path] = None, environ=None) -> PortalConfig:
    """
    Load and validate portal configuration from YAML file plus environment

    Args:
        config_path: Path to config file. Defaults to config/portal_config.yml
        environ: Mapping used for overrides. Defaults to os.environ (after .env is loaded)

    Returns:
        Validated PortalConfig object

    Raises:
        ValidationError: If config doesn't match schema
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_data: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.info(f"Config file not found at {config_path}; using defaults")

    config_data = _apply_env_overrides(config_data, environ)

    try:
        config = PortalConfig(**config_data)
        logger.info(f"Loaded portal config (integrations_mode={config.integrations_mode})")
        return config
    except ValidationError as e:
        logger.error(f"Config validation failed: {e}")
        raise


def should_use_real_integrations(config: PortalConfig) -> bool:
    mode = (config.integrations_mode or "").strip().lower()
    if mode in {"real", "live"}:
        return True
    if mode in {"mock", "test"}:
        return False
    return bool(config.payments.key_id and config.payments.key_secret)


def uses_persistent_store(config: PortalConfig) -> bool:
    """True when quotations live in a real database rather than process memory."""
    return bool(config.database.url and config.database.use_postgres)
