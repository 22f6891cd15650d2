import pytest
from pydantic import ValidationError

from quoteportal.utils.config_loader import (
    DEFAULT_CONFIG_PATH,
    DatabaseConfig,
    PortalConfig,
    load_portal_config,
    should_use_real_integrations,
    uses_persistent_store,
)


def test_repository_config_loads_with_defaults():
    config = load_portal_config(DEFAULT_CONFIG_PATH, environ={})
    assert config.storage.bucket == "quotation-files"
    assert config.storage.signed_url_ttl_seconds == 60
    assert config.auth.role_claim == "app_metadata.role"
    assert config.database.use_postgres is False


def test_missing_file_falls_back_to_defaults(tmp_path):
    config = load_portal_config(tmp_path / "absent.yml", environ={})
    assert config.integrations_mode == "auto"
    assert config.outbox.directory == "data/outbox"


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "portal.yml"
    path.write_text("auth:\n  admin_role: admin\nstorage:\n  bucket: from-file\n", encoding="utf-8")

    config = load_portal_config(
        path,
        environ={
            "AUTH_ADMIN_ROLE": "ops",
            "STORAGE_BUCKET": "from-env",
            "USE_POSTGRES": "true",
            "DATABASE_URL": "postgresql://u:p@db/portal",
            "INTEGRATIONS_MODE": "mock",
            "OUTBOX_DIR": "/var/lib/portal/outbox",
        },
    )
    assert config.auth.admin_role == "ops"
    assert config.storage.bucket == "from-env"
    assert config.database.use_postgres is True
    assert config.database.url == "postgresql://u:p@db/portal"
    assert config.outbox.directory == "/var/lib/portal/outbox"
    assert should_use_real_integrations(config) is False


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "portal.yml"
    path.write_text("storage:\n  signed_url_ttl_seconds: 0\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_portal_config(path, environ={})


def test_auto_mode_uses_real_integrations_only_with_credentials(tmp_path):
    path = tmp_path / "absent.yml"
    assert not should_use_real_integrations(load_portal_config(path, environ={}))
    configured = load_portal_config(path, environ={"RAZORPAY_KEY_ID": "rzp_live_x", "RAZORPAY_KEY_SECRET": "s"})
    assert should_use_real_integrations(configured)
    assert should_use_real_integrations(load_portal_config(path, environ={"INTEGRATIONS_MODE": "live"}))


def test_persistent_store_needs_url_and_flag():
    assert not uses_persistent_store(PortalConfig())
    assert not uses_persistent_store(PortalConfig(database=DatabaseConfig(use_postgres=True)))
    assert not uses_persistent_store(PortalConfig(database=DatabaseConfig(url="postgresql://db/portal")))
    assert uses_persistent_store(PortalConfig(database=DatabaseConfig(url="postgresql://db/portal", use_postgres=True)))
