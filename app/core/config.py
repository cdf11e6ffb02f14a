"""
Application configuration.
Secrets can be preloaded from Azure Key Vault when KEY_VAULT_NAME is set,
then everything is read from environment variables / .env file so local
development works without Key Vault access.
"""
import os
import logging
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key Vault → environment variable mapping
# Secret names in Key Vault use lowercase-dashes; env vars use UPPER_SNAKE.
# ---------------------------------------------------------------------------
_KV_TO_ENV: dict[str, str] = {
    "database-url":          "DATABASE_URL",
    "sesami-webhook-secret": "SESAMI_WEBHOOK_SECRET",
    "sesami-api-key":        "SESAMI_API_KEY",
    "sesami-api-url":        "SESAMI_API_URL",
}


def _load_from_key_vault(vault_name: str) -> int:
    """
    Fetch secrets from Azure Key Vault and inject them into os.environ.
    Returns the number of secrets successfully loaded.
    """
    try:
        from azure.identity import DefaultAzureCredential
        from azure.keyvault.secrets import SecretClient
        from azure.core.exceptions import ResourceNotFoundError

        client = SecretClient(
            vault_url=f"https://{vault_name}.vault.azure.net/",
            credential=DefaultAzureCredential(),
        )
        loaded = 0

        for kv_name, env_name in _KV_TO_ENV.items():
            try:
                secret = client.get_secret(kv_name)
                if secret.value:
                    os.environ[env_name] = secret.value
                    loaded += 1
            except ResourceNotFoundError:
                pass
            except Exception as e:
                logger.warning("KV: could not load '%s': %s", kv_name, e)

        return loaded

    except Exception as e:
        logger.warning("Key Vault load failed (%s); falling back to environment / .env file.", e)
        return 0


_kv_name = os.environ.get("KEY_VAULT_NAME", "")
if _kv_name:
    _n = _load_from_key_vault(_kv_name)
    if _n:
        logger.info("Loaded %d secrets from Key Vault '%s'", _n, _kv_name)


class Settings(BaseSettings):
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite+aiosqlite:///./darrwin.db"
    DB_OPERATION_TIMEOUT_SECONDS: float = 10.0
    SCHEMA_BOOTSTRAP_ON_STARTUP: bool = True
    CORS_ORIGINS: str = "*"
    KEY_VAULT_NAME: str = ""

    # Sesami booking integration
    SESAMI_WEBHOOK_SECRET: str = ""
    SESAMI_API_URL: str = "https://api.sesami.co/v1"
    SESAMI_API_KEY: str = ""
    SESAMI_SYNC_TIMEOUT_SECONDS: float = 5.0
    SESAMI_SYNC_MAX_ATTEMPTS: int = 3

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

# Refuse to accept unsigned booking webhooks in production
if settings.is_production and not settings.SESAMI_WEBHOOK_SECRET:
    raise ValueError(
        "SESAMI_WEBHOOK_SECRET is not set. It must exist in Key Vault ('sesami-webhook-secret') "
        "or as a SESAMI_WEBHOOK_SECRET environment variable when APP_ENV=production."
    )
