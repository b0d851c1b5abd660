from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Legacy Migration Gateway"
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 5001
    log_level: str = "INFO"

    zitadel_domain: str = "localhost:8080"
    access_token: str = ""
    zitadel_org_id: str = ""
    zitadel_timeout_seconds: float = 5

    listusers_signing_key: str = ""
    setsession_signing_key: str = ""
    setpassword_signing_key: str = ""
    # 0 disables the freshness check on the signature timestamp
    signature_tolerance_seconds: int = 0

    hosted_login_user_id: str = "zitadel-cloud-login"
    legacy_database_url: str = "sqlite+pysqlite:///./legacy.db"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"prod", "production"}

    def zitadel_base_url(self) -> str:
        domain = self.zitadel_domain.strip().rstrip("/")
        if domain.startswith(("http://", "https://")):
            return domain
        return f"https://{domain}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
