from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    secret_key: str = Field("", alias="LDAP_CONNECTOR_SECRET_KEY")

    connectors_file: str = Field("connectors.json", alias="LDAP_CONNECTOR_CONNECTORS_FILE")
    namespace_prefix: str = Field("/auth", alias="LDAP_CONNECTOR_NAMESPACE_PREFIX")
    error_url: str = Field("/error", alias="LDAP_CONNECTOR_ERROR_URL")
    callback_url: str = Field("/callback", alias="LDAP_CONNECTOR_CALLBACK_URL")
    code_max_age_seconds: int = Field(300, alias="LDAP_CONNECTOR_CODE_MAX_AGE")

    host: str = Field("127.0.0.1", alias="LDAP_CONNECTOR_HOST")
    port: int = Field(5556, alias="LDAP_CONNECTOR_PORT")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: str = Field("", alias="LOG_DIR")  # empty: console only
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS")

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
