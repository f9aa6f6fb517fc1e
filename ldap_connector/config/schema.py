from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawLDAPConfig(BaseModel):
    """Connector record exactly as it comes from the connectors file.

    Only shape/type checks live here. Cross-field rules and defaults are applied by
    `resolve_config`, which turns this into an `LDAPConnectorConfig`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    server_host: str = Field(..., min_length=1, alias="serverHost")
    server_port: int = Field(default=0, ge=0, le=65535, alias="serverPort")
    timeout: int = Field(default=0, ge=0, alias="timeout")  # milliseconds

    use_tls: bool = Field(default=False, alias="useTLS")
    use_ssl: bool = Field(default=False, alias="useSSL")
    cert_file: str = Field(default="", alias="certFile")
    key_file: str = Field(default="", alias="keyFile")
    ca_file: str = Field(default="", alias="caFile")
    skip_cert_verification: bool = Field(default=False, alias="skipCertVerification")

    base_dn: str = Field(default="", alias="baseDN")
    name_attribute: str = Field(default="", alias="nameAttribute")
    email_attribute: str = Field(default="", alias="emailAttribute")

    search_before_auth: bool = Field(default=False, alias="searchBeforeAuth")
    search_filter: str = Field(default="", alias="searchFilter")
    search_scope: str = Field(default="", alias="searchScope")
    search_bind_dn: str = Field(default="", alias="searchBindDN")
    search_bind_pw: str = Field(default="", alias="searchBindPw")  # not stripped

    bind_template: str = Field(default="", alias="bindTemplate")
    trusted_email_provider: bool = Field(default=False, alias="trustedEmailProvider")

    # LDAP source attribute -> claim name
    attributes: dict[str, str] = Field(default_factory=dict)

    @field_validator(
        "id",
        "server_host",
        "cert_file",
        "key_file",
        "ca_file",
        "base_dn",
        "name_attribute",
        "email_attribute",
        "search_filter",
        "search_scope",
        "search_bind_dn",
        "bind_template",
        mode="before",
    )
    @classmethod
    def _strip(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("attributes", mode="before")
    @classmethod
    def _clean_attributes(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        out: dict[str, Any] = {}
        for src, dst in v.items():
            s = str(src or "").strip()
            d = str(dst or "").strip() if dst is not None else ""
            if s and d:
                out[s] = d
        return out
