from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LookupSettings(BaseSettings):
    """
    Environment-driven configuration for CepLookup.from_settings().

    Every field can be set with a CEP_LOOKUP_ prefixed variable, e.g.
    CEP_LOOKUP_RETRIES=2, or from a .env file in the working directory.
    List fields take JSON: CEP_LOOKUP_PROVIDERS='["ViaCEP", "BrasilAPI"]'.
    """

    model_config = SettingsConfigDict(
        env_prefix="CEP_LOOKUP_",
        env_file=".env",
        extra="ignore",
    )

    providers: list[str] = Field(default_factory=lambda: ["ViaCEP", "BrasilAPI", "OpenCEP", "ApiCEP"])
    provider_timeout: Optional[float] = Field(default=None, gt=0)

    stagger_delay: float = Field(default=0.1, ge=0)
    retries: int = Field(default=0, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)

    rate_limit_requests: Optional[int] = Field(default=None, gt=0)
    rate_limit_per: float = Field(default=1.0, gt=0)

    cache_enabled: bool = True
    cache_ttl: Optional[float] = Field(default=None, ge=0)
    cache_max_size: Optional[int] = Field(default=None, gt=0)

    http_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "WARNING"
