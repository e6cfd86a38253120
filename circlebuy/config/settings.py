from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List

ENVIRONMENTS = ("development", "test", "staging", "production")


class Settings(BaseSettings):
    """Environment-driven configuration; variable names are the field names, case-insensitive."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "circlebuy-backend"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Supabase project; the service role key bypasses RLS for role and KYC writes
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None

    # Product images and avatars
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None
    media_public_base_url: Optional[str] = None

    default_member_limit: int = 50
    max_member_limit: int = 500

    # Flat fee added to every cart order
    shipping_fee: float = 50.0

    auth_cache_ttl_sec: int = 60
    auth_cache_max_size: int = 500

    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    rate_limit: str = "100/minute"
    rate_limit_enabled: bool = True

    @field_validator("environment")
    @classmethod
    def known_environment(cls, value: str) -> str:
        value = value.lower()
        if value not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {', '.join(ENVIRONMENTS)}")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def get_cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
