"""Configuration schema using Pydantic.

The single settings model for the service. Built once at startup and passed
explicitly to the principal resolver, the points ledger and the handlers.
"""

from typing import Literal

from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings


DEFAULT_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:5173",  # Vite default
    "http://localhost:8080",  # Vue CLI default
    "http://localhost:3088",
]


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_DEV_ORIGINS))  # "*" allows all
    max_body_bytes: int = 10 * 1024 * 1024


class AuthConfig(BaseModel):
    """Principal resolution: shared admin secret and signed user tokens."""
    admin_password: str = ""  # Bearer value granting Admin capability; empty = admin methods unavailable
    jwt_secret: str = ""  # HS256 signing key; empty = random per-process key
    issuer: str = "milo-banana-backend"
    audience: str = "milo-banana-client"
    token_ttl_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = 10


class WeChatConfig(BaseModel):
    """WeChat login (mini-program session and OAuth web/app)."""
    app_id: str = ""
    app_secret: str = ""
    api_base: str = "https://api.weixin.qq.com"
    timeout_seconds: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.app_secret)


class GenerationConfig(BaseModel):
    """Defaults seeded into the record store; admins edit them via config.update."""
    base_url: str = "https://api.joyzhi.com"
    api_key: str = "sk-xxx"
    model: str = "gemini-2.5-flash-image-preview"
    timeout_seconds: float = 120.0


class MeteringConfig(BaseModel):
    """Points charged for metered methods."""
    unit_cost: int = 1
    serialize_per_user: bool = True  # Lock check-then-charge per user id


class RateLimitConfig(BaseModel):
    """Sliding-window request limits per client IP."""
    enabled: bool = True
    window_ms: int = 15 * 60 * 1000
    max_requests: int = 100
    auth_window_ms: int = 10 * 60 * 1000
    auth_max_requests: int = 15
    exempt_loopback: bool = False


class StorageConfig(BaseModel):
    """SQLite record store."""
    db_path: str = "./data/database.sqlite"
    prompt_seed_path: str = "./prompt_store.json"
    default_points: int = 100


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file: str = ""  # Optional rotating log file path


class Config(BaseSettings):
    """Root configuration for milobanana."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    wechat: WeChatConfig = Field(default_factory=WeChatConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    metering: MeteringConfig = Field(default_factory=MeteringConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        env_prefix="MILOBANANA_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )
