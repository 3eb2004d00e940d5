from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "postgres"
    schema_name: Optional[str] = Field(default=None, validation_alias="DB_SCHEMA")
    dsn: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the individual fields when set.",
    )
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.dsn:
            return self.dsn
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """S3 configuration"""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    bucket_name: str = ""
    key_prefix: str = "brand-recordings"
    public_base_url: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class VoiceCloneConfig(BaseSettings):
    """ElevenLabs speech-to-speech configuration."""

    api_key: SecretStr | None = None
    base_url: str = "https://api.elevenlabs.io"
    voice_id: str = "ThT5KcBeYPX3keUQqHPh"
    model_id: str = "eleven_multilingual_sts_v2"
    output_format: str = "mp3_44100_128"
    timeout_seconds: float = Field(default=60.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="ELEVENLABS_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class ProgressConfig(BaseSettings):
    """Server-Sent-Events progress channel tuning."""

    heartbeat_interval: float = Field(default=30.0, gt=0)
    connection_timeout: float = Field(default=120.0, gt=0)
    sweep_interval: float = Field(default=30.0, gt=0)
    queue_size: int = Field(default=100, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="PROGRESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PipelineConfig(BaseSettings):
    """Voice clone pipeline switches."""

    trim_uploads: bool = True

    model_config = SettingsConfigDict(
        env_prefix="VOICE_CLONE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Brand Voice Recorder"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/voice_clone.log"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # S3
    s3: S3Config = Field(default_factory=S3Config)

    # ElevenLabs
    voice_clone: VoiceCloneConfig = Field(default_factory=VoiceCloneConfig)

    # Progress events
    progress: ProgressConfig = Field(default_factory=ProgressConfig)

    # Pipeline
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
