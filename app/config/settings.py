from enum import Enum
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
    database: str = "video_lessons"
    url_override: Optional[str] = Field(
        default=None,
        validation_alias="DB_URL",
        description="Full SQLAlchemy URL; takes precedence over host/port/credentials.",
    )
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.url_override:
            return self.url_override
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


class AwsConfig(BaseSettings):
    """Shared AWS credentials and default region."""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscribeConfig(BaseSettings):
    """Amazon Transcribe Streaming configuration."""

    region: Optional[str] = None
    language_code: str = "en-US"
    sample_rate_hz: int = Field(default=16000, ge=8000, le=48000)
    chunk_size: int = Field(default=8192, ge=1024)
    realtime_pacing: bool = Field(
        default=False,
        description=(
            "Sleep between chunks so audio is streamed at real-time speed. A paced call "
            "lasts as long as the audio, so PIPELINE_CALL_TIMEOUT_SECONDS must exceed it."
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class RekognitionConfig(BaseSettings):
    """Amazon Rekognition (text detection) configuration."""

    region: Optional[str] = None
    min_confidence: float = Field(default=80.0, ge=0.0, le=100.0)

    model_config = SettingsConfigDict(
        env_prefix="REKOGNITION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-lite-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    vision_model_id: Optional[str] = Field(
        default=None,
        validation_alias="BEDROCK_VISION_MODEL_ID",
    )
    video_model_id: Optional[str] = Field(
        default=None,
        validation_alias="BEDROCK_VIDEO_MODEL_ID",
    )
    max_tokens: int = Field(
        default=2048,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=8192,
    )
    temperature: float = Field(
        default=0.2,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class PipelineShape(str, Enum):
    """Which set of stages produces the transcript-equivalent content."""

    MONOLITHIC = "monolithic"
    DECOMPOSED = "decomposed"


class PipelineConfig(BaseSettings):
    """Video pipeline tuning: stage shape, limits, timeouts and retries."""

    shape: PipelineShape = PipelineShape.MONOLITHIC
    fallback_to_decomposed: bool = True
    frame_interval_seconds: float = Field(default=10.0, gt=0)
    max_frames: int = Field(default=5, ge=1, le=50)
    max_inline_video_bytes: int = Field(default=25 * 1024 * 1024, ge=1)
    max_workers: int = Field(default=4, ge=1)
    queue_size: int = Field(default=32, ge=1)
    call_timeout_seconds: float = Field(default=120.0, gt=0)
    job_deadline_seconds: float = Field(default=1800.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    retry_max_delay_seconds: float = Field(default=20.0, ge=0)
    quiz_question_count: int = Field(default=3, ge=1, le=20)
    upload_dir: str = "/tmp/uploads"
    temp_dir: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """JWT verification settings for incoming bearer tokens."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Video Lesson Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/video_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # AWS
    aws: AwsConfig = Field(default_factory=AwsConfig)
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)
    rekognition: RekognitionConfig = Field(default_factory=RekognitionConfig)
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Pipeline
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = [
        "Origin",
        "X-Requested-With",
        "Content-Type",
        "Accept",
        "Authorization",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
