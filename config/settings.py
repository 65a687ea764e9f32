from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# Load .env file if it exists, for local development
# In production, environment variables should be set directly.
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv()


class DatabaseSettings(BaseSettings):
    url: str = "sqlite:///./edi.db"
    echo: bool = False

    model_config = SettingsConfigDict(env_prefix='DATABASE_')


class AuthSettings(BaseSettings):
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "edi-api"
    jwt_audience: str = "edi-client"
    access_ttl_seconds: int = 900  # 15 min

    model_config = SettingsConfigDict(env_prefix='AUTH_')


class CacheSettings(BaseSettings):
    url: str = "redis://localhost:6379/0"
    results_ttl_seconds: int = 86400
    # After a failed connect, skip further attempts for this long
    retry_backoff_seconds: float = 30.0

    model_config = SettingsConfigDict(env_prefix='REDIS_')


class KafkaSettings(BaseSettings):
    enabled: bool = True
    bootstrap_servers: str = "kafka:9092"
    assessment_completed_topic: str = "ASSESSMENT_COMPLETED"

    model_config = SettingsConfigDict(env_prefix='KAFKA_')


class AppSettings(BaseSettings):
    log_level: str = "INFO"
    catalog_path: str = "assets/harmonic_catalog.yml"
    seed_catalog_on_startup: bool = True

    model_config = SettingsConfigDict(env_prefix='EDI_')


# Instantiate settings
database_settings = DatabaseSettings()
auth_settings = AuthSettings()
cache_settings = CacheSettings()
kafka_settings = KafkaSettings()
app_settings = AppSettings()
