from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """General application settings."""
    
    # API Settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_WORKERS: int = 1
    
    # Streaming
    STREAM_MAX_CHUNK_BYTES: int = 1024 * 1024  # Largest span served per range request
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json | text
    
    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"
    }
