from pydantic_settings import BaseSettings

class DatabaseSettings(BaseSettings):
    """Database Settings"""
    DATABASE_URL: str = "sqlite:///./market_media.db"
    DATABASE_ECHO: bool = False
    
    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"
    }
