"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Database
    DATABASE_URL: str = "sqlite:///./career_profiling.db"
    
    # Gemini API (empty key = deterministic narrative only)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    
    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    INTERPRETATION_CACHE_TTL: int = 3600  # 1 hour
    
    # Application
    APP_NAME: str = "Career Profiling Platform"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8001"]
    
    # Auth (tokens are issued by the auth service, verified here)
    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    
    # Bootstrap
    ADMIN_EMAIL: str = "admin@test.com"
    
    # Admin operations
    BULK_APPROVE_MAX: int = 1000
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
