"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LoanbookConfig(BaseSettings):
    """Loanbook configuration"""
    
    # Storage configuration
    database_path: str = "loanbook.db"
    use_sqlite: bool = True
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Business rules configuration
    default_interest_rate: str = "20"  # percent
    default_term_days: int = 30
    amount_precision: int = 2
    
    class Config:
        env_prefix = "LOANBOOK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LoanbookConfig()


def get_config() -> LoanbookConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LoanbookConfig:
    """Reload configuration from environment"""
    global config
    config = LoanbookConfig()
    return config
