"""
Centralized configuration settings for wabridge.

This module provides the main configuration interface for the entire application,
including singleton access to configuration.
"""

from typing import List, Optional

from .env_loader import get_environment_info, load_application_config
from .models import ApplicationConfig

# Global configuration instance
_config: Optional[ApplicationConfig] = None


def get_config() -> ApplicationConfig:
    """Get the global application configuration instance."""
    global _config
    if _config is None:
        _config = load_application_config()
    return _config


def reload_config() -> ApplicationConfig:
    """Reload configuration from environment variables."""
    global _config
    _config = load_application_config()
    return _config


def set_config(config: Optional[ApplicationConfig]) -> None:
    """Set a custom configuration instance (useful for testing)."""
    global _config
    _config = config


def validate_configuration() -> List[str]:
    """Validate the current configuration and return any errors."""
    return get_config().validate()


def print_configuration_summary() -> None:
    """Print a summary of the current configuration."""
    config = get_config()
    env_info = get_environment_info()

    print("=== wabridge Configuration Summary ===")
    print(f"Environment: {config.server.environment.value}")
    print(f"Server: {config.server.host}:{config.server.port}")
    print(f"Client URL: {config.server.client_url}")
    print(f"Auth directory: {config.whatsapp.auth_dir}")
    print(f"Headless browser: {config.whatsapp.headless}")
    print(f"Push channel path: {config.broadcast.ws_path}")
    print(f"Log level: {config.logging.level.value}")
    print(f"Environment variables loaded: {env_info['environment_variables_loaded']}")
    print(f".env file present: {env_info['dotenv_loaded']}")

    errors = validate_configuration()
    if errors:
        print("\n⚠️  Configuration Issues:")
        for error in errors:
            print(f"  - {error}")
    else:
        print("\n✅ Configuration is valid")


# Convenience aliases for common configurations
def server_config():
    """Get server configuration."""
    return get_config().server


def whatsapp_config():
    """Get WhatsApp client configuration."""
    return get_config().whatsapp


def broadcast_config():
    """Get push channel configuration."""
    return get_config().broadcast


def logging_config():
    """Get logging configuration."""
    return get_config().logging


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def is_production() -> bool:
    """Check if running in production mode."""
    return get_config().is_production()
