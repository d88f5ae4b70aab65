"""
Environment variable loader for wabridge configuration.

This module handles loading configuration from environment variables,
with type conversion, validation, and fallback to defaults.

Environment variables must be explicitly loaded using load_env_file() before
accessing any configuration functions.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, cast, get_origin

from dotenv import load_dotenv

from .constants import (
    DEFAULT_AUTH_DIR,
    DEFAULT_BROWSER_ARGS,
    DEFAULT_CLIENT_URL,
    DEFAULT_PORT,
    DEFAULT_SEND_TIMEOUT,
    DEFAULT_WEB_URL,
)
from .models import (
    ApplicationConfig,
    BroadcastConfig,
    Environment,
    LoggingConfig,
    LogLevel,
    SecurityConfig,
    ServerConfig,
    WhatsAppConfig,
)

# Track if environment variables have been loaded
_env_loaded = False


def load_env_file(env_file: Optional[str] = None) -> None:
    """Load environment variables from a .env file.

    This function must be called before accessing any configuration functions.

    Args:
        env_file: Path to the .env file. If None, uses default behavior.
    """
    global _env_loaded
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    _env_loaded = True


def _check_env_loaded() -> None:
    """Check if environment variables have been loaded, raise error if not."""
    if not _env_loaded:
        raise RuntimeError(
            "Environment variables not loaded. Call load_env_file() before accessing configuration."
        )


T = TypeVar("T")


def safe_convert(value: Optional[str], target_type: Type[T], default: T) -> T:
    """Safely convert environment variable string to target type."""
    if value is None:
        return default

    try:
        if target_type == bool:
            return cast(T, value.lower() == "true")
        elif target_type == int:
            return cast(T, int(value))
        elif target_type == float:
            return cast(T, float(value))
        elif target_type == str:
            return cast(T, value)
        elif target_type == Path:
            return cast(T, Path(value))
        elif get_origin(target_type) == list:
            return cast(
                T,
                (
                    [item.strip() for item in value.split(",") if item.strip()]
                    if value
                    else default
                ),
            )
        else:
            return default
    except (ValueError, TypeError):
        return default


def safe_string_or_none(value: Optional[str]) -> Optional[str]:
    """Convert environment variable to string or None if empty."""
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_server_config() -> ServerConfig:
    """Load server configuration from environment variables."""
    _check_env_loaded()

    env_str = os.getenv("ENV", "production").lower()
    environment = (
        Environment.DEVELOPMENT if env_str == "development" else Environment.PRODUCTION
    )
    if env_str == "testing":
        environment = Environment.TESTING

    static_dir = safe_string_or_none(os.getenv("STATIC_DIR"))

    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=safe_convert(os.getenv("PORT"), int, DEFAULT_PORT),
        environment=environment,
        debug=safe_convert(os.getenv("DEBUG"), bool, False),
        reload=safe_convert(os.getenv("RELOAD"), bool, False),
        timeout_keep_alive=safe_convert(os.getenv("TIMEOUT_KEEP_ALIVE"), int, 5),
        client_url=os.getenv("CLIENT_URL", DEFAULT_CLIENT_URL),
        static_dir=Path(static_dir) if static_dir else None,
        http_protocol=os.getenv("HTTP_PROTOCOL", "h11"),
        access_log=safe_convert(os.getenv("ACCESS_LOG"), bool, False),
        ws_ping_interval=safe_convert(os.getenv("WS_PING_INTERVAL"), int, 20),
        ws_ping_timeout=safe_convert(os.getenv("WS_PING_TIMEOUT"), int, 20),
    )


def load_whatsapp_config() -> WhatsAppConfig:
    """Load WhatsApp Web client configuration from environment variables."""
    _check_env_loaded()

    return WhatsAppConfig(
        auth_dir=Path(os.getenv("WHATSAPP_AUTH_DIR", DEFAULT_AUTH_DIR)),
        headless=safe_convert(os.getenv("WHATSAPP_HEADLESS"), bool, True),
        browser_args=safe_convert(
            os.getenv("WHATSAPP_BROWSER_ARGS"), List[str], list(DEFAULT_BROWSER_ARGS)
        ),
        web_url=os.getenv("WHATSAPP_WEB_URL", DEFAULT_WEB_URL),
        user_agent=safe_string_or_none(os.getenv("WHATSAPP_USER_AGENT")),
        start_timeout=safe_convert(os.getenv("WHATSAPP_START_TIMEOUT"), float, 60.0),
        poll_interval=safe_convert(os.getenv("WHATSAPP_POLL_INTERVAL"), float, 1.0),
        auto_initialize=safe_convert(
            os.getenv("WHATSAPP_AUTO_INITIALIZE"), bool, False
        ),
    )


def load_broadcast_config() -> BroadcastConfig:
    """Load push channel configuration from environment variables."""
    _check_env_loaded()

    return BroadcastConfig(
        send_timeout=safe_convert(
            os.getenv("BROADCAST_SEND_TIMEOUT"), float, DEFAULT_SEND_TIMEOUT
        ),
        ws_path=os.getenv("BROADCAST_WS_PATH", "/ws"),
    )


def load_logging_config() -> LoggingConfig:
    """Load logging configuration from environment variables."""
    _check_env_loaded()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = LogLevel.INFO
    try:
        log_level = LogLevel(log_level_str)
    except ValueError:
        pass

    return LoggingConfig(
        level=log_level,
        format=os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ),
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
        log_filename=os.getenv("LOG_FILENAME", "wabridge.log"),
        max_log_size=safe_convert(os.getenv("LOG_MAX_SIZE"), int, 10 * 1024 * 1024),
        backup_count=safe_convert(os.getenv("LOG_BACKUP_COUNT"), int, 5),
        console_output=safe_convert(os.getenv("LOG_CONSOLE_OUTPUT"), bool, True),
        file_output=safe_convert(os.getenv("LOG_FILE_OUTPUT"), bool, True),
    )


def load_security_config() -> SecurityConfig:
    """Load security configuration from environment variables."""
    _check_env_loaded()

    allowed_origins = os.getenv("ALLOWED_ORIGINS", "*")
    origins_list = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]

    return SecurityConfig(allowed_origins=origins_list or ["*"])


def load_application_config() -> ApplicationConfig:
    """Load complete application configuration from environment variables."""
    _check_env_loaded()

    config = ApplicationConfig(
        server=load_server_config(),
        whatsapp=load_whatsapp_config(),
        broadcast=load_broadcast_config(),
        logging=load_logging_config(),
        security=load_security_config(),
    )

    # Validate configuration and raise exceptions for critical errors
    validation_errors = config.validate()
    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(
            f"  - {error}" for error in validation_errors
        )
        raise ValueError(error_msg)

    return config


def get_environment_info() -> Dict[str, Any]:
    """Get information about current environment variables for debugging."""
    _check_env_loaded()

    return {
        "environment_variables_loaded": len(
            [
                k
                for k in os.environ.keys()
                if k.startswith(("WHATSAPP_", "BROADCAST_", "LOG_"))
            ]
        ),
        "dotenv_loaded": Path(".env").exists(),
        "current_environment": os.getenv("ENV", "production"),
        "auth_dir": os.getenv("WHATSAPP_AUTH_DIR", DEFAULT_AUTH_DIR),
        "web_url": os.getenv("WHATSAPP_WEB_URL", DEFAULT_WEB_URL),
    }
