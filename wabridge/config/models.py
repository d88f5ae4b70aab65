"""
Configuration models for the wabridge application.

This module defines dataclasses for different configuration domains,
providing type safety and validation for all application settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from wabridge.config.constants import (
    DEFAULT_AUTH_DIR,
    DEFAULT_BROWSER_ARGS,
    DEFAULT_CLIENT_URL,
    DEFAULT_PORT,
    DEFAULT_SEND_TIMEOUT,
    DEFAULT_WEB_URL,
)


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServerConfig:
    """Server configuration settings."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    environment: Environment = Environment.PRODUCTION
    debug: bool = False
    reload: bool = False
    timeout_keep_alive: int = 5
    client_url: str = DEFAULT_CLIENT_URL
    static_dir: Optional[Path] = None

    # HTTP/WebSocket server settings
    http_protocol: str = "h11"
    access_log: bool = False
    ws_ping_interval: int = 20
    ws_ping_timeout: int = 20


@dataclass
class WhatsAppConfig:
    """Settings for the headless WhatsApp Web client."""

    auth_dir: Path = field(default_factory=lambda: Path(DEFAULT_AUTH_DIR))
    headless: bool = True
    browser_args: List[str] = field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    web_url: str = DEFAULT_WEB_URL
    user_agent: Optional[str] = None
    start_timeout: float = 60.0  # seconds to wait for the web app to load
    poll_interval: float = 1.0  # seconds between page state checks
    auto_initialize: bool = False


@dataclass
class BroadcastConfig:
    """Push channel fan-out settings."""

    send_timeout: float = DEFAULT_SEND_TIMEOUT
    ws_path: str = "/ws"


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_filename: str = "wabridge.log"
    max_log_size: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = True


@dataclass
class SecurityConfig:
    """Security-related configuration."""

    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class ApplicationConfig:
    """Master application configuration containing all domain configs."""

    server: ServerConfig = field(default_factory=ServerConfig)
    whatsapp: WhatsAppConfig = field(default_factory=WhatsAppConfig)
    broadcast: BroadcastConfig = field(default_factory=BroadcastConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.server.port <= 0 or self.server.port > 65535:
            errors.append("Server port must be between 1 and 65535")

        if self.whatsapp.start_timeout <= 0:
            errors.append("WhatsApp start timeout must be positive")

        if self.whatsapp.poll_interval <= 0:
            errors.append("WhatsApp poll interval must be positive")

        if self.broadcast.send_timeout <= 0:
            errors.append("Broadcast send timeout must be positive")

        if not self.broadcast.ws_path.startswith("/"):
            errors.append("Push channel path must start with '/'")

        if self.server.static_dir is not None and not self.server.static_dir.is_dir():
            errors.append(f"Static directory not found: {self.server.static_dir}")

        return errors

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.server.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.server.environment == Environment.PRODUCTION
