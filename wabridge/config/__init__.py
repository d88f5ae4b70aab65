"""
Configuration module for the WhatsApp session bridge.

Usage:

```python
from wabridge.config import get_config
from wabridge.config.env_loader import load_env_file

load_env_file()
config = get_config()
print(f"Server: {config.server.host}:{config.server.port}")

from wabridge.config.logging_config import configure_logging
logger = configure_logging("my_module")
```
"""

from .settings import (
    get_config,
    reload_config,
    set_config,
    server_config,
    whatsapp_config,
    broadcast_config,
    logging_config,
    validate_configuration,
    print_configuration_summary,
    is_development,
    is_production,
)

from .models import (
    ApplicationConfig,
    ServerConfig,
    WhatsAppConfig,
    BroadcastConfig,
    LoggingConfig,
    SecurityConfig,
    Environment,
    LogLevel,
)

from .logging_config import configure_logging

__all__ = [
    "get_config",
    "reload_config",
    "set_config",
    "server_config",
    "whatsapp_config",
    "broadcast_config",
    "logging_config",
    "validate_configuration",
    "print_configuration_summary",
    "is_development",
    "is_production",
    "ApplicationConfig",
    "ServerConfig",
    "WhatsAppConfig",
    "BroadcastConfig",
    "LoggingConfig",
    "SecurityConfig",
    "Environment",
    "LogLevel",
    "configure_logging",
]
