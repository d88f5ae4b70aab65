"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for identifiers, suffixes and user-facing messages.
"""

# Logger name used throughout the application
LOGGER_NAME = "wabridge"

# WhatsApp identifier suffixes
CONTACT_SUFFIX = "@c.us"  # Direct (one-to-one) chats
GROUP_SUFFIX = "@g.us"  # Group chats

# Default browser profile location used by the persistent auth strategy
DEFAULT_AUTH_DIR = ".wwebjs_auth/session"
DEFAULT_WEB_URL = "https://web.whatsapp.com"
DEFAULT_BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

# Server defaults
DEFAULT_PORT = 5000
DEFAULT_CLIENT_URL = "http://localhost:3000"

# Push channel defaults
DEFAULT_SEND_TIMEOUT = 5.0  # seconds per observer write

# Command gateway messages
MSG_INITIALIZED = "WhatsApp client initialized"
MSG_ALREADY_INITIALIZED = "WhatsApp client is already initialized"
MSG_INITIALIZING = "WhatsApp client initialization already in progress"
MSG_SENT = "Message sent successfully"
ERR_MISSING_FIELDS = "Phone number and message are required"
ERR_NOT_CONNECTED = "WhatsApp is not connected"
ERR_SEND_FAILED = "Failed to send message"
