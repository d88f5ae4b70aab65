"""
wabridge: bridges one headless WhatsApp Web session to push channel observers
and exposes a small HTTP command surface (status, initialize, send-message).
"""

__version__ = "1.0.0"
