"""
Shared utility modules for the session bridge.
"""

from .qr_renderer import build_qr_png, render_qr_data_url

__all__ = ["build_qr_png", "render_qr_data_url"]
