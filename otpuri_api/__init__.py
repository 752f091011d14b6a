"""
otpuri_api package: Flask JSON API over the otpuri core.
"""

from .app import app, create_app

__all__ = ['app', 'create_app']
