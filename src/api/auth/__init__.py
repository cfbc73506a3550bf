"""
Auth API package.

Contains the signup, OTP verification and password recovery routes.
"""

from src.api.auth.routes import router

__all__ = ["router"]
