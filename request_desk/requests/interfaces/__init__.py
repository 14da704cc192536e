"""
Requests Interfaces Layer
=========================

Interface adapters (controllers) for the requests module.

Contains:
- Controllers: FastAPI route handlers
"""

from request_desk.requests.interfaces.controllers import requests_router

__all__ = ["requests_router"]
