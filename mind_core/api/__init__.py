"""
API MODULE
==========

FastAPI REST + MCP API for mindCore.

Usage:
    uvicorn mind_core.api:create_app --factory --reload

Or:
    python -m mind_core.cli --server
"""

from .app import build_services, create_app, main

__all__ = ['build_services', 'create_app', 'main']
