"""
Web module for aguava-api: the Flask application factory.
"""

from aguava_api.web.app import build_service, create_app

__all__ = ["create_app", "build_service"]
