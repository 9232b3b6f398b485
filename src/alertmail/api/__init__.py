"""
HTTP API for alert ingestion and queries.
"""

from alertmail.api.app import create_app

__all__ = ["create_app"]
