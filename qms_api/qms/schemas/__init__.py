"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (safety, documents, quality, etc.) and also
include common reusable models such as the camelCase base and the error envelope.
"""

from .common import MessageResponse  # noqa: F401
