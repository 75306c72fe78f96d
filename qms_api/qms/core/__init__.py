"""
Core application utilities for settings, security and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging setup with correlation and user context
- Domain error types translated by the API error handlers
- Dependency helpers (DB session, current user, role checks)
"""
