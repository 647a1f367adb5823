"""
FastAPI dependency functions for authentication.

These can be used in routes with Depends() to protect endpoints.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

# HTTP Basic authentication scheme
security = HTTPBasic()


def get_current_account(request: Request, credentials: HTTPBasicCredentials = Depends(security)) -> str:
    """
    Dependency that validates the caller and returns their account id.

    The registry lives on `app.state.users` (set by the app factory).
    Soft-deleted accounts still authenticate here so they can reactivate.
    """
    return request.app.state.users.authenticate(credentials.username, credentials.password)
