"""
Main API module for Minify.

Responsibilities:
    - Register accounts, authenticate callers (HTTP Basic), change passwords
    - Create, list, extend and delete short links
    - Soft-delete and reactivate accounts, cascading to their links
    - Resolve /{slug} to a redirect, or a uniform 404

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory storage by default; PostgreSQL via MINIFY_STORAGE_BACKEND.
    - Routes only translate HTTP <-> manager calls; every rule lives in
      minify.manager.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel

from auth.config import SEED_USERS
from auth.dependencies import get_current_account
from auth.schemas import ChangePasswordRequest, UserOut, UserRegister
from auth.service import UserRegistry
from minify.config import settings
from minify.errors import (
    AllocationExhausted,
    ConflictError,
    MinifyError,
    NotFoundError,
    PartialCascadeError,
    PermissionDenied,
    StorageError,
    ValidationError,
)
from minify.manager.cascade import AccountCascade
from minify.manager.lifecycle import LifecycleEngine
from minify.manager.link_manager import LinkManager
from minify.manager.resolution import Redirect, ResolutionService
from minify.models import Link, LinkStatus, utcnow
from minify.storage.base import BaseStorage
from minify.storage.storage_factory import get_storage

log = logging.getLogger("minify")


# ----------------------------------------------------------------
# Schemas
# ----------------------------------------------------------------
class CreateLinkRequest(BaseModel):
    """Request payload for creating a new short link."""
    url: str
    custom_slug: Optional[str] = None


class LinkOut(BaseModel):
    id: str
    slug: str
    original_url: str
    owner_id: str
    created_at: datetime
    expires_at: datetime
    is_active: bool
    status: LinkStatus


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LinkListOut(BaseModel):
    links: List[LinkOut]
    pagination: PaginationOut


class AccountOut(BaseModel):
    id: str
    status: str
    deleted_at: Optional[datetime] = None
    deletion_deadline: Optional[datetime] = None


_NOT_FOUND_HTML = """<!DOCTYPE html>
<html>
  <head><meta charset="UTF-8"><title>Link Not Found - Minify</title></head>
  <body>
    <h1>404</h1>
    <h2>Link Not Found</h2>
    <p>The short link you're looking for doesn't exist or may have been removed.</p>
  </body>
</html>
"""


def _link_out(link: Link, link_status: LinkStatus) -> LinkOut:
    return LinkOut(
        id=link.id,
        slug=link.slug,
        original_url=link.original_url,
        owner_id=link.owner_id,
        created_at=link.created_at,
        expires_at=link.expires_at,
        is_active=link.is_active,
        status=link_status,
    )


def _http_error(exc: MinifyError) -> HTTPException:
    """Map a core error to the HTTP status the API reports for it."""
    if isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, AllocationExhausted):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, PermissionDenied):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


def create_app(
    storage: Optional[BaseStorage] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage: Backend to use; defaults to `get_storage()` (env-selected).
        clock: Source of "now" shared by every manager; tests pass a frozen one.

    Returns:
        FastAPI: A configured application with its own storage and user registry.
    """
    app = FastAPI(
        title="Minify",
        description="URL shortener with account soft-delete and link lifecycle rules",
        docs_url="/docs",
    )

    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    storage = storage if storage is not None else get_storage()
    lifecycle = LifecycleEngine()
    link_manager = LinkManager(storage=storage, lifecycle=lifecycle, clock=clock)
    resolver = ResolutionService(storage=storage)
    cascade = AccountCascade(storage=storage, lifecycle=lifecycle, clock=clock)
    users = UserRegistry(storage)

    app.state.storage = storage
    app.state.users = users

    for username, password in SEED_USERS.items():
        if storage.find_account(username) is None:
            users.register(username, password)

    log.info("Minify storage backend: %s", type(storage).__name__)

    # ----------------------------------------------------------------
    # Dependencies
    # ----------------------------------------------------------------
    def get_active_account(account_id: str = Depends(get_current_account)) -> str:
        """Authenticated caller whose account is not soft-deleted."""
        try:
            link_manager.require_active_account(account_id)
        except MinifyError as exc:
            raise _http_error(exc)
        return account_id

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/accounts", status_code=status.HTTP_201_CREATED, response_model=UserOut)
    def register(req: UserRegister) -> UserOut:
        """
        Register a user: one store write creates the account row and its
        password hash.

        Raises:
            HTTPException: 409 if the username is taken, 503 if the store
                rejected the write (nothing was registered).
        """
        try:
            users.register(req.username, req.password)
        except ValueError as ve:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(ve))
        except StorageError as exc:
            log.error("Registration of %r failed: %s", req.username, exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Registration is temporarily unavailable",
            )
        log.info("Registered account %r", req.username)
        return UserOut(username=req.username, message="Account created")

    @app.get("/account", response_model=AccountOut)
    def account_info(account_id: str = Depends(get_current_account)) -> AccountOut:
        account = storage.find_account(account_id)
        if account is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
        return AccountOut(
            id=account.id,
            status=lifecycle.account_status(account, clock()).value,
            deleted_at=account.deleted_at,
            deletion_deadline=lifecycle.deletion_deadline(account),
        )

    @app.post("/account/password")
    def change_password(
        req: ChangePasswordRequest, account_id: str = Depends(get_current_account)
    ) -> Dict[str, str]:
        """
        Change the caller's password. The current password is checked again
        even though the request is already authenticated.

        Status codes:
            400 confirmation mismatch / wrong current password
        """
        if req.new_password != req.confirm_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New passwords do not match")
        try:
            users.change_password(account_id, req.current_password, req.new_password)
        except ValueError as ve:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(ve))
        log.info("Password changed for account %r", account_id)
        return {"message": "Password updated successfully"}

    @app.post("/account/delete")
    def delete_account(account_id: str = Depends(get_current_account)) -> Dict[str, Any]:
        """
        Soft-delete the caller's account and deactivate all of their links.

        A partial failure (account deleted, links not) is a 500 whose detail
        names the failed stage; repeating the request completes the fan-out.
        """
        try:
            record = cascade.soft_delete(account_id)
        except PartialCascadeError as exc:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": str(exc), "stage": exc.stage, "account_id": exc.account_id},
            )
        except MinifyError as exc:
            raise _http_error(exc)
        return {
            "message": "Account deleted successfully",
            "deleted_at": record.deleted_at.isoformat(),
            "deletion_deadline": record.deletion_deadline.isoformat(),
            "links_deactivated": record.links_deactivated,
        }

    @app.post("/account/reactivate")
    def reactivate_account(account_id: str = Depends(get_current_account)) -> Dict[str, Any]:
        try:
            record = cascade.reactivate(account_id)
        except PartialCascadeError as exc:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": str(exc), "stage": exc.stage, "account_id": exc.account_id},
            )
        except MinifyError as exc:
            raise _http_error(exc)
        if record.already_active:
            return {"message": "Account is already active", "already_active": True}
        return {
            "message": "Account reactivated successfully",
            "already_active": False,
            "links_reactivated": record.links_reactivated,
        }

    @app.post("/links", status_code=status.HTTP_201_CREATED, response_model=LinkOut)
    def create_link(req: CreateLinkRequest, account_id: str = Depends(get_active_account)) -> LinkOut:
        """
        Create a short link with a custom or random slug.

        Status codes:
            400 invalid URL / slug format / reserved slug
            409 slug already taken (including a lost race)
            503 random slug space exhausted for this attempt
        """
        try:
            link = link_manager.create_link(account_id, req.url, req.custom_slug)
        except MinifyError as exc:
            raise _http_error(exc)
        return _link_out(link, lifecycle.classify(link, clock()))

    @app.get("/links", response_model=LinkListOut)
    def list_links(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        account_id: str = Depends(get_active_account),
    ) -> LinkListOut:
        result = link_manager.list_links(account_id, page=page, limit=limit)
        return LinkListOut(
            links=[_link_out(item.link, item.status) for item in result.items],
            pagination=PaginationOut(
                page=result.page,
                limit=result.limit,
                total=result.total,
                total_pages=result.total_pages,
            ),
        )

    @app.patch("/links/{link_id}/extend", response_model=LinkOut)
    def extend_link(link_id: str, account_id: str = Depends(get_active_account)) -> LinkOut:
        try:
            link = link_manager.extend_link(account_id, link_id)
        except MinifyError as exc:
            raise _http_error(exc)
        return _link_out(link, lifecycle.classify(link, clock()))

    @app.delete("/links/{link_id}")
    def delete_link(link_id: str, account_id: str = Depends(get_active_account)) -> Dict[str, str]:
        try:
            link_manager.delete_link(account_id, link_id)
        except MinifyError as exc:
            raise _http_error(exc)
        return {"message": "Link deleted successfully"}

    # Registered last: every other first path segment is a reserved slug.
    @app.get("/{slug}")
    def resolve_slug(slug: str, request: Request) -> Response:
        """
        Redirect to the slug's destination (307), or answer 404.

        The 404 is identical for unknown slugs, missing owners and deleted
        owners. Browsers get an HTML page, API clients JSON.
        """
        result = resolver.resolve(slug)
        if isinstance(result, Redirect):
            return RedirectResponse(url=result.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

        if "text/html" in request.headers.get("accept", "").lower():
            return HTMLResponse(_NOT_FOUND_HTML, status_code=status.HTTP_404_NOT_FOUND)
        return JSONResponse({"detail": "Link not found"}, status_code=status.HTTP_404_NOT_FOUND)

    return app


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
