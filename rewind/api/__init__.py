"""Routes API / API routes."""

from fastapi import APIRouter

from rewind.api import auth, changes, undo

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(changes.router, prefix="/changes", tags=["changes"])
api_router.include_router(undo.router, prefix="/undo", tags=["undo"])
