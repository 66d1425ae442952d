"""FastAPI dependencies: store client, services and builder sessions."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from nsexplorer.services.builder_sessions import BuilderSession, BuilderSessionStore
from nsexplorer.services.namespace import NamespaceService
from nsexplorer.services.store_client import TurbopufferClient


def get_store_client(request: Request) -> TurbopufferClient:
    """The process-wide store client created in the app lifespan."""
    client = getattr(request.app.state, "store_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store client is not configured.",
        )
    return client


def get_namespace_service(
    client: Annotated[TurbopufferClient, Depends(get_store_client)],
) -> NamespaceService:
    return NamespaceService(client)


def get_builder_store(request: Request) -> BuilderSessionStore:
    return request.app.state.builder_sessions


def get_builder_session(
    namespace_id: str,
    session_id: str,
    store: Annotated[BuilderSessionStore, Depends(get_builder_store)],
) -> BuilderSession:
    """Resolve a builder session belonging to the namespace in the path."""
    session = store.get(session_id, namespace_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Query builder session not found.",
        )
    return session
