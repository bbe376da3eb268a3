"""
Saved dreams: list, read and delete
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from dreammapper.core.logging_config import LoggingConfig
from dreammapper.services.dream_store import DreamStore, get_dream_store

router = APIRouter(prefix="/api/dreams", tags=["dreams"])
logger = LoggingConfig.get_logger(__name__)


@router.get("")
def list_dreams(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    store: DreamStore = Depends(get_dream_store),
):
    """Saved dreams, newest first"""
    return [record.to_response() for record in store.list_recent(limit)]


@router.get("/{dream_id}")
def get_dream(dream_id: UUID, store: DreamStore = Depends(get_dream_store)):
    """One saved dream"""
    return store.get(dream_id).to_response()


@router.delete("/{dream_id}", status_code=204)
def delete_dream(dream_id: UUID, store: DreamStore = Depends(get_dream_store)):
    """Delete a dream and its motifs"""
    store.delete(dream_id)
    return Response(status_code=204)


@router.delete("")
def delete_all_dreams(store: DreamStore = Depends(get_dream_store)):
    """Delete every saved dream"""
    deleted = store.delete_all()
    logger.info(f"Deleted {deleted} dreams on request")
    return {"deleted": deleted}
