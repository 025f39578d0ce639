"""
Caller-facing content access: course listing with per-unit decisions and delegated URLs,
single unit access, and the signed media endpoint of the local storage backend.
"""
import os

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from app.access.coordinator import AccessCoordinator
from app.access.errors import AccessRequestFailed, NotFound, NotPublished
from app.access.models import AccessResult, UnitAccess
from app.access.resolver import parse_version_selector
from app.api.deps import get_access_coordinator, get_current_user_id, is_privileged
from app.storage import BlobKeyNotFound, get_blob_store
from app.storage.local import LocalBlobStore


router = APIRouter(tags=["content"])


def _http_error(e: AccessRequestFailed) -> HTTPException:
    if isinstance(e.cause, (NotFound, NotPublished)):
        # drafts look like missing content to non-privileged callers
        return HTTPException(status.HTTP_404_NOT_FOUND, str(e.cause))
    return HTTPException(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Access check temporarily unavailable, retry later",
        headers={"Retry-After": "2"},
    )


@router.get("/courses/{course_id}/content", response_model=AccessResult)
async def get_course_content(
    course_id: str,
    version: str = Query("latest", description="'latest' or a version number"),
    user_id: str | None = Depends(get_current_user_id),
    privileged: bool = Depends(is_privileged),
    coordinator: AccessCoordinator = Depends(get_access_coordinator),
) -> AccessResult:
    try:
        selector = parse_version_selector(version)
    except ValueError as e:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(e))
    try:
        return await coordinator.get_accessible_content(user_id, course_id, selector, privileged=privileged)
    except AccessRequestFailed as e:
        raise _http_error(e)


@router.get("/content-units/{unit_id}/access", response_model=UnitAccess)
async def get_unit_access(
    unit_id: str,
    user_id: str | None = Depends(get_current_user_id),
    privileged: bool = Depends(is_privileged),
    coordinator: AccessCoordinator = Depends(get_access_coordinator),
) -> UnitAccess:
    try:
        return await coordinator.get_unit_access(user_id, unit_id, privileged=privileged)
    except AccessRequestFailed as e:
        raise _http_error(e)


@router.get("/media/{key:path}")
def get_media(key: str, token: str = Query(...)) -> FileResponse:
    """Serves files of the local backend to holders of a valid, unexpired link."""
    store = get_blob_store()
    if not isinstance(store, LocalBlobStore):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    if not store.verify_token(key, token):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Link invalid or expired")
    try:
        path = store.path_for(key)
    except BlobKeyNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    if not os.path.isfile(path):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    return FileResponse(path)
