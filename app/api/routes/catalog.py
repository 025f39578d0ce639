"""
Internal catalog API: courses and version lifecycle (draft -> published -> archived).
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import require_admin_key
from app.db.session import get_db
from app.schemas.catalog import CourseIn, CourseOut, DraftVersionIn, VersionOut
from app.services.catalog.service import CatalogService


router = APIRouter(prefix="/catalog", tags=["catalog"], dependencies=[Depends(require_admin_key)])


@router.post("/courses", response_model=CourseOut)
def create_course(body: CourseIn, db: Session = Depends(get_db)) -> CourseOut:
    course = CatalogService(db).create_course(body.title, body.instructor_name, body.description)
    return CourseOut.model_validate(course)


@router.get("/courses/{course_id}/versions", response_model=list[VersionOut])
def list_versions(course_id: str, db: Session = Depends(get_db)) -> list[VersionOut]:
    return [VersionOut.model_validate(v) for v in CatalogService(db).list_versions(course_id)]


@router.post("/courses/{course_id}/versions", response_model=VersionOut)
def create_draft_version(course_id: str, body: DraftVersionIn, db: Session = Depends(get_db)) -> VersionOut:
    try:
        version = CatalogService(db).create_draft_version(
            course_id,
            [u.model_dump() for u in body.units],
            change_log=body.change_log,
            created_by=body.created_by,
        )
    except LookupError:
        raise HTTPException(404, "Course not found")
    except ValueError as e:
        raise HTTPException(409, str(e))
    return VersionOut.model_validate(version)


@router.post("/versions/{version_id}/publish", response_model=VersionOut)
def publish_version(version_id: str, db: Session = Depends(get_db)) -> VersionOut:
    svc = CatalogService(db)
    try:
        return VersionOut.model_validate(svc.publish_version(version_id))
    except LookupError:
        raise HTTPException(404, "Version not found")
    except ValueError as e:
        raise HTTPException(409, str(e))


@router.post("/versions/{version_id}/archive", response_model=VersionOut)
def archive_version(version_id: str, db: Session = Depends(get_db)) -> VersionOut:
    svc = CatalogService(db)
    try:
        return VersionOut.model_validate(svc.archive_version(version_id))
    except LookupError:
        raise HTTPException(404, "Version not found")
    except ValueError as e:
        raise HTTPException(409, str(e))
