"""
VersionResolver — read-only lookup of a course version and its ordered units.
Published versions are immutable, so identical calls always return identical results.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.access.errors import NotFound, NotPublished, StorageUnavailable
from app.access.models import ContentUnitView, ResolvedVersion, VersionSelector
from app.models.content_unit import ContentUnit
from app.models.course import Course
from app.models.course_version import CourseVersion, VersionStatus

logger = logging.getLogger(__name__)

LATEST = "latest"


def parse_version_selector(raw: str | int | None) -> VersionSelector:
    """'latest' / None -> 'latest'; digits -> int. Anything else is a ValueError."""
    if raw is None:
        return LATEST
    if isinstance(raw, int):
        if raw < 1:
            raise ValueError("version number must be positive")
        return raw
    value = raw.strip().lower()
    if value in ("", LATEST):
        return LATEST
    if not value.isdigit() or int(value) < 1:
        raise ValueError(f"invalid version selector: {raw!r}")
    return int(value)


def unit_view(unit: ContentUnit) -> ContentUnitView:
    return ContentUnitView(
        id=unit.id,
        course_id=unit.course_id,
        version_number=unit.version_number,
        order_index=unit.order_index,
        storage_key=unit.storage_key or None,
        free_preview=bool(unit.free_preview),
        title=unit.title,
        duration_seconds=unit.duration_seconds or 0,
    )


class VersionResolver:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def resolve(
        self,
        course_id: str,
        selector: VersionSelector = LATEST,
        *,
        privileged: bool = False,
    ) -> ResolvedVersion:
        try:
            with self._session_factory() as db:
                version = self._find_version(db, course_id, selector)
                if version.status == VersionStatus.DRAFT and not privileged:
                    raise NotPublished(
                        f"course {course_id} version {version.version_number} is not published"
                    )
                units = (
                    db.query(ContentUnit)
                    .filter(ContentUnit.version_id == version.id)
                    .order_by(ContentUnit.order_index.asc())
                    .all()
                )
                return ResolvedVersion(
                    course_id=course_id,
                    version_number=version.version_number,
                    status=version.status,
                    units=tuple(unit_view(u) for u in units),
                )
        except SQLAlchemyError as e:
            logger.warning(
                "version_resolver_storage_error",
                extra={"course_id": course_id, "error": type(e).__name__},
            )
            raise StorageUnavailable(f"catalog read failed for course {course_id}") from e

    def resolve_unit(self, unit_id: str, *, privileged: bool = False) -> ContentUnitView:
        """Single unit lookup; a unit of a draft version is hidden like the version itself."""
        try:
            with self._session_factory() as db:
                row = (
                    db.query(ContentUnit, CourseVersion.status)
                    .join(CourseVersion, ContentUnit.version_id == CourseVersion.id)
                    .filter(ContentUnit.id == unit_id)
                    .one_or_none()
                )
                if row is None:
                    raise NotFound(f"content unit {unit_id} not found")
                unit, status = row
                if status == VersionStatus.DRAFT and not privileged:
                    raise NotPublished(f"content unit {unit_id} belongs to an unpublished version")
                return unit_view(unit)
        except SQLAlchemyError as e:
            logger.warning("version_resolver_storage_error", extra={"unit_id": unit_id, "error": type(e).__name__})
            raise StorageUnavailable(f"catalog read failed for unit {unit_id}") from e

    def _find_version(self, db: Session, course_id: str, selector: VersionSelector) -> CourseVersion:
        course_exists = db.query(Course.id).filter(Course.id == course_id).first()
        if not course_exists:
            raise NotFound(f"course {course_id} not found")

        if selector == LATEST:
            version = (
                db.query(CourseVersion)
                .filter(
                    CourseVersion.course_id == course_id,
                    CourseVersion.status == VersionStatus.PUBLISHED,
                )
                .order_by(CourseVersion.version_number.desc())
                .first()
            )
            if version is None:
                raise NotFound(f"course {course_id} has no published version")
            return version

        version = (
            db.query(CourseVersion)
            .filter(
                CourseVersion.course_id == course_id,
                CourseVersion.version_number == selector,
            )
            .one_or_none()
        )
        if version is None:
            raise NotFound(f"course {course_id} version {selector} not found")
        return version
