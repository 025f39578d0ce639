"""
CatalogService — course versions as append-only snapshots.
A draft is filled once, then published; published versions are only ever archived, never edited.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.content_unit import ContentUnit
from app.models.course import Course
from app.models.course_version import CourseVersion, VersionStatus

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    def create_course(self, title: str, instructor_name: str = "", description: str = "") -> Course:
        course = Course(title=title, instructor_name=instructor_name, description=description)
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)
        return course

    def get_course(self, course_id: str) -> Course | None:
        return self.db.query(Course).filter(Course.id == course_id).one_or_none()

    def get_version(self, version_id: str) -> CourseVersion | None:
        return self.db.query(CourseVersion).filter(CourseVersion.id == version_id).one_or_none()

    def list_versions(self, course_id: str) -> list[CourseVersion]:
        return (
            self.db.query(CourseVersion)
            .filter(CourseVersion.course_id == course_id)
            .order_by(CourseVersion.version_number.desc())
            .all()
        )

    def create_draft_version(
        self,
        course_id: str,
        units: Iterable[dict[str, Any]],
        change_log: str | None = None,
        created_by: str = "admin",
    ) -> CourseVersion:
        """Next version number = max + 1. Units keep the given order unless order_index is set."""
        if self.get_course(course_id) is None:
            raise LookupError(f"course {course_id} not found")
        current = (
            self.db.query(func.max(CourseVersion.version_number))
            .filter(CourseVersion.course_id == course_id)
            .scalar()
        )
        version = CourseVersion(
            course_id=course_id,
            version_number=(current or 0) + 1,
            status=VersionStatus.DRAFT,
            change_log=change_log,
            created_by=created_by,
        )
        self.db.add(version)
        self.db.flush()
        for position, data in enumerate(units, start=1):
            self.db.add(
                ContentUnit(
                    course_id=course_id,
                    version_id=version.id,
                    version_number=version.version_number,
                    title=data["title"],
                    storage_key=data.get("storage_key") or None,
                    duration_seconds=int(data.get("duration_seconds") or 0),
                    free_preview=bool(data.get("free_preview", False)),
                    order_index=int(data["order_index"] if data.get("order_index") is not None else position),
                )
            )
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ValueError("duplicate order_index within the version") from e
        self.db.refresh(version)
        logger.info(
            "course_version_drafted",
            extra={"course_id": course_id, "version_number": version.version_number},
        )
        return version

    def publish_version(self, version_id: str) -> CourseVersion:
        version = self._require(version_id)
        if version.status != VersionStatus.DRAFT:
            raise ValueError(f"only drafts can be published (status={version.status})")
        version.status = VersionStatus.PUBLISHED
        version.published_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(version)
        logger.info(
            "course_version_published",
            extra={"course_id": version.course_id, "version_number": version.version_number},
        )
        return version

    def archive_version(self, version_id: str) -> CourseVersion:
        version = self._require(version_id)
        if version.status != VersionStatus.PUBLISHED:
            raise ValueError(f"only published versions can be archived (status={version.status})")
        version.status = VersionStatus.ARCHIVED
        version.archived_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(version)
        logger.info(
            "course_version_archived",
            extra={"course_id": version.course_id, "version_number": version.version_number},
        )
        return version

    def _require(self, version_id: str) -> CourseVersion:
        version = self.get_version(version_id)
        if version is None:
            raise LookupError(f"version {version_id} not found")
        return version
