"""Tests for VersionResolver and version selector parsing."""
import pytest
from sqlalchemy.exc import OperationalError

from app.access.errors import NotFound, NotPublished, StorageUnavailable
from app.access.resolver import LATEST, VersionResolver, parse_version_selector
from app.services.catalog.service import CatalogService


def _units(version_tag, count=3, free_first=False):
    return [
        {
            "title": f"{version_tag} lesson {n}",
            "storage_key": f"videos/{version_tag}/{n}.mp4",
            "free_preview": free_first and n == 1,
        }
        for n in range(1, count + 1)
    ]


@pytest.fixture
def catalog(db):
    svc = CatalogService(db)
    course = svc.create_course("Python basics", instructor_name="Ana")
    v1 = svc.create_draft_version(course.id, _units("v1"))
    svc.publish_version(v1.id)
    v2 = svc.create_draft_version(course.id, _units("v2", count=5, free_first=True))
    svc.publish_version(v2.id)
    v3 = svc.create_draft_version(course.id, _units("v3"))
    return {"course": course, "v1": v1, "v2": v2, "v3": v3, "svc": svc}


class TestParseSelector:
    def test_latest(self):
        assert parse_version_selector("latest") == LATEST
        assert parse_version_selector(" LATEST ") == LATEST
        assert parse_version_selector(None) == LATEST

    def test_number(self):
        assert parse_version_selector("2") == 2
        assert parse_version_selector(3) == 3

    @pytest.mark.parametrize("raw", ["0", "-1", "v2", "1.5", 0])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_version_selector(raw)


class TestResolve:
    def test_latest_skips_draft(self, session_factory, catalog):
        resolved = VersionResolver(session_factory).resolve(catalog["course"].id, LATEST)
        assert resolved.version_number == 2
        assert [u.order_index for u in resolved.units] == [1, 2, 3, 4, 5]
        assert resolved.units[0].free_preview is True
        assert all(u.version_number == 2 for u in resolved.units)

    def test_explicit_version(self, session_factory, catalog):
        resolved = VersionResolver(session_factory).resolve(catalog["course"].id, 1)
        assert resolved.version_number == 1
        assert len(resolved.units) == 3
        assert resolved.units[0].storage_key == "videos/v1/1.mp4"

    def test_repeatable(self, session_factory, catalog):
        resolver = VersionResolver(session_factory)
        assert resolver.resolve(catalog["course"].id, 2) == resolver.resolve(catalog["course"].id, 2)

    def test_draft_not_published(self, session_factory, catalog):
        with pytest.raises(NotPublished):
            VersionResolver(session_factory).resolve(catalog["course"].id, 3)

    def test_draft_visible_when_privileged(self, session_factory, catalog):
        resolved = VersionResolver(session_factory).resolve(catalog["course"].id, 3, privileged=True)
        assert resolved.status == "draft"

    def test_archived_excluded_from_latest(self, session_factory, catalog):
        catalog["svc"].archive_version(catalog["v2"].id)
        resolver = VersionResolver(session_factory)
        assert resolver.resolve(catalog["course"].id, LATEST).version_number == 1
        # still reachable for buyers bound to it
        assert resolver.resolve(catalog["course"].id, 2).version_number == 2

    def test_unknown_course(self, session_factory):
        with pytest.raises(NotFound):
            VersionResolver(session_factory).resolve("missing", LATEST)

    def test_unknown_version(self, session_factory, catalog):
        with pytest.raises(NotFound):
            VersionResolver(session_factory).resolve(catalog["course"].id, 9)

    def test_course_without_published_version(self, session_factory, db):
        svc = CatalogService(db)
        course = svc.create_course("Empty")
        svc.create_draft_version(course.id, _units("d"))
        with pytest.raises(NotFound):
            VersionResolver(session_factory).resolve(course.id, LATEST)

    def test_storage_failure(self):
        def broken():
            raise OperationalError("SELECT 1", {}, Exception("down"))

        with pytest.raises(StorageUnavailable):
            VersionResolver(broken).resolve("C", LATEST)


class TestResolveUnit:
    def test_published_unit(self, session_factory, catalog):
        unit_id = catalog["v2"].units[1].id
        view = VersionResolver(session_factory).resolve_unit(unit_id)
        assert view.id == unit_id
        assert view.version_number == 2

    def test_draft_unit_hidden(self, session_factory, catalog):
        unit_id = catalog["v3"].units[0].id
        with pytest.raises(NotPublished):
            VersionResolver(session_factory).resolve_unit(unit_id)

    def test_unknown_unit(self, session_factory):
        with pytest.raises(NotFound):
            VersionResolver(session_factory).resolve_unit("nope")
