"""Tests for the versioning bounded context (baseline and named projects)."""

from datetime import datetime

import pytest

from pagepolish.dom import LiveDocument
from pagepolish.domains.shared.errors import BaselineImmutableError, ProjectNotFoundError
from pagepolish.domains.shared.kernel import BASELINE_ID, CONTROL_SURFACE_ATTR
from pagepolish.domains.versioning import (
    BaselineCaptured,
    DocumentRestored,
    DocumentSnapshot,
    Project,
    ProjectChanged,
    SiteRecord,
    VersionStore,
    capture,
)
from pagepolish.storage import JsonFileKeyValueStore


@pytest.fixture
def document(sample_html, sample_url):
    return LiveDocument(sample_html, sample_url)


@pytest.fixture
def versions(kv, events):
    return VersionStore(kv, event_publisher=events)


def _edit_title(document, text):
    document.soup.find("h1").string = text


class TestBaseline:
    @pytest.mark.asyncio
    async def test_captured_once(self, versions, document, sample_url, events):
        first = await versions.ensure_baseline(sample_url, document)
        _edit_title(document, "Changed")
        second = await versions.ensure_baseline(sample_url, document)
        assert second.html == first.html
        assert "Welcome to Acme" in second.body_markup()
        assert len(events.of_type(BaselineCaptured)) == 1

    @pytest.mark.asyncio
    async def test_keyed_by_normalized_origin(self, versions, kv, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        assert kv.keys() == ["polish_site::https://shop.example.com/products"]
        assert await versions.get_baseline("https://shop.example.com/products/") is not None

    @pytest.mark.asyncio
    async def test_baseline_excludes_control_surface(self, versions, document, sample_url):
        document.inject_control_element("div", attrs={"id": "overlay"})
        baseline = await versions.ensure_baseline(sample_url, document)
        assert CONTROL_SURFACE_ATTR not in baseline.html

    @pytest.mark.asyncio
    async def test_baseline_cannot_be_modified(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        with pytest.raises(BaselineImmutableError):
            await versions.save(sample_url, BASELINE_ID, document)
        with pytest.raises(BaselineImmutableError):
            await versions.rename_project(sample_url, BASELINE_ID, "Mine")
        with pytest.raises(BaselineImmutableError):
            await versions.delete_project(sample_url, BASELINE_ID)


class TestProjects:
    @pytest.mark.asyncio
    async def test_create_with_default_name(self, versions, sample_url):
        project = await versions.create_project(sample_url)
        assert project.id.startswith("project_")
        assert project.name.startswith("Project ")
        assert not project.is_saved
        assert [p.id for p in await versions.list_projects(sample_url)] == [project.id]

    @pytest.mark.asyncio
    async def test_rename(self, versions, sample_url):
        project = await versions.create_project(sample_url, "Draft")
        renamed = await versions.rename_project(sample_url, project.id, "  Hero tweaks ")
        assert renamed.name == "Hero tweaks"
        with pytest.raises(ValueError):
            await versions.rename_project(sample_url, project.id, "   ")

    @pytest.mark.asyncio
    async def test_duplicate_project_and_baseline(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        source = await versions.create_project(sample_url, "A", capture(document))
        copy = await versions.duplicate_project(sample_url, source.id)
        assert copy.name == "Copy of A"
        assert copy.source_project_id == source.id
        assert copy.document_snapshot.html == source.document_snapshot.html

        live_copy = await versions.duplicate_project(sample_url, BASELINE_ID)
        assert live_copy.name == "Copy of Live Website"
        assert live_copy.source_project_id == BASELINE_ID

    @pytest.mark.asyncio
    async def test_delete(self, versions, sample_url, events):
        project = await versions.create_project(sample_url, "Temp")
        await versions.delete_project(sample_url, project.id)
        assert await versions.list_projects(sample_url) == []
        assert events.of_type(ProjectChanged)[-1].action == "deleted"
        with pytest.raises(ProjectNotFoundError):
            await versions.delete_project(sample_url, project.id)

    @pytest.mark.asyncio
    async def test_resave_preserves_created_at_and_source(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        copy = await versions.duplicate_project(sample_url, BASELINE_ID)
        _edit_title(document, "Edited")
        saved = await versions.save(sample_url, copy.id, document)
        assert saved.created_at == copy.created_at
        assert saved.source_project_id == BASELINE_ID
        assert saved.updated_at >= copy.updated_at
        assert "Edited" in saved.document_snapshot.html

    @pytest.mark.asyncio
    async def test_origins_are_isolated(self, versions, sample_url):
        await versions.create_project(sample_url, "Mine")
        assert await versions.list_projects("https://other.example.com/") == []


class TestSwitchAndDiscard:
    @pytest.mark.asyncio
    async def test_switch_restores_body_and_keeps_head(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        _edit_title(document, "Version A")
        project = await versions.create_project(sample_url, "A", capture(document))
        head_script = document.head.find("script")

        await versions.switch_to(sample_url, BASELINE_ID, document)
        assert document.soup.find("h1").get_text() == "Welcome to Acme"
        assert document.head.find("script") is head_script
        assert document.body.get("class") == ["home"]

        await versions.switch_to(sample_url, project.id, document)
        assert document.soup.find("h1").get_text() == "Version A"

    @pytest.mark.asyncio
    async def test_switch_leaves_no_control_surface_in_restored_body(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        project = await versions.create_project(sample_url, "Dirty")
        dirty_html = (
            '<html><body><p>saved</p><div data-polish-extension="true">stale overlay</div></body></html>'
        )
        await versions.save(sample_url, project.id, DocumentSnapshot(html=dirty_html))
        live_overlay = document.inject_control_element("div", attrs={"id": "live"})

        await versions.switch_to(sample_url, project.id, document)

        assert "stale overlay" not in str(document.body)
        assert document.control_surface() == [live_overlay]
        assert CONTROL_SURFACE_ATTR not in document.serialize()

    @pytest.mark.asyncio
    async def test_switch_to_unknown_project(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        with pytest.raises(ProjectNotFoundError):
            await versions.switch_to(sample_url, "project_missing", document)

    @pytest.mark.asyncio
    async def test_discard_unsaved_project_reproduces_baseline(self, versions, document, sample_url):
        baseline = await versions.ensure_baseline(sample_url, document)
        project = await versions.create_project(sample_url, "Fresh")
        _edit_title(document, "Unsaved edit")

        source = await versions.discard(sample_url, project.id, document)

        assert source == "baseline"
        assert document.body_markup() == baseline.body_markup()

    @pytest.mark.asyncio
    async def test_discard_saved_project_reverts_to_last_save(self, versions, document, sample_url):
        await versions.ensure_baseline(sample_url, document)
        _edit_title(document, "Saved title")
        project = await versions.create_project(sample_url, "A", capture(document))
        _edit_title(document, "Later edit")

        assert await versions.discard(sample_url, project.id, document) == "project"
        assert document.soup.find("h1").get_text() == "Saved title"

    @pytest.mark.asyncio
    async def test_save_a_switch_to_new_b_discard_reverts_to_baseline(
        self, versions, document, sample_url, events
    ):
        baseline = await versions.ensure_baseline(sample_url, document)
        a = await versions.create_project(sample_url, "A")
        _edit_title(document, "Project A content")
        await versions.save(sample_url, a.id, document)

        b = await versions.create_project(sample_url, "B")
        await versions.switch_to(sample_url, b.id, document)
        await versions.discard(sample_url, b.id, document)

        assert document.body_markup() == baseline.body_markup()
        assert "Project A content" not in document.serialize()
        restored = events.of_type(DocumentRestored)
        assert [(e.reason, e.source) for e in restored] == [("switch", "baseline"), ("discard", "baseline")]


class TestEntities:
    def test_default_name_format(self):
        assert Project.default_name(datetime(2024, 3, 5, 15, 7)) == "Project Mar 5, 03:07 PM"
        assert Project.default_name(datetime(2024, 12, 25, 0, 30)) == "Project Dec 25, 12:30 AM"

    def test_site_record_round_trip(self):
        record = SiteRecord(
            origin="https://a.test",
            baseline=DocumentSnapshot(html="<html><body>x</body></html>", captured_at=5),
            projects=[Project(id="project_1_abc", name="P", created_at=1, updated_at=2)],
        )
        restored = SiteRecord.from_dict("https://a.test", record.to_dict())
        assert restored.baseline == record.baseline
        assert restored.projects[0].name == "P"
        assert restored.projects[0].is_saved is False

    def test_project_persisted_shape(self):
        data = Project(id="project_1_abc", name="P").to_dict()
        assert set(data) == {"id", "name", "html", "createdAt", "updatedAt", "isLive", "sourceProjectId"}
        assert data["isLive"] is False


@pytest.mark.storage
class TestFileBackedVersions:
    @pytest.mark.asyncio
    async def test_projects_survive_a_new_store_instance(self, tmp_path, document, sample_url):
        first = VersionStore(JsonFileKeyValueStore(tmp_path))
        await first.ensure_baseline(sample_url, document)
        project = await first.create_project(sample_url, "Durable", capture(document))

        second = VersionStore(JsonFileKeyValueStore(tmp_path))
        loaded = await second.get_project(sample_url, project.id)
        assert loaded.name == "Durable"
        assert loaded.document_snapshot.html == project.document_snapshot.html
