from datetime import datetime, timezone

import pytest

from services.sop_library.SOPLibraryRegistry import SOPLibraryRegistry
from services.sop_library.SOPLibraryViewModel import SOPLibraryViewModel
from shared.errors.exceptions import DeleteFailedError, LoadFailedError, RecordInvalidError
from shared.models.sop import GroupingMode


def _make_view_model(helper_config, repository, blob, organization_id="org-a"):
    return SOPLibraryViewModel(helper_config=helper_config, repository=repository, blob_client=blob, organization_id=organization_id)


@pytest.fixture
def populated(store, blob):
    store.add("sopCategories", "cat1", organizationId="org-a", nameOfCategory="Handling")
    store.add("sopFolders", "f1", organizationId="org-a", name="Safety")
    for index in range(3):
        path = f"pdfs/org-a/1700000000000_abcd000{index}_sop{index}.pdf"
        blob.add(path)
        store.add(
            "pdfCategories", f"d{index}",
            organizationId="org-a", pdfName=f"SOP {index}", pdfURL=blob.url_for(path),
            categoryId="cat1", subcategory="Restraint" if index else None,
            uploadedAt=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    store.add("pdfCategories", "foreign", organizationId="org-b", pdfName="Other org", pdfURL="gs://bucket/x.pdf")
    return store


async def test_load_exposes_only_own_organization(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)

    assert await view_model.do_load() is True

    assert view_model.is_loaded is True
    assert view_model.error is None
    assert {document.id for document in view_model.get_documents()} == {"d0", "d1", "d2"}
    assert all(document.organization_id == "org-a" for document in view_model.get_documents())
    assert view_model.get_category("cat1").name_of_category == "Handling"
    assert [folder.name for folder in view_model.get_folders()] == ["Safety"]


async def test_load_without_organization_is_a_quiet_no_op(helper_config, repository, blob, store):
    view_model = _make_view_model(helper_config, repository, blob, organization_id=None)

    assert await view_model.do_load() is False

    assert view_model.is_loaded is False
    assert view_model.error is None
    assert view_model.get_documents() == []
    assert store.calls == []


async def test_failed_refresh_keeps_previous_snapshot(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()
    before = view_model.get_documents()

    populated.fail_collections = {"sopFolders"}
    with pytest.raises(LoadFailedError):
        await view_model.do_refresh()

    assert view_model.get_documents() == before
    assert len(view_model.get_documents()) == 3
    assert isinstance(view_model.error, LoadFailedError)
    assert view_model.is_loading is False
    assert view_model.get_snapshot().error is not None


async def test_refresh_replaces_snapshot(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()

    populated.add("pdfCategories", "d9", organizationId="org-a", pdfName="New", pdfURL="gs://b/new.pdf")
    populated.collections["pdfCategories"].pop("d0")
    await view_model.do_refresh()

    assert {document.id for document in view_model.get_documents()} == {"d1", "d2", "d9"}


async def test_timestamps_are_localized(helper_config, repository, blob, populated, monkeypatch):
    monkeypatch.setenv("TIMEZONE", "Europe/Berlin")
    from services.sop_library.SOPRepository import SOPRepository
    view_model = _make_view_model(helper_config, SOPRepository(helper_config=helper_config, store_client=populated), blob)

    await view_model.do_load()

    uploaded_at = view_model.get_document("d0").uploaded_at
    assert uploaded_at.utcoffset().total_seconds() == 3600
    assert uploaded_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


async def test_delete_removes_blob_record_and_local_entry(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()
    path = blob.parse_blob_url(view_model.get_document("d1").pdf_url)[1]

    await view_model.do_delete_document("d1")

    assert path not in blob.objects
    assert populated.get_fields("pdfCategories", "d1") is None
    assert view_model.get_document("d1") is None


async def test_delete_keeps_record_when_blob_delete_fails(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()
    blob.fail_delete_status = 503

    with pytest.raises(DeleteFailedError):
        await view_model.do_delete_document("d1")

    assert populated.get_fields("pdfCategories", "d1") is not None
    assert view_model.get_document("d1") is not None
    assert not [call for call in populated.calls if call[0] == "delete"]


async def test_delete_proceeds_when_blob_is_already_gone(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()
    blob.objects.clear()

    await view_model.do_delete_document("d2")

    assert populated.get_fields("pdfCategories", "d2") is None
    assert view_model.get_document("d2") is None


async def test_delete_surfaces_metadata_failure(helper_config, repository, blob, populated):
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()
    populated.fail_writes = True

    with pytest.raises(DeleteFailedError):
        await view_model.do_delete_document("d0")

    assert view_model.get_document("d0") is not None


async def test_delete_rejects_unknown_or_unlinked_records(helper_config, repository, blob, populated):
    populated.add("pdfCategories", "nourl", organizationId="org-a", pdfName="No file")
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()

    with pytest.raises(RecordInvalidError):
        await view_model.do_delete_document("missing")
    with pytest.raises(RecordInvalidError):
        await view_model.do_delete_document("nourl")

    assert blob.calls == []
    assert populated.get_fields("pdfCategories", "nourl") is not None


async def test_delete_uses_collection_the_record_came_from(helper_config, repository, blob, store):
    blob.add("pdfs/org-a/legacy.pdf")
    store.add("PDFCategories", "legacy", organizationId="org-a", pdfName="Legacy", pdfURL=blob.url_for("pdfs/org-a/legacy.pdf"))
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()

    await view_model.do_delete_document("legacy")

    assert ("delete", "PDFCategories", "legacy") in store.calls


async def test_grouping_uses_category_and_folder_names(helper_config, repository, blob, populated):
    populated.collections["pdfCategories"]["d0"]["folderId"] = "f1"
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()

    by_category = view_model.group_documents(GroupingMode.CATEGORY)
    by_folder = view_model.group_documents(GroupingMode.FOLDER)

    assert [(group.key, group.label) for group in by_category] == [("cat1", "Handling")]
    assert [subgroup.subcategory for subgroup in by_category[0].subgroups] == ["Restraint", "Uncategorized"]
    assert [(group.key, group.label) for group in by_folder] == [("", None), ("f1", "Safety")]


async def test_selection_and_folder_accessors(helper_config, repository, blob, populated):
    populated.collections["pdfCategories"]["d2"]["folderId"] = "f1"
    view_model = _make_view_model(helper_config, repository, blob)
    await view_model.do_load()

    view_model.select_category("cat1")

    assert view_model.selected_category == "cat1"
    assert [document.id for document in view_model.get_documents_for_folder("f1")] == ["d2"]
    assert len(view_model.get_documents_for_category("cat1")) == 3


async def test_registry_keeps_one_view_model_per_organization(helper_config, repository, blob, populated):
    registry = SOPLibraryRegistry(helper_config=helper_config, repository=repository, blob_client=blob)

    first = await registry.do_get_loaded("org-a")
    second = await registry.do_get_loaded("org-a")

    assert first is second
    assert registry.get_view_model("org-b") is not first
    queries = [call for call in populated.calls if call[0] == "query"]
    registry.mark_stale("org-a")
    await registry.do_get_loaded("org-a")
    assert len([call for call in populated.calls if call[0] == "query"]) == 2 * len(queries)


async def test_failed_reload_of_stale_library_keeps_snapshot(helper_config, repository, blob, populated):
    registry = SOPLibraryRegistry(helper_config=helper_config, repository=repository, blob_client=blob)
    view_model = await registry.do_get_loaded("org-a")
    documents = view_model.get_documents()
    registry.mark_stale("org-a")
    populated.fail_collections = {"pdfCategories"}

    assert await registry.do_get_loaded("org-a") is view_model

    assert view_model.get_documents() == documents
    assert isinstance(view_model.error, LoadFailedError)
    assert view_model.is_stale is True
