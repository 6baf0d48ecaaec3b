from datetime import datetime, timezone

import pytest

from services.document_store import SqlDocumentStore
from services.errors import NotFoundError, StorageError
from services.file_storage import (
    LocalFileStorage,
    build_upload_path,
    locator_owner,
    owner_scope,
    release_media,
    safe_filename,
)
from vault_fakes import VAULT_OTHER_USER_ID, VAULT_USER_ID

NOW = datetime(2026, 10, 18, 8, 30, tzinfo=timezone.utc)


def _resource_document(**overrides):
    document = {
        "user_id": VAULT_USER_ID,
        "title": "Doc",
        "type": "article",
        "tags": [],
        "notes": "",
        "created_at": NOW,
        "updated_at": NOW,
    }
    document.update(overrides)
    return document


@pytest.mark.asyncio
async def test_sql_document_store_crud_and_equality_query(vault_session_maker):
    async with vault_session_maker() as session:
        documents = SqlDocumentStore(session)
        first = await documents.insert("resources", _resource_document(title="One"))
        await documents.insert("resources", _resource_document(title="Two", type="video"))
        await documents.insert("resources", _resource_document(title="Three", user_id=VAULT_OTHER_USER_ID))

        videos = await documents.query_by_equality("resources", {"user_id": VAULT_USER_ID, "type": "video"})
        assert [document["title"] for document in videos] == ["Two"]

        await documents.update("resources", first, {"notes": "updated", "tags": ["a"]})
        stored = await documents.get("resources", first)
        assert stored["notes"] == "updated"
        assert stored["tags"] == ["a"]

        await documents.remove("resources", first)
        assert await documents.get("resources", first) is None
        await documents.ping()


@pytest.mark.asyncio
async def test_sql_document_store_rejects_unknown_collections_and_fields(vault_session_maker):
    async with vault_session_maker() as session:
        documents = SqlDocumentStore(session)

        with pytest.raises(StorageError):
            await documents.insert("bookmarks", {"title": "x"})
        with pytest.raises(StorageError):
            await documents.query_by_equality("resources", {"owner": VAULT_USER_ID})
        with pytest.raises(NotFoundError):
            await documents.update("resources", "missing", {"notes": "x"})
        with pytest.raises(NotFoundError):
            await documents.remove("resources", "missing")


@pytest.mark.asyncio
async def test_sql_document_store_wraps_commit_failures(vault_session_maker):
    async with vault_session_maker() as session:
        documents = SqlDocumentStore(session)

        # title is NOT NULL
        with pytest.raises(StorageError):
            await documents.insert("resources", _resource_document(title=None))


@pytest.mark.parametrize(
    "name,expected",
    [
        ("holiday photo.jpg", "holiday_photo.jpg"),
        ("../../etc/passwd", "passwd"),
        (".hidden", "hidden"),
        ("", "upload.bin"),
    ],
)
def test_safe_filename(name, expected):
    assert safe_filename(name) == expected


def test_build_upload_path_is_owner_scoped():
    locator = build_upload_path(VAULT_USER_ID, "my clip.mp4")

    assert locator.startswith(f"resources/{owner_scope(VAULT_USER_ID)}/")
    assert locator.endswith("_my_clip.mp4")
    assert locator_owner(locator) == owner_scope(VAULT_USER_ID)
    assert build_upload_path(VAULT_USER_ID, "a.png") != build_upload_path(VAULT_USER_ID, "a.png")
    assert locator_owner("elsewhere/x.png") is None


def test_owner_scope_keeps_lookalike_ids_apart():
    scopes = {owner_scope(owner) for owner in ["alice+x@idp", "alice_x_idp", "alice x idp", "..", "alice/x"]}

    assert len(scopes) == 5
    assert all(scope and "/" not in scope and "." not in scope for scope in scopes)
    assert locator_owner(build_upload_path("alice+x@idp", "a.png")) != locator_owner(build_upload_path("alice_x_idp", "a.png"))


@pytest.mark.asyncio
async def test_local_storage_put_resolve_delete(tmp_path):
    storage = LocalFileStorage(root=str(tmp_path), public_base_url="https://cdn.example.com/media/")

    locator = await storage.put("resources/vault-user/1_abc_a.png", b"png", "image/png")

    assert storage.path_for(locator).read_bytes() == b"png"
    assert storage.resolve(locator) == "https://cdn.example.com/media/resources/vault-user/1_abc_a.png"
    await storage.delete(locator)
    assert not storage.path_for(locator).exists()
    with pytest.raises(StorageError):
        await storage.delete(locator)


@pytest.mark.parametrize("locator", ["../outside.png", "/etc/passwd", "", "resources/../../x"])
def test_local_storage_rejects_escaping_locators(tmp_path, locator):
    storage = LocalFileStorage(root=str(tmp_path))

    with pytest.raises(StorageError):
        storage.path_for(locator)


@pytest.mark.asyncio
async def test_release_media_is_best_effort(tmp_path):
    storage = LocalFileStorage(root=str(tmp_path))

    assert await release_media(storage, None) is False
    assert await release_media(storage, "resources/vault-user/missing.png") is False
    assert await release_media(storage, "../escape") is False

    locator = await storage.put("resources/vault-user/present.png", b"x")
    assert await release_media(storage, locator) is True
