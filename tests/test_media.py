"""Content-addressed media ingestion, reference counting and serving."""

import inspect
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from shop.api.v1.endpoints import admin_catalog
from shop.core.config import settings
from shop.core.errors import ValidationError
from shop.db import session as db_session
from shop.db.base import Base
from shop.db.session import build_engine
from shop.main import app
from shop.models import MediaAsset, Product, ProductMedia, ProductTranslation
from shop.services import media_service
from shop.services.user_service import create_user
from shop.storage import get_storage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"pixel-data" * 20


def _setup_db(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = build_engine(f"sqlite:///{tmp_path / 'media.db'}")
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", session_local)
    monkeypatch.setattr("shop.main.engine", engine)
    monkeypatch.setattr("shop.main.SessionLocal", session_local)
    monkeypatch.setattr(settings, "media_root", str(tmp_path / "media"))
    return session_local


def _admin_headers(client: TestClient, session_local: sessionmaker) -> dict[str, str]:
    with session_local() as db:
        create_user(db, "admin@x.com", "password123", role="admin")
    response = client.post("/api/auth/admin-login", json={"email": "admin@x.com", "password": "password123"})
    return {"Authorization": f"Bearer {response.json()['token']}"}


def _create_product(session_local: sessionmaker, name: str = "Mug") -> int:
    with session_local() as db:
        product = Product(price=Decimal("9.50"))
        product.translations.append(ProductTranslation(language="en", name=name, description=""))
        db.add(product)
        db.commit()
        return product.id


def _upload(client: TestClient, headers: dict[str, str], filename: str, data: bytes = PNG_BYTES, **fields):
    return client.post(
        "/api/admin/media/upload",
        files={"file": (filename, data, fields.pop("content_type", "image/png"))},
        data={key: str(value) for key, value in fields.items()},
        headers=headers,
    )


def test_same_bytes_under_different_names_store_one_asset(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _admin_headers(client, session_local)
        first = _upload(client, headers, "front.png")
        second = _upload(client, headers, "copy of front.png")

    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["deduplicated"] is False
    assert second.json()["deduplicated"] is True
    assert first.json()["assetId"] == second.json()["assetId"]
    assert first.json()["url"].startswith("/media/")

    stored = list((tmp_path / "media" / settings.images_bucket).iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == PNG_BYTES

    with session_local() as db:
        assert db.scalar(select(func.count()).select_from(MediaAsset)) == 1


def test_unlink_removes_asset_only_after_last_reference(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    mug = _create_product(session_local, "Mug")
    cup = _create_product(session_local, "Cup")

    with TestClient(app) as client:
        headers = _admin_headers(client, session_local)
        first = _upload(client, headers, "a.png", productId=mug).json()
        second = _upload(client, headers, "b.png", productId=cup).json()
        asset_id = first["assetId"]
        assert second["assetId"] == asset_id

        remove_first = client.delete(f"/api/admin/media/{first['link']['id']}", headers=headers)
        with session_local() as db:
            assert db.get(MediaAsset, asset_id) is not None
            assert media_service.reference_count(db, asset_id) == 1

        remove_second = client.delete(f"/api/admin/media/{second['link']['id']}", headers=headers)
        missing = client.delete(f"/api/admin/media/{second['link']['id']}", headers=headers)

    assert remove_first.json()["assetDeleted"] is False
    assert remove_second.json()["assetDeleted"] is True
    assert missing.status_code == 404
    assert list((tmp_path / "media" / settings.images_bucket).iterdir()) == []

    with session_local() as db:
        assert db.get(MediaAsset, asset_id) is None


def test_link_display_order_and_thumbnail_swap(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local)

    with TestClient(app) as client:
        headers = _admin_headers(client, session_local)
        first = _upload(client, headers, "1.png", data=b"one", productId=product_id).json()
        second = _upload(client, headers, "2.png", data=b"two", productId=product_id).json()
        thumb = _upload(client, headers, "3.png", data=b"three", productId=product_id, isThumbnail="true").json()
        listing = client.get(f"/api/admin/products/{product_id}/media", headers=headers)
        promoted = client.post(
            f"/api/admin/products/{product_id}/media/{second['link']['id']}/thumbnail", headers=headers
        )
        storefront = client.get(f"/api/products/{product_id}")

    assert first["link"]["displayOrder"] == 0
    assert second["link"]["displayOrder"] == 1
    assert thumb["link"]["displayOrder"] == 0
    orders = {link["id"]: link["displayOrder"] for link in listing.json()}
    assert orders[thumb["link"]["id"]] == 0
    assert orders[first["link"]["id"]] == 2
    assert promoted.json()["isThumbnail"] is True
    assert storefront.json()["thumbnailUrl"] == second["url"]


def test_upload_validation(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    monkeypatch.setattr(settings, "max_upload_bytes", 1024 * 1024)

    with TestClient(app) as client:
        headers = _admin_headers(client, session_local)
        wrong_type = _upload(client, headers, "notes.txt", data=b"hello", content_type="text/plain")
        too_large = _upload(client, headers, "big.png", data=b"x" * (1024 * 1024 + 1))
        missing_product = _upload(client, headers, "p.png", productId=999)
        video = _upload(client, headers, "clip.mp4", data=b"\x00\x00video", content_type="video/mp4", type="video")

    assert wrong_type.status_code == 400
    assert wrong_type.json()["error"] == "Unsupported file type"
    assert too_large.status_code == 400
    assert too_large.json()["error"] == "File too large (max 1MB)"
    assert missing_product.status_code == 404
    assert video.status_code == 201
    assert video.json()["type"] == "video"
    assert list((tmp_path / "media" / settings.images_bucket).glob("*")) == []
    assert len(list((tmp_path / "media" / settings.videos_bucket).iterdir())) == 1


def test_ingest_rejects_image_mime_for_video_type(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with session_local() as db:
        with pytest.raises(ValidationError):
            media_service.ingest(db, get_storage(), PNG_BYTES, "a.png", "image/png", "video")


def test_media_is_served_from_both_routes(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _admin_headers(client, session_local)
        url = _upload(client, headers, "served.png").json()["url"]
        key = url.rsplit("/", 1)[-1]
        direct = client.get(url)
        fallback = client.get(f"/{key}")
        not_media = client.get("/readme.txt")
        unknown = client.get("/media/missing.png")

    assert direct.status_code == 200
    assert direct.content == PNG_BYTES
    assert direct.headers["content-type"] == "image/png"
    assert fallback.content == PNG_BYTES
    assert not_media.status_code == 404
    assert not_media.json()["error"] == "Not a media file"
    assert unknown.status_code == 404


def test_storage_key_is_sanitized() -> None:
    key = media_service.storage_key_for("../../etc/pass wd.png", "ab" * 32)
    assert "/" not in key
    assert key.endswith("-abababababab-etc_pass_wd.png")


def _failing_commit() -> None:
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


def test_same_name_same_millisecond_uploads_keep_separate_blobs(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    monkeypatch.setattr(media_service, "time", SimpleNamespace(time=lambda: 1_700_000_000.0))
    storage = get_storage()

    with session_local() as db:
        first, _, _ = media_service.ingest(db, storage, b"AAAA", "x.png", "image/png")
        second, _, _ = media_service.ingest(db, storage, b"BBBB", "x.png", "image/png")
        first_key, second_key = first.storage_key, second.storage_key

        assert first_key != second_key
        assert first_key.startswith("1700000000000-")
        assert storage.images.get(first_key) == b"AAAA"
        assert storage.images.get(second_key) == b"BBBB"

        blob = media_service.release_asset(db, second)
        db.commit()
        media_service.delete_blobs(storage, [blob])

    assert storage.images.get(first_key) == b"AAAA"
    assert storage.images.get(second_key) is None


def test_unlink_keeps_blob_when_commit_fails(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local)
    storage = get_storage()

    with session_local() as db:
        asset, link, _ = media_service.ingest(db, storage, PNG_BYTES, "a.png", "image/png", product_id=product_id)
        asset_id, link_id, key = asset.id, link.id, asset.storage_key

        monkeypatch.setattr(db, "commit", _failing_commit)
        with pytest.raises(OperationalError):
            media_service.unlink(db, storage, link_id)
        db.rollback()

        assert storage.images.get(key) == PNG_BYTES
        assert db.get(MediaAsset, asset_id) is not None


def test_ingest_removes_new_blob_when_commit_fails(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    storage = get_storage()

    with session_local() as db:
        monkeypatch.setattr(db, "commit", _failing_commit)
        with pytest.raises(OperationalError):
            media_service.ingest(db, storage, PNG_BYTES, "a.png", "image/png")

    with session_local() as db:
        assert db.scalar(select(func.count()).select_from(MediaAsset)) == 0
    assert list((tmp_path / "media" / settings.images_bucket).glob("*")) == []


def test_upload_handler_runs_in_worker_thread() -> None:
    assert not inspect.iscoroutinefunction(admin_catalog.upload_media)
