"""Tests for worklogs and the image storage they point at."""

import pytest
import sys
import os
from urllib.parse import urlparse, parse_qs

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import register
from study_tracker.services import storage

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _upload(client, auth, bucket=storage.WORKLOG_IMAGES, content_type="image/png"):
    return client.post(
        f"/api/storage/{bucket}",
        files={"file": ("photo.png", PNG, content_type)},
        headers=auth,
    )


class TestStorage:

    def test_upload_and_download(self, client, auth):
        resp = _upload(client, auth)
        assert resp.status_code == 201
        data = resp.json()
        assert data["storage_path"].endswith(".png")
        download = client.get(data["signed_url"])
        assert download.status_code == 200
        assert download.content == PNG

    def test_upload_lands_in_user_folder(self, client, auth):
        user_id = client.get("/api/auth/me", headers=auth).json()["id"]
        path = _upload(client, auth).json()["storage_path"]
        assert path.startswith(f"{user_id}/")

    def test_non_image_rejected(self, client, auth):
        assert _upload(client, auth, content_type="application/pdf").status_code == 400

    def test_unknown_bucket(self, client, auth):
        assert _upload(client, auth, bucket="secrets").status_code == 404

    def test_tampered_token(self, client, auth):
        url = _upload(client, auth).json()["signed_url"]
        assert client.get(url + "x").status_code == 403

    def test_token_bound_to_bucket(self, client, auth):
        url = _upload(client, auth).json()["signed_url"]
        token = parse_qs(urlparse(url).query)["token"][0]
        resp = client.get(f"/api/storage/{storage.ASSIGNMENT_IMAGES}/object", params={"token": token})
        assert resp.status_code == 403

    def test_path_traversal_rejected(self):
        with pytest.raises(ValueError):
            storage.object_path(storage.WORKLOG_IMAGES, "../../etc/passwd")

    def test_owned_key_shape(self):
        key = "u1/0b5a3f6e-2c1d-4e8f-9a7b-1c2d3e4f5a6b.png"
        assert storage.is_owned_key("u1", key)
        assert not storage.is_owned_key("u2", key)
        assert not storage.is_owned_key("u1", "u1/../u2/0b5a3f6e-2c1d-4e8f-9a7b-1c2d3e4f5a6b.png")
        assert not storage.is_owned_key("u1", "u1/notes.txt")
        assert not storage.is_owned_key("u1", None)

    def test_remove_skips_foreign_keys(self, client, auth):
        victim = register(client)
        victim_path = _upload(client, victim).json()["storage_path"]
        me = client.get("/api/auth/me", headers=auth).json()["id"]
        assert storage.remove(storage.WORKLOG_IMAGES, me, [victim_path, f"{me}/../{victim_path}"]) == 0
        assert storage.object_path(storage.WORKLOG_IMAGES, victim_path).is_file()


class TestWorklogs:

    def test_create_defaults(self, client, auth):
        resp = client.post("/api/worklogs", json={"title": "Chapter 4 problems"}, headers=auth)
        assert resp.status_code == 201
        worklog = resp.json()["worklog"]
        assert worklog["worklog_type"] == "classwork"
        assert worklog["date_completed"]
        assert worklog["image_url"] is None

    def test_list_newest_first(self, client, auth):
        client.post("/api/worklogs", json={"title": "Old", "date_completed": "2025-01-01"}, headers=auth)
        client.post("/api/worklogs", json={"title": "New", "date_completed": "2025-02-01"}, headers=auth)
        titles = [w["title"] for w in client.get("/api/worklogs", headers=auth).json()["worklogs"]]
        assert titles == ["New", "Old"]

    def test_invalid_type(self, client, auth):
        resp = client.post("/api/worklogs", json={"title": "x", "worklog_type": "essay"}, headers=auth)
        assert resp.status_code == 400

    def test_storage_path_must_be_own(self, client, auth):
        resp = client.post("/api/worklogs", json={"title": "x", "storage_path": "someone/else.png"}, headers=auth)
        assert resp.status_code == 400

    def test_storage_path_cannot_climb_into_another_folder(self, client, auth):
        victim = register(client)
        victim_path = _upload(client, victim).json()["storage_path"]
        me = client.get("/api/auth/me", headers=auth).json()["id"]

        resp = client.post("/api/worklogs", json={"title": "x", "storage_path": f"{me}/../{victim_path}"}, headers=auth)
        assert resp.status_code == 400
        assert client.get("/api/worklogs", headers=auth).json() == {"worklogs": []}
        assert storage.object_path(storage.WORKLOG_IMAGES, victim_path).is_file()

    def test_photo_gets_signed_url(self, client, auth):
        path = _upload(client, auth).json()["storage_path"]
        worklog = client.post("/api/worklogs", json={"title": "Photo", "storage_path": path}, headers=auth).json()["worklog"]
        assert worklog["image_url"].startswith(f"/api/storage/{storage.WORKLOG_IMAGES}/object?token=")

    def test_delete_removes_photo(self, client, auth):
        path = _upload(client, auth).json()["storage_path"]
        worklog = client.post("/api/worklogs", json={"title": "Photo", "storage_path": path}, headers=auth).json()["worklog"]
        assert storage.object_path(storage.WORKLOG_IMAGES, path).is_file()
        assert client.delete(f"/api/worklogs/{worklog['id']}", headers=auth).json() == {"success": True}
        assert not storage.object_path(storage.WORKLOG_IMAGES, path).exists()

    def test_update(self, client, auth):
        worklog = client.post("/api/worklogs", json={"title": "Draft"}, headers=auth).json()["worklog"]
        resp = client.patch(f"/api/worklogs/{worklog['id']}", json={"topic": "Photosynthesis", "worklog_type": "notes"}, headers=auth)
        updated = resp.json()["worklog"]
        assert updated["topic"] == "Photosynthesis"
        assert updated["worklog_type"] == "notes"

    def test_other_user_gets_404(self, client, auth):
        worklog = client.post("/api/worklogs", json={"title": "Mine"}, headers=auth).json()["worklog"]
        other = register(client)
        assert client.get(f"/api/worklogs/{worklog['id']}", headers=other).status_code == 404
