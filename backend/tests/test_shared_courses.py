"""Tests for shared courses: membership, shared assignments, copies and dismissals."""

import json
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import register
from study_tracker.database import SessionLocal
from study_tracker.models.shared_course import UserDismissedSharedAssignment
from study_tracker.services.ai_client import AIClientError


def _shared_course(client, auth, name="AP Biology"):
    resp = client.post("/api/shared-courses", json={"name": name}, headers=auth)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _join(client, auth, code):
    return client.post("/api/shared-courses/join", json={"invite_code": code}, headers=auth)


def _shared_assignment(client, auth, course_id, title="Chapter 5 reading", **extra):
    resp = client.post(f"/api/shared-courses/{course_id}/assignments", json={"title": title, **extra}, headers=auth)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestMembership:

    def test_creator_is_owner(self, client, auth):
        course = _shared_course(client, auth)
        assert course["user_role"] == "owner"
        assert course["member_count"] == 1
        assert len(course["invite_code"]) == 8

    def test_join_with_code(self, client, auth):
        course = _shared_course(client, auth)
        other = register(client)
        resp = _join(client, other, course["invite_code"].upper())
        assert resp.status_code == 200
        assert resp.json()["user_role"] == "member"
        assert resp.json()["member_count"] == 2

    def test_join_twice(self, client, auth):
        course = _shared_course(client, auth)
        other = register(client)
        _join(client, other, course["invite_code"])
        assert _join(client, other, course["invite_code"]).status_code == 400

    def test_bad_code(self, client, auth):
        assert _join(client, auth, "deadbeef").status_code == 404

    def test_owner_cannot_leave(self, client, auth):
        course = _shared_course(client, auth)
        assert client.post(f"/api/shared-courses/{course['id']}/leave", headers=auth).status_code == 400

    def test_member_leaves(self, client, auth):
        course = _shared_course(client, auth)
        other = register(client)
        _join(client, other, course["invite_code"])
        assert client.post(f"/api/shared-courses/{course['id']}/leave", headers=other).status_code == 200
        assert client.get("/api/shared-courses", headers=other).json() == []

    def test_leaving_clears_dismissals(self, client, auth):
        course = _shared_course(client, auth)
        a = _shared_assignment(client, auth, course["id"])
        other = register(client)
        _join(client, other, course["invite_code"])
        client.post(f"/api/shared-courses/{course['id']}/assignments/{a['id']}/dismiss", headers=other)
        client.post(f"/api/shared-courses/{course['id']}/assignments/{a['id']}/dismiss", headers=auth)

        assert client.post(f"/api/shared-courses/{course['id']}/leave", headers=other).status_code == 200
        db = SessionLocal()
        try:
            rows = db.query(UserDismissedSharedAssignment).filter(
                UserDismissedSharedAssignment.shared_assignment_id == a["id"]
            ).all()
        finally:
            db.close()
        owner_id = client.get("/api/auth/me", headers=auth).json()["id"]
        assert [r.user_id for r in rows] == [owner_id]
        assert client.get(f"/api/shared-courses/{course['id']}/assignments", headers=auth).json()[0]["is_dismissed"] is True

    def test_only_owner_deletes(self, client, auth):
        course = _shared_course(client, auth)
        other = register(client)
        _join(client, other, course["invite_code"])
        assert client.delete(f"/api/shared-courses/{course['id']}", headers=other).status_code == 403
        assert client.delete(f"/api/shared-courses/{course['id']}", headers=auth).status_code == 200
        assert client.get("/api/shared-courses", headers=other).json() == []


class TestSharedAssignments:

    def test_non_member_forbidden(self, client, auth):
        course = _shared_course(client, auth)
        outsider = register(client)
        assert client.get(f"/api/shared-courses/{course['id']}/assignments", headers=outsider).status_code == 403

    def test_invalid_fields_fall_back(self, client, auth):
        course = _shared_course(client, auth)
        a = _shared_assignment(client, auth, course["id"], priority="urgent", estimated_duration=-3)
        assert a["priority"] == "medium"
        assert a["estimated_duration"] == 60
        assert a["creator"]["email"]

    def test_copy_once(self, client, auth):
        course = _shared_course(client, auth)
        a = _shared_assignment(client, auth, course["id"])
        other = register(client)
        _join(client, other, course["invite_code"])
        url = f"/api/shared-courses/{course['id']}/assignments/{a['id']}/copy"

        first = client.post(url, headers=other)
        assert first.status_code == 200
        local = first.json()["local_assignment"]
        assert local["title"] == "Chapter 5 reading"
        assert local["status"] == "pending"

        second = client.post(url, headers=other)
        assert second.status_code == 400
        assert second.json()["local_assignment_id"] == local["id"]

        listed = client.get(f"/api/shared-courses/{course['id']}/assignments", headers=other).json()
        assert listed[0]["is_copied"] is True

    def test_copy_links_matching_course(self, client, auth):
        course = _shared_course(client, auth, "AP Biology")
        a = _shared_assignment(client, auth, course["id"])
        other = register(client)
        _join(client, other, course["invite_code"])
        own = client.post("/api/courses", json={"name": "ap biology"}, headers=other).json()
        local = client.post(
            f"/api/shared-courses/{course['id']}/assignments/{a['id']}/copy", headers=other
        ).json()["local_assignment"]
        assert local["course_id"] == own["id"]

    def test_dismiss_is_idempotent(self, client, auth):
        course = _shared_course(client, auth)
        a = _shared_assignment(client, auth, course["id"])
        url = f"/api/shared-courses/{course['id']}/assignments/{a['id']}/dismiss"
        assert client.post(url, headers=auth).status_code == 200
        assert client.post(url, headers=auth).status_code == 200
        listed = client.get(f"/api/shared-courses/{course['id']}/assignments", headers=auth).json()
        assert listed[0]["is_dismissed"] is True

        assert client.delete(url, headers=auth).status_code == 200
        listed = client.get(f"/api/shared-courses/{course['id']}/assignments", headers=auth).json()
        assert listed[0]["is_dismissed"] is False

    def test_only_creator_or_owner_deletes(self, client, auth):
        course = _shared_course(client, auth)
        a = _shared_assignment(client, auth, course["id"])
        other = register(client)
        _join(client, other, course["invite_code"])
        url = f"/api/shared-courses/{course['id']}/assignments/{a['id']}"
        assert client.delete(url, headers=other).status_code == 403
        assert client.delete(url, headers=auth).status_code == 200


class TestSuggestCourse:

    def test_no_courses(self, client, auth, fake_ai):
        resp = client.post("/api/suggest-shared-course", json={"title": "Essay"}, headers=auth)
        assert resp.json() == {"suggested_course_id": None}
        assert fake_ai.calls == []

    def test_single_course_skips_model(self, client, auth, fake_ai):
        course = _shared_course(client, auth)
        resp = client.post("/api/suggest-shared-course", json={"title": "Essay"}, headers=auth)
        assert resp.json() == {"suggested_course_id": course["id"]}
        assert fake_ai.calls == []

    def _two_courses(self, client, auth):
        _shared_course(client, auth, "AP Biology")
        _shared_course(client, auth, "World History")
        return [c["id"] for c in client.get("/api/shared-courses", headers=auth).json()]

    def test_model_picks_numbered_course(self, client, auth, fake_ai):
        ids = self._two_courses(client, auth)
        fake_ai.queue(json.dumps({"course_number": 2, "confidence": "high"}))
        resp = client.post("/api/suggest-shared-course", json={"title": "Treaty of Versailles essay"}, headers=auth)
        assert resp.json() == {"suggested_course_id": ids[1]}
        prompt = fake_ai.calls[0]["messages"][0]["content"]
        assert '1. "AP Biology"' in prompt
        assert '2. "World History"' in prompt

    def test_out_of_range_or_boolean_number_falls_back(self, client, auth, fake_ai):
        ids = self._two_courses(client, auth)
        fake_ai.queue(json.dumps({"course_number": 7}), json.dumps({"course_number": True}))
        for _ in range(2):
            resp = client.post("/api/suggest-shared-course", json={"title": "Essay"}, headers=auth)
            assert resp.json() == {"suggested_course_id": ids[0]}

    def test_unusable_reply_falls_back(self, client, auth, fake_ai):
        ids = self._two_courses(client, auth)
        fake_ai.queue("I think biology?", AIClientError("provider down"))
        for _ in range(2):
            resp = client.post("/api/suggest-shared-course", json={"title": "Essay"}, headers=auth)
            assert resp.status_code == 200
            assert resp.json() == {"suggested_course_id": ids[0]}
