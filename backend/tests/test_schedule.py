"""Tests for weekly schedule blocks, planned tasks and AI schedule suggestions."""

import json
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from study_tracker.services.scheduler import validate_suggestions

BLOCK = {"day_of_week": 1, "available_start": "16:00", "available_end": "18:00", "block_type": "study"}


def _assignment(client, auth, title="Essay"):
    return client.post("/api/assignments", json={"title": title, "due_date": "2030-01-10T23:59:00"}, headers=auth).json()


class TestValidateSuggestions:

    def _item(self, **overrides):
        return {"assignmentId": "a1", "date": "2030-01-08", "startTime": "16:00", "endTime": "17:00", **overrides}

    def test_keeps_well_formed(self):
        assert validate_suggestions([self._item()], {"a1"}) == [self._item()]

    def test_drops_unknown_assignment(self):
        assert validate_suggestions([self._item(assignmentId="zzz")], {"a1"}) == []

    def test_drops_bad_date_and_times(self):
        items = [
            self._item(date="2030-02-30"),
            self._item(startTime="4pm"),
            self._item(endTime="25:00"),
            self._item(startTime="17:00", endTime="16:00"),
            self._item(startTime="16:00", endTime="16:00"),
        ]
        assert validate_suggestions(items, {"a1"}) == []

    def test_drops_non_string_assignment_id(self):
        items = [self._item(assignmentId=["a1"]), self._item(assignmentId={"id": "a1"}), self._item(assignmentId=None)]
        assert validate_suggestions(items, {"a1"}) == []

    def test_midnight_end_normalised(self):
        result = validate_suggestions([self._item(startTime="22:00", endTime="00:00")], {"a1"})
        assert result[0]["endTime"] == "23:59:59"

    def test_non_list_input(self):
        assert validate_suggestions({"oops": 1}, {"a1"}) == []
        assert validate_suggestions(["text", None], {"a1"}) == []


class TestBlocks:

    def test_create_and_list(self, client, auth):
        resp = client.post("/api/schedule", json=BLOCK, headers=auth)
        assert resp.status_code == 201
        assert resp.json()["available_start"] == "16:00:00"
        assert len(client.get("/api/schedule", headers=auth).json()) == 1

    def test_invalid_blocks(self, client, auth):
        for bad in (
            {**BLOCK, "day_of_week": 7},
            {**BLOCK, "available_start": "18:00", "available_end": "16:00"},
            {**BLOCK, "available_start": "4pm"},
            {**BLOCK, "block_type": "nap"},
        ):
            assert client.post("/api/schedule", json=bad, headers=auth).status_code == 400

    def test_end_at_midnight_allowed(self, client, auth):
        resp = client.post("/api/schedule", json={**BLOCK, "available_start": "20:00", "available_end": "00:00"}, headers=auth)
        assert resp.status_code == 201
        assert resp.json()["available_end"] == "23:59:59"

    def test_replace_all(self, client, auth):
        client.post("/api/schedule", json=BLOCK, headers=auth)
        blocks = [{**BLOCK, "day_of_week": 2}, {**BLOCK, "day_of_week": 0, "block_type": "class"}]
        resp = client.put("/api/schedule", json={"blocks": blocks}, headers=auth)
        assert [b["day_of_week"] for b in resp.json()] == [0, 2]

    def test_patch_and_delete(self, client, auth):
        block = client.post("/api/schedule", json=BLOCK, headers=auth).json()
        resp = client.patch(f"/api/schedule/{block['id']}", json={"label": "Library"}, headers=auth)
        assert resp.json()["label"] == "Library"
        assert client.delete(f"/api/schedule/{block['id']}", headers=auth).json() == {"success": True}
        assert client.get("/api/schedule", headers=auth).json() == []


class TestTasks:

    def test_create_and_filter_by_date(self, client, auth):
        body = {"scheduled_date": "2030-01-08", "scheduled_start": "16:00", "scheduled_end": "17:00", "title": "Review"}
        assert client.post("/api/tasks", json=body, headers=auth).status_code == 201
        client.post("/api/tasks", json={**body, "scheduled_date": "2030-01-09"}, headers=auth)
        one_day = client.get("/api/tasks", params={"date": "2030-01-08"}, headers=auth).json()
        assert len(one_day) == 1
        ranged = client.get("/api/tasks", params={"startDate": "2030-01-01", "endDate": "2030-01-31"}, headers=auth).json()
        assert len(ranged) == 2

    def test_invalid_slot(self, client, auth):
        body = {"scheduled_date": "2030-01-08", "scheduled_start": "17:00", "scheduled_end": "16:00"}
        assert client.post("/api/tasks", json=body, headers=auth).status_code == 400

    def test_complete(self, client, auth):
        body = {"scheduled_date": "2030-01-08", "scheduled_start": "16:00", "scheduled_end": "17:00"}
        task = client.post("/api/tasks", json=body, headers=auth).json()
        resp = client.patch(f"/api/tasks/{task['id']}", json={"completed": True}, headers=auth)
        assert resp.json()["completed"] is True


class TestSuggestions:

    def test_needs_schedule_first(self, client, auth, fake_ai):
        resp = client.post("/api/schedule/generate", headers=auth)
        assert resp.status_code == 400
        assert resp.json()["detail"]["needsSchedule"] is True
        assert fake_ai.calls == []

    def test_nothing_to_schedule(self, client, auth, fake_ai):
        client.post("/api/schedule", json=BLOCK, headers=auth)
        resp = client.post("/api/schedule/generate", headers=auth)
        assert resp.json()["message"] == "No pending assignments to schedule"
        assert fake_ai.calls == []

    def test_generate_keeps_only_valid(self, client, auth, fake_ai):
        client.post("/api/schedule", json=BLOCK, headers=auth)
        a = _assignment(client, auth)
        fake_ai.queue(json.dumps({
            "suggestions": [
                {"assignmentId": a["id"], "date": "2030-01-08", "startTime": "16:00", "endTime": "17:00", "reason": "Early start"},
                {"assignmentId": "made-up", "date": "2030-01-08", "startTime": "16:00", "endTime": "17:00"},
                {"assignmentId": a["id"], "date": "2030-01-09", "startTime": "18:00", "endTime": "17:00"},
            ],
            "insights": "Start early.",
        }))
        data = client.post("/api/schedule/generate", headers=auth).json()
        assert len(data["suggestions"]) == 1
        assert data["insights"] == "Start early."

        pending = client.get("/api/schedule/suggestions", headers=auth).json()
        assert len(pending) == 1
        assert pending[0]["assignment"]["title"] == "Essay"

    def test_unparseable_reply(self, client, auth, fake_ai):
        client.post("/api/schedule", json=BLOCK, headers=auth)
        _assignment(client, auth)
        fake_ai.queue("I'd rather not.")
        data = client.post("/api/schedule/generate", headers=auth).json()
        assert data["suggestions"] == []
        assert data["error"] == "Failed to parse AI response"

    def test_accept_creates_task(self, client, auth, fake_ai):
        client.post("/api/schedule", json=BLOCK, headers=auth)
        a = _assignment(client, auth)
        fake_ai.queue(json.dumps({"suggestions": [
            {"assignmentId": a["id"], "date": "2030-01-08", "startTime": "16:00", "endTime": "17:00"},
        ]}))
        client.post("/api/schedule/generate", headers=auth)
        suggestion = client.get("/api/schedule/suggestions", headers=auth).json()[0]

        resp = client.post("/api/schedule/suggestions", json={"action": "accept", "suggestionId": suggestion["id"]}, headers=auth)
        assert resp.json() == {"success": True, "action": "accept"}
        tasks = client.get("/api/tasks", headers=auth).json()
        assert len(tasks) == 1
        assert tasks[0]["ai_generated"] is True
        assert client.get("/api/schedule/suggestions", headers=auth).json() == []

    def test_dismiss_all_and_bad_action(self, client, auth, fake_ai):
        assert client.post("/api/schedule/suggestions", json={"action": "dismissAll"}, headers=auth).status_code == 200
        assert client.post("/api/schedule/suggestions", json={"action": "maybe"}, headers=auth).status_code == 400
        resp = client.post("/api/schedule/suggestions", json={"action": "accept", "suggestionId": "nope"}, headers=auth)
        assert resp.status_code == 404
