"""Tests for topic-based study sessions and short-answer grading."""

import json
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from study_tracker.services.study_session import (
    FALLBACK_FEEDBACK,
    build_sources,
    date_range,
    keyword_filter,
    pick_indices,
    search_terms,
)


def _candidate(id_, type_="worklog", summary="", content="", has_content=True, date="2025-01-01"):
    return {
        "id": id_,
        "type": type_,
        "title": id_,
        "date": date,
        "topic": None,
        "summary": summary,
        "full_content": content,
        "has_content": has_content,
    }


class TestHelpers:

    def test_search_terms_lowercased(self):
        assert search_terms("Cell Biology", None, "AP Bio", ["Mitosis"]) == ["cell biology", "ap bio", "mitosis"]

    def test_keyword_filter(self):
        items = [_candidate("a", summary="Mitosis notes"), _candidate("b", content="French verbs")]
        assert [c["id"] for c in keyword_filter(items, ["mitosis"])] == ["a"]

    def test_pick_indices_filters_junk(self):
        assert pick_indices({"relevantIndices": [2, 0, 0, 9, -1, "1", True]}, 3) == [2, 0]

    def test_pick_indices_missing_list(self):
        assert pick_indices({"reasoning": "none"}, 3) is None
        assert pick_indices([0, 1], 3) is None

    def test_sources_worklogs_first_and_need_content(self):
        items = [
            _candidate("a1", type_="assignment", content="x"),
            _candidate("w1", content="y"),
            _candidate("w2", has_content=False),
        ]
        sources = build_sources(items, {"a1", "w1", "w2"})
        assert [s["id"] for s in sources] == ["w1", "a1"]

    def test_date_range(self):
        sources = [{"date": "2025-03-02T10:00:00"}, {"date": "2025-01-15"}, {"date": ""}]
        assert date_range(sources) == {"from": "2025-01-15", "to": "2025-03-02"}
        assert date_range([]) == {"from": "", "to": ""}


class TestStudySessionAPI:

    def test_topic_required(self, client, auth):
        resp = client.post("/api/study-session", json={"topic": "  "}, headers=auth)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Topic is required"

    def test_bad_dates(self, client, auth):
        resp = client.post("/api/study-session", json={"topic": "Cells", "dateFrom": "last week"}, headers=auth)
        assert resp.status_code == 400

    def test_collects_relevant_work(self, client, auth, fake_ai):
        client.post("/api/worklogs", json={
            "title": "Mitosis notes",
            "content": "Prophase, metaphase, anaphase, telophase",
            "date_completed": "2025-02-10",
        }, headers=auth)
        client.post("/api/worklogs", json={"title": "French verbs", "content": "être, avoir"}, headers=auth)

        fake_ai.queue(
            json.dumps({"relatedTerms": ["Mitosis", "Prophase"], "courseContext": "AP Biology"}),
            json.dumps({"relevantIndices": [0], "reasoning": "Matches cell division"}),
            json.dumps({"keyTopics": ["Phases"], "recommendedFocus": ["Anaphase"], "estimatedStudyTime": 45, "summary": "Review phases"}),
        )
        resp = client.post("/api/study-session", json={"topic": "Cell division"}, headers=auth)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["courseContext"] == "AP Biology"
        assert [s["title"] for s in data["sources"]] == ["Mitosis notes"]
        assert "Prophase" in data["combinedContent"]
        assert data["overview"]["worklogCount"] == 1
        assert data["overview"]["estimatedStudyTime"] == 45
        assert data["overview"]["dateRange"] == {"from": "2025-02-10", "to": "2025-02-10"}

    def test_unusable_replies_fall_back(self, client, auth, fake_ai):
        client.post("/api/worklogs", json={"title": "Mitosis notes", "content": "Phases of mitosis"}, headers=auth)
        fake_ai.queue("???", "not json", "still not json")
        data = client.post("/api/study-session", json={"topic": "Mitosis"}, headers=auth).json()["data"]
        assert data["relatedTerms"] == []
        assert [s["title"] for s in data["sources"]] == ["Mitosis notes"]
        assert data["overview"]["estimatedStudyTime"] == 60
        assert data["overview"]["summary"] == ""

    def test_no_material(self, client, auth, fake_ai):
        fake_ai.queue(json.dumps({"relatedTerms": [], "courseContext": ""}))
        data = client.post("/api/study-session", json={"topic": "Stars"}, headers=auth).json()["data"]
        assert data["sources"] == []
        assert data["overview"]["totalSources"] == 0
        assert len(fake_ai.calls) == 1


class TestSessionMaterials:

    def test_generate_with_context(self, client, auth, fake_ai):
        fake_ai.queue(json.dumps({"summary": "Phases", "keyPoints": ["PMAT"]}))
        resp = client.post(
            "/api/study-session/generate",
            json={"type": "notes", "content": "Mitosis notes", "topic": "Cell division", "unit": "Unit 4"},
            headers=auth,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "notes"
        assert body["content"]["keyPoints"] == ["PMAT"]
        assert body["generatedAt"]
        prompt = fake_ai.calls[0]["messages"][0]["content"]
        assert prompt.startswith("STUDY SESSION CONTEXT:\nTopic: Cell division\nUnit: Unit 4")
        assert "STUDENT'S COLLECTED WORK:\nMitosis notes" in prompt


class TestGrading:

    QUESTIONS = [
        {"question": "What is ATP?", "correctAnswer": "Energy currency", "studentAnswer": "energy"},
        {"question": "Where is DNA?", "correctAnswer": "Nucleus", "studentAnswer": "ribosome"},
    ]

    def test_grades_clamped(self, client, auth, fake_ai):
        fake_ai.queue(json.dumps({"grades": [
            {"questionIndex": 0, "isCorrect": True, "score": 130, "feedback": "Good"},
            {"questionIndex": 1, "isCorrect": False, "score": -10, "feedback": "Nucleus"},
        ]}))
        grades = client.post("/api/study-session/grade", json={"questions": self.QUESTIONS}, headers=auth).json()["grades"]
        assert [g["score"] for g in grades] == [100, 0]

    def test_non_finite_scores_become_zero(self, client, auth, fake_ai):
        fake_ai.queue('{"grades": ['
                      '{"questionIndex": 0, "isCorrect": true, "score": Infinity, "feedback": "Good"}, '
                      '{"questionIndex": 1, "isCorrect": false, "score": 1e400, "feedback": "Nucleus"}]}')
        resp = client.post("/api/study-session/grade", json={"questions": self.QUESTIONS}, headers=auth)
        assert resp.status_code == 200
        assert [g["score"] for g in resp.json()["grades"]] == [0, 0]

    def test_unparseable_gives_fallback(self, client, auth, fake_ai):
        fake_ai.queue("Great job everyone!")
        resp = client.post("/api/study-session/grade", json={"questions": self.QUESTIONS}, headers=auth)
        assert resp.status_code == 200
        grades = resp.json()["grades"]
        assert len(grades) == 2
        assert all(g["score"] == 50 and g["feedback"] == FALLBACK_FEEDBACK for g in grades)
