"""Tests for assignments and quiz submissions."""

import json
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import create_classroom, join_classroom, register_and_login, upload_lesson
from curriculum_ai.services import ai_client


def make_assignment(client, headers, classroom_id, title="Read chapter 1", lesson_id=None):
    r = client.post("/api/assignments", headers=headers, json={
        "title": title,
        "description": "Before Friday",
        "classroom_id": classroom_id,
        "lesson_id": lesson_id,
        "due_date": "2026-11-01T17:00:00Z",
    })
    assert r.status_code == 201, r.text
    return r.json()


class TestAssignments:
    """Create / list / get / delete."""

    def test_create(self, client, teacher):
        classroom = create_classroom(client, teacher)
        a = make_assignment(client, teacher, classroom["id"])
        assert a["classroom_id"] == classroom["id"]
        assert a["due_date"].startswith("2026-11-01T17:00:00")

    def test_same_title_returns_existing(self, client, teacher):
        classroom = create_classroom(client, teacher)
        first = make_assignment(client, teacher, classroom["id"])
        second = make_assignment(client, teacher, classroom["id"])
        assert first["id"] == second["id"]
        assert client.get("/api/assignments", headers=teacher).json()["total"] == 1

    def test_foreign_classroom(self, client, teacher):
        other = register_and_login(client, "other@school.edu", "teacher")
        classroom = create_classroom(client, other)
        r = client.post("/api/assignments", headers=teacher, json={"title": "X", "classroom_id": classroom["id"]})
        assert r.status_code == 403

    def test_filter_by_classroom(self, client, teacher):
        c1 = create_classroom(client, teacher, "A")
        c2 = create_classroom(client, teacher, "B")
        make_assignment(client, teacher, c1["id"], "One")
        make_assignment(client, teacher, c2["id"], "Two")
        r = client.get(f"/api/assignments?classroom_id={c2['id']}", headers=teacher)
        assert [a["title"] for a in r.json()["assignments"]] == ["Two"]

    def test_student_sees_status(self, client, teacher, student):
        classroom = create_classroom(client, teacher)
        join_classroom(client, student, classroom["join_code"])
        make_assignment(client, teacher, classroom["id"])
        listed = client.get("/api/assignments", headers=student).json()["assignments"]
        assert len(listed) == 1
        assert listed[0]["submission_status"] == "not_started"

    def test_non_member_cannot_view(self, client, teacher, student):
        classroom = create_classroom(client, teacher)
        a = make_assignment(client, teacher, classroom["id"])
        assert client.get(f"/api/assignments/{a['id']}", headers=student).status_code == 403

    def test_delete(self, client, teacher):
        classroom = create_classroom(client, teacher)
        a = make_assignment(client, teacher, classroom["id"])
        assert client.delete(f"/api/assignments/{a['id']}", headers=teacher).status_code == 204
        assert client.get(f"/api/assignments/{a['id']}", headers=teacher).status_code == 404


class TestQuizSubmission:
    """Server-side quiz scoring."""

    def _setup(self, client, teacher, student):
        classroom = create_classroom(client, teacher)
        join_classroom(client, student, classroom["join_code"])
        body = upload_lesson(client, teacher, classroom_id=classroom["id"])
        return body["assignment_id"], body["lesson"]["id"]

    def test_quiz_not_generated(self, client, teacher, student):
        assignment_id, _ = self._setup(client, teacher, student)
        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [0, 0]})
        assert r.status_code == 409

    def test_submit_and_score(self, client, teacher, student):
        assignment_id, lesson_id = self._setup(client, teacher, student)
        # no provider in tests: the two-question placeholder quiz, both answers 0
        client.post(f"/api/lessons/{lesson_id}/force-generate-ai", headers=teacher)

        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [0, 1]})
        assert r.status_code == 200
        sub = r.json()
        assert sub["status"] == "submitted"
        assert sub["score"] == 1
        assert sub["total"] == 2
        assert sub["grade"] == "50"
        assert sub["answers"] == [0, 1]

        listed = client.get("/api/assignments", headers=student).json()["assignments"]
        assert listed[0]["submission_status"] == "submitted"

        subs = client.get(f"/api/assignments/{assignment_id}/submissions", headers=teacher).json()
        assert len(subs) == 1
        assert subs[0]["grade"] == "50"

    def test_resubmission_overwrites(self, client, teacher, student):
        assignment_id, lesson_id = self._setup(client, teacher, student)
        client.post(f"/api/lessons/{lesson_id}/force-generate-ai", headers=teacher)
        client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [1, 1]})
        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [0, 0]})
        assert r.json()["grade"] == "100"
        subs = client.get(f"/api/assignments/{assignment_id}/submissions", headers=teacher).json()
        assert len(subs) == 1

    def test_wrong_answer_count(self, client, teacher, student):
        assignment_id, lesson_id = self._setup(client, teacher, student)
        client.post(f"/api/lessons/{lesson_id}/force-generate-ai", headers=teacher)
        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [0]})
        assert r.status_code == 400

    def test_teacher_cannot_submit(self, client, teacher, student):
        assignment_id, _ = self._setup(client, teacher, student)
        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=teacher, json={"answers": [0, 0]})
        assert r.status_code == 403


def model_replying_quiz(monkeypatch, answer_index):
    """Configure a model whose quiz has a single question answered by ``answer_index``."""
    lesson = {
        "title": "Photosynthesis",
        "sections": [{"title": "Light", "content": "Plants absorb light.", "keyPoints": ["chlorophyll"]}],
        "keyTerms": [{"term": "Chlorophyll", "definition": "Green pigment."}],
    }
    quiz = {"questions": [{
        "question": "What do plants absorb?",
        "options": ["Sound", "Salt", "Light", "Heat"],
        "correctAnswer": answer_index,
        "explanation": "Leaves capture light.",
    }]}

    async def generate(prompt, temperature=0.7, max_tokens=1000):
        return json.dumps(quiz if "quiz questions" in prompt else lesson)

    monkeypatch.setattr(ai_client, "ai_configured", lambda: True)
    monkeypatch.setattr(ai_client, "generate", generate)


class TestQuizAnswerTypes:
    """The stored answer key is always an integer option index."""

    def _setup(self, client, teacher, student):
        classroom = create_classroom(client, teacher)
        join_classroom(client, student, classroom["join_code"])
        body = upload_lesson(client, teacher, classroom_id=classroom["id"])
        return body["assignment_id"], body["lesson"]["id"]

    def test_string_answer_key_is_not_stored(self, client, teacher, student, monkeypatch):
        """A quiz whose answer key is "2" is replaced by the placeholder quiz."""
        model_replying_quiz(monkeypatch, "2")
        assignment_id, lesson_id = self._setup(client, teacher, student)
        client.post(f"/api/lessons/{lesson_id}/force-generate-ai", headers=teacher)

        quiz = client.get(f"/api/lessons/{lesson_id}/ai-content", headers=teacher).json()["aiContent"]["quiz"]
        assert len(quiz["questions"]) == 2
        assert all(q["correctAnswer"] == 0 for q in quiz["questions"])

        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [0, 0]})
        assert r.json()["grade"] == "100"

    def test_integer_answer_key_scores(self, client, teacher, student, monkeypatch):
        """An integer answer key from the model is scored as given."""
        model_replying_quiz(monkeypatch, 2)
        assignment_id, lesson_id = self._setup(client, teacher, student)
        client.post(f"/api/lessons/{lesson_id}/force-generate-ai", headers=teacher)

        r = client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [2]})
        assert r.status_code == 200
        assert r.json()["grade"] == "100"
        assert r.json()["score"] == 1


class TestFileSubmission:
    """Handing in work as a file URL with notes."""

    def _assignment(self, client, teacher, student):
        classroom = create_classroom(client, teacher)
        join_classroom(client, student, classroom["join_code"])
        return make_assignment(client, teacher, classroom["id"])

    def test_submit_file(self, client, teacher, student):
        """The submission is completed and keeps the file URL and notes."""
        a = self._assignment(client, teacher, student)
        r = client.post(f"/api/assignments/{a['id']}/submit", headers=student, json={
            "file_url": "https://files.school.edu/essay.pdf",
            "notes": "Draft two",
        })
        assert r.status_code == 200, r.text
        sub = r.json()
        assert sub["status"] == "completed"
        assert sub["file_url"] == "https://files.school.edu/essay.pdf"
        assert sub["notes"] == "Draft two"
        assert sub["submitted_at"] is not None

        listed = client.get("/api/assignments", headers=student).json()["assignments"]
        assert listed[0]["submission_status"] == "completed"

    def test_resubmit_replaces_file(self, client, teacher, student):
        """A second hand-in updates the same submission."""
        a = self._assignment(client, teacher, student)
        url = f"/api/assignments/{a['id']}/submit"
        client.post(url, headers=student, json={"file_url": "https://files.school.edu/v1.pdf"})
        client.post(url, headers=student, json={"file_url": "https://files.school.edu/v2.pdf"})

        subs = client.get(f"/api/assignments/{a['id']}/submissions", headers=teacher).json()
        assert len(subs) == 1
        assert subs[0]["file_url"] == "https://files.school.edu/v2.pdf"
        assert subs[0]["notes"] is None
        assert subs[0]["student_name"] == "Student"

    def test_blank_file_url(self, client, teacher, student):
        """A file URL is required."""
        a = self._assignment(client, teacher, student)
        r = client.post(f"/api/assignments/{a['id']}/submit", headers=student, json={"file_url": "  "})
        assert r.status_code == 400

    def test_not_enrolled(self, client, teacher, student):
        """Students outside the classroom cannot hand in work."""
        classroom = create_classroom(client, teacher)
        a = make_assignment(client, teacher, classroom["id"])
        r = client.post(f"/api/assignments/{a['id']}/submit", headers=student, json={"file_url": "x.pdf"})
        assert r.status_code == 403

    def test_missing_assignment(self, client, student):
        """An unknown assignment is a 404."""
        r = client.post("/api/assignments/nope/submit", headers=student, json={"file_url": "x.pdf"})
        assert r.status_code == 404


class TestQuizResults:
    """Teacher view of scored quiz attempts."""

    def _scored(self, client, teacher, student):
        classroom = create_classroom(client, teacher)
        join_classroom(client, student, classroom["join_code"])
        body = upload_lesson(client, teacher, classroom_id=classroom["id"])
        client.post(f"/api/lessons/{body['lesson']['id']}/force-generate-ai", headers=teacher)
        return classroom, body["assignment_id"]

    def test_results_carry_student_name(self, client, teacher, student):
        """Each result names the student and carries answers and score."""
        classroom, assignment_id = self._scored(client, teacher, student)
        other = register_and_login(client, "second@school.edu", "student")
        join_classroom(client, other, classroom["join_code"])

        client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=student, json={"answers": [0, 1]})
        client.post(f"/api/assignments/{assignment_id}/submit-quiz", headers=other, json={"answers": [0, 0]})

        results = client.get(f"/api/assignments/{assignment_id}/quiz-results", headers=teacher).json()
        assert [r["student_name"] for r in results] == ["Second", "Student"]
        assert results[0]["grade"] == "100"
        assert results[1]["score"] == 1
        assert results[1]["answers"] == [0, 1]

    def test_file_submissions_excluded(self, client, teacher, student):
        """Hand-ins without quiz answers are not quiz results."""
        _, assignment_id = self._scored(client, teacher, student)
        client.post(f"/api/assignments/{assignment_id}/submit", headers=student, json={"file_url": "x.pdf"})
        assert client.get(f"/api/assignments/{assignment_id}/quiz-results", headers=teacher).json() == []

    def test_other_teacher_forbidden(self, client, teacher, student):
        """Only the owning teacher sees results."""
        _, assignment_id = self._scored(client, teacher, student)
        other = register_and_login(client, "other@school.edu", "teacher")
        assert client.get(f"/api/assignments/{assignment_id}/quiz-results", headers=other).status_code == 403
