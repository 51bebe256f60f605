# tests/test_api.py
import pytest
from fastapi import Depends

from conftest import TEACHER_EMAIL, TEACHER_PASSWORD
from vlog_portal.api.deps import get_intake_pipeline, get_repository
from vlog_portal.services.best_effort import BestEffort
from vlog_portal.services.intake_pipeline import IntakePipeline
from vlog_portal.services.youtube_service import VideoDetails

SUBMISSIONS = "/api/v1/submissions/"

FORM = {
    "student_name": "Siti Rahma",
    "class_label": "9-C",
    "roll_number": "12",
    "video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
}


async def found_title(video_id):
    return BestEffort.success(VideoDetails(video_id, "Our Class Garden", "public"))


async def friendly_feedback(student_name, video_title, class_label):
    return BestEffort.success(f"Great vlog, {student_name}!")


@pytest.fixture
def client(app, client):
    """Intake without network calls."""

    def offline_pipeline(repository=Depends(get_repository)):
        return IntakePipeline(
            repository, fetch_details=found_title, generate_feedback=friendly_feedback
        )

    app.dependency_overrides[get_intake_pipeline] = offline_pipeline
    yield client
    app.dependency_overrides.clear()


def submit(client, **overrides):
    return client.post(SUBMISSIONS, json={**FORM, **overrides})


class TestHealth:
    def test_live(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "ok"}

    def test_db(self, client):
        assert client.get("/api/v1/health/db").status_code == 200


class TestAuth:
    def test_json_login(self, client, teacher):
        response = client.post(
            "/api/v1/auth/login",
            json={"email": TEACHER_EMAIL, "password": TEACHER_PASSWORD},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"

        me = client.get(
            "/api/v1/users/me",
            headers={"Authorization": f"Bearer {body['access_token']}"},
        )
        assert me.json()["email"] == TEACHER_EMAIL

    def test_form_login(self, client, teacher):
        response = client.post(
            "/api/v1/auth/token",
            data={"username": TEACHER_EMAIL, "password": TEACHER_PASSWORD},
        )
        assert response.status_code == 200

    def test_malformed_email(self, client, teacher):
        response = client.post(
            "/api/v1/auth/login", json={"email": "guru", "password": "x"}
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Invalid email format."

    def test_wrong_password(self, client, teacher):
        response = client.post(
            "/api/v1/auth/login", json={"email": TEACHER_EMAIL, "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password."

    def test_logout_revokes_token(self, client, auth_headers):
        assert client.post("/api/v1/auth/logout", headers=auth_headers).status_code == 204
        assert client.get("/api/v1/users/me", headers=auth_headers).status_code == 401


class TestIntake:
    def test_class_options(self, client):
        assert "9-A" in client.get(SUBMISSIONS + "classes").json()

    def test_anonymous_submission(self, client, auth_headers):
        response = submit(client)

        assert response.status_code == 201
        body = response.json()
        assert body["video_title"] == "Our Class Garden"
        assert body["ai_feedback"] == "Great vlog, Siti Rahma!"
        assert body["stages"] == [
            "extracting",
            "resolving_metadata",
            "generating_feedback",
            "persisting",
            "complete",
        ]

        listed = client.get(SUBMISSIONS, headers=auth_headers).json()
        assert listed["total"] == 1
        assert listed["submissions"][0]["id"] == body["id"]
        assert "score" not in listed["submissions"][0]

    def test_bad_url_echoes_form(self, client):
        response = submit(client, video_url="https://example.com/video")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["category"] == "validation"
        assert detail["stage"] == "error"
        assert detail["form"]["student_name"] == "Siti Rahma"

    def test_unknown_class_rejected(self, client):
        assert submit(client, class_label="10-Z").status_code == 422

    def test_blank_name_rejected(self, client):
        assert submit(client, student_name="   ").status_code == 422


class TestDashboard:
    def test_requires_sign_in(self, client):
        assert client.get(SUBMISSIONS).status_code == 401

    def test_search_and_sort(self, client, auth_headers):
        submit(client, student_name="Budi", class_label="9-A")
        submit(client, student_name="ani", class_label="9-B")

        body = client.get(
            SUBMISSIONS, params={"sort_by": "name_asc"}, headers=auth_headers
        ).json()
        assert [s["student_name"] for s in body["submissions"]] == ["ani", "Budi"]
        assert body["classes"] == ["9-A", "9-B"]

        filtered = client.get(
            SUBMISSIONS, params={"class_label": "9-A"}, headers=auth_headers
        ).json()
        assert [s["student_name"] for s in filtered["submissions"]] == ["Budi"]

    def test_grade_and_rank(self, client, auth_headers):
        first = submit(client, student_name="Budi").json()["id"]
        second = submit(client, student_name="Citra").json()["id"]

        graded = client.put(
            f"{SUBMISSIONS}{first}/grade",
            json={"score": 70, "teacher_feedback": "Good"},
            headers=auth_headers,
        )
        assert graded.status_code == 200
        assert graded.json()["score"] == 70
        client.put(f"{SUBMISSIONS}{second}/grade", json={"score": 90}, headers=auth_headers)

        ranking = client.get(SUBMISSIONS + "rankings", headers=auth_headers).json()
        assert [s["id"] for s in ranking["ranked"]] == [second, first]
        assert ranking["stats"] == {"avg": 80.0, "max": 90.0, "min": 70.0}

    def test_out_of_range_score(self, client, auth_headers):
        sub_id = submit(client).json()["id"]
        response = client.put(
            f"{SUBMISSIONS}{sub_id}/grade", json={"score": 150}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_grade_missing_submission(self, client, auth_headers):
        response = client.put(
            f"{SUBMISSIONS}nope/grade", json={"score": 50}, headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["detail"]["category"] == "not_found"

    def test_edit_student_data(self, client, auth_headers):
        sub_id = submit(client).json()["id"]
        response = client.put(
            f"{SUBMISSIONS}{sub_id}",
            json={"student_name": "Siti R.", "class_label": "9-D", "roll_number": "13"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["class_label"] == "9-D"

    def test_edit_rejects_unknown_class(self, client, auth_headers):
        sub_id = submit(client).json()["id"]
        response = client.put(
            f"{SUBMISSIONS}{sub_id}",
            json={"student_name": "Siti", "class_label": "NOT-A-CLASS", "roll_number": "12"},
            headers=auth_headers,
        )
        assert response.status_code == 422

        listed = client.get(SUBMISSIONS, headers=auth_headers).json()
        assert listed["submissions"][0]["class_label"] == "9-C"

    def test_export_csv(self, client, auth_headers):
        submit(client)
        response = client.get(SUBMISSIONS + "export.csv", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "vlog_submissions_" in response.headers["content-disposition"]
        assert '"Siti Rahma"' in response.text

    def test_delete_one(self, client, auth_headers):
        sub_id = submit(client).json()["id"]

        assert client.delete(f"{SUBMISSIONS}{sub_id}", headers=auth_headers).status_code == 204
        assert client.delete(f"{SUBMISSIONS}{sub_id}", headers=auth_headers).status_code == 404

    def test_delete_all_needs_confirmation(self, client, auth_headers):
        submit(client)
        submit(client)

        assert client.delete(SUBMISSIONS, headers=auth_headers).status_code == 400
        response = client.delete(
            SUBMISSIONS, params={"confirm": "DELETE"}, headers=auth_headers
        )
        assert response.json() == {"deleted": 2}
        assert client.get(SUBMISSIONS, headers=auth_headers).json()["total"] == 0


class TestRealtimeFeed:
    def test_sign_in_push_and_sign_out(self, client, teacher_token):
        with client.websocket_connect("/api/v1/ws/submissions") as ws:
            assert ws.receive_json() == {"type": "auth", "user": None}
            assert ws.receive_json() == {"type": "cleared"}

            ws.send_json({"action": "sign_in", "token": teacher_token})
            auth_event = ws.receive_json()
            assert auth_event["type"] == "auth"
            assert auth_event["user"]["email"] == TEACHER_EMAIL
            assert ws.receive_json() == {"type": "snapshot", "submissions": []}

            submit(client)
            pushed = ws.receive_json()
            assert pushed["type"] == "snapshot"
            assert pushed["submissions"][0]["student_name"] == "Siti Rahma"

            ws.send_json({"action": "sign_out"})
            assert ws.receive_json() == {"type": "auth", "user": None}
            assert ws.receive_json() == {"type": "cleared"}

    def test_bad_token_reports_error(self, client, teacher):
        with client.websocket_connect("/api/v1/ws/submissions") as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_json({"action": "sign_in", "token": "garbage"})
            event = ws.receive_json()
            assert event["type"] == "error"
            assert event["category"] == "auth"

            ws.send_json({"action": "dance"})
            assert ws.receive_json()["category"] == "protocol"

    def test_non_json_frame_reports_error(self, client):
        with client.websocket_connect("/api/v1/ws/submissions") as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_text("hello?")
            event = ws.receive_json()
            assert event["type"] == "error"
            assert event["category"] == "protocol"

            # connection stays usable
            ws.send_json({"action": "dance"})
            assert ws.receive_json()["category"] == "protocol"
