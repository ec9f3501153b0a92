from fastapi.testclient import TestClient

from api_server import create_app
from conftest import FakeGenerator, FakeProvider, FakeTranscriber, outcome


ANSWER = {
    "transcript": "At my last company I led a migration to Kubernetes and reduced deploy time by 45%.",
    "duration_sec": 25,
    "answer_type": "voice",
}


def _client(build_service) -> TestClient:
    service = build_service(
        providers=[FakeProvider("openai", outcome("openai", technical_accuracy=85)), FakeProvider("nlp")],
        generators=[FakeGenerator(reply="How did you roll back safely?")],
    )
    return TestClient(create_app(service))


def test_full_session_flow(build_service):
    client = _client(build_service)
    assert client.get("/healthz").json() == {"status": "ok"}

    created =client.post("/api/sessions", json={"category": "Technical", "target_role": "DevOps Engineer", "count": 3})
    assert created.status_code == 201
    session = created.json()
    assert session["status"] == "in_progress"
    assert len(session["questions"]) == 3
    question_id = session["questions"][0]["id"]

    answered = client.post(f"/api/sessions/{session['id']}/answers/{question_id}", json=ANSWER)
    assert answered.status_code == 200
    body = answered.json()
    assert body["follow_up_question"] == "Follow-up: How did you roll back safely?"
    assert body["evaluation"]["sources"] == ["openai"]
    assert body["evaluation"]["scores"]["clarity"] == body["evaluation"]["scores"]["communication"]
    assert len(body["timeline_markers"]) == 3

    follow_up = client.post(f"/api/sessions/{session['id']}/answers/{question_id}/follow-up", json={})
    assert follow_up.json()["follow_up_question"].startswith("Follow-up: ")

    chat = client.post(
        f"/api/sessions/{session['id']}/judge-chat",
        json={"message": "hello", "mode": "judge", "question_id": question_id},
    )
    assert chat.status_code == 200
    assert chat.json()["reply"].startswith("Judge: We begin now.")
    assert chat.json()["intent"] == "greeting"

    completed = client.post(f"/api/sessions/{session['id']}/complete")
    assert completed.status_code == 200
    payload = completed.json()
    assert payload["message"] == "Session completed."
    assert payload["session"]["status"] == "completed"
    assert payload["session"]["overall_score"] == body["evaluation"]["scores"]["overall"]

    again = client.post(f"/api/sessions/{session['id']}/complete")
    assert again.json()["message"] == "Session already completed."

    fetched = client.get(f"/api/sessions/{session['id']}")
    assert fetched.json()["questions"][0]["answered"] is True


def test_error_statuses(build_service):
    client = _client(build_service)
    assert client.get("/api/sessions/missing").status_code == 404
    assert client.post("/api/sessions", json={"category": "Astrology"}).status_code == 422

    session = client.post("/api/sessions", json={"category": "HR"}).json()
    question_id = session["questions"][0]["id"]
    assert client.post(f"/api/sessions/{session['id']}/complete").status_code == 400

    empty = client.post(f"/api/sessions/{session['id']}/answers/{question_id}", json={"transcript": "  "})
    assert empty.status_code == 422
    assert empty.json()["detail"] == "Answer is empty. Provide text or a transcript."

    missing = client.post(f"/api/sessions/{session['id']}/answers/nope", json=ANSWER)
    assert missing.status_code == 404


def test_recorded_answer_upload(build_service):
    transcriber = FakeTranscriber(transcript="I mentor juniors through weekly pairing and written design reviews.")
    client = TestClient(create_app(build_service(transcribers=[transcriber])))
    session = client.post("/api/sessions", json={"category": "Behavioral"}).json()
    question_id = session["questions"][0]["id"]
    url = f"/api/sessions/{session['id']}/answers/{question_id}/media"

    bad = client.post(url, files={"media": ("a.webm", b"audio", "audio/webm")}, data={"duration_sec": "Infinity"})
    assert bad.status_code == 422
    unsupported = client.post(url, files={"media": ("notes.pdf", b"%PDF", "application/pdf")})
    assert unsupported.status_code == 400

    answered = client.post(
        url,
        files={"media": ("answer.ogg", b"OggS audio", "audio/ogg")},
        data={"duration_sec": "18", "confidence_self_rating": "7"},
    )
    assert answered.status_code == 200
    assert answered.json()["evaluation"]["transcript"] == transcriber.transcript
    assert transcriber.calls[0]["answer_type"] == "voice"
    assert transcriber.calls[0]["clip"].mime_type == "audio/ogg"


def test_non_finite_signals_are_rejected(build_service):
    client = _client(build_service)
    session = client.post("/api/sessions", json={"category": "HR"}).json()
    url = f"/api/sessions/{session['id']}/answers/{session['questions'][0]['id']}"

    for body in ('{"transcript": "An answer.", "duration_sec": 1e999}', '{"transcript": "An answer.", "facial_expression_score": NaN}'):
        response = client.post(url, content=body, headers={"Content-Type": "application/json"})
        assert response.status_code == 422
    assert client.get(f"/api/sessions/{session['id']}").json()["questions"][0]["answered"] is False
