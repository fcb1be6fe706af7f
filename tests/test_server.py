"""
Tests for the HTTP API
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from verifyx.models import ProgressStep
from verifyx.progress import ProgressTracker
from verifyx.server import create_app, progress_stream
from verifyx.service import VerificationService


@pytest.fixture
def client(settings, secure_config, sleeps):
    service = VerificationService(settings, secure_config=secure_config, sleep=sleeps)
    app = create_app(settings, service=service)
    with TestClient(app) as test_client:
        yield test_client


def sse_payloads(lines):
    return [json.loads(line[len("data: "):]) for line in lines if line.startswith("data: ")]


class FakeRequest:
    """Stands in for a streaming request whose client may go away"""

    def __init__(self):
        self.disconnected = False

    async def is_disconnected(self):
        return self.disconnected


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["oracle"] == "mock"


def test_verify_returns_full_report(client):
    response = client.post("/api/verify", json={
        "propositions": ["The sky is blue.", "Water boils at 100C at sea level."],
        "session_id": "s1",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["session_id"] == "s1"
    assert body["consensus_id"].startswith("c_")
    assert len(body["results"]) == 2
    for result in body["results"]:
        assert len(result["validators"]) == 16
        assert {v["decision"] for v in result["validators"]} <= {"true", "false", "failed"}
        assert result["analysis"]["majority_threshold"] == 8
    assert body["summary"]["total_propositions"] == 2
    assert "overall_score" in body["summary"]["answer_quality"]

    stored = client.get(f"/api/consensus/{body['consensus_id']}")
    assert stored.status_code == 200
    assert stored.json()["consensus_id"] == body["consensus_id"]

    status = client.get("/api/progress/status/s1").json()
    assert status["current_step"] == "completed"
    assert status["progress"] == 100
    assert status["is_processing"] is False


@pytest.mark.parametrize("payload", [{"propositions": []}, {"propositions": ["  "]}])
def test_verify_rejects_invalid_input(client, payload):
    response = client.post("/api/verify", json=payload)

    assert response.status_code == 400


def test_progress_status_for_unknown_session(client):
    body = client.get("/api/progress/status/unknown").json()

    assert body["is_processing"] is False
    assert body["error"] == "Progress data not found"


def test_progress_stream_replays_finished_session(client):
    client.post("/api/verify", json={"propositions": ["Cats are mammals."], "session_id": "s2"})

    with client.stream("GET", "/api/progress/stream/s2") as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        events = sse_payloads(response.iter_lines())

    assert events[0]["type"] == "connected"
    assert events[0]["session_id"] == "s2"
    assert events[1]["type"] == "completed"
    assert events[1]["progress"] == 100


def test_consensus_over_submitted_panels(client):
    validators = (
        [{"success": True, "is_true": True, "confidence": 80}] * 7
        + [{"success": True, "is_true": False, "confidence": 60}] * 2
    )

    response = client.post("/api/consensus", json={
        "verification_id": "v1",
        "results": [{"proposition": "Paris is in France.", "validators": validators}],
    })

    assert response.status_code == 200
    body = response.json()
    analysis = body["results"][0]["analysis"]
    assert analysis["majority_threshold"] == 5
    assert analysis["agreement_level"] == 78
    assert analysis["consensus"] is True
    assert [v["id"] for v in body["results"][0]["validators"]] == list(range(1, 10))
    assert body["results"][0]["validators"][8]["decision"] == "false"
    assert body["summary"]["strong_consensus"] == 1


def test_consensus_requires_results(client):
    assert client.post("/api/consensus", json={"results": []}).status_code == 400


def test_unknown_consensus_is_404(client):
    assert client.get("/api/consensus/c_missing").status_code == 404


def test_split(client):
    response = client.post("/api/split", json={"answer": "Cats are mammals. Birds lay eggs."})

    assert response.status_code == 200
    assert response.json()["propositions"] == ["Cats are mammals.", "Birds lay eggs."]


def test_split_requires_text(client):
    assert client.post("/api/split", json={}).status_code == 400


def test_generate(client):
    response = client.post("/api/generate", json={"question": "Why is the sky blue?"})

    assert response.status_code == 200
    assert "Why is the sky blue?" in response.json()["answer"]


def test_generate_rejects_short_question(client):
    assert client.post("/api/generate", json={"question": "Why"}).status_code == 400


def test_status_and_metrics(client):
    client.post("/api/verify", json={"propositions": ["Cats are mammals."]})

    status = client.get("/api/status").json()
    assert status["success"] is True
    assert status["rate_limiter"]["current_count"] == 16
    assert status["configuration"]["api_keys"]["openai"] == "missing"
    assert status["available_providers"] == []

    metrics = client.get("/api/metrics").json()
    assert metrics["counters"]["validators_succeeded"] == 16
    assert metrics["counters"]["verification_runs"] == 1


@pytest.mark.asyncio
async def test_stream_pings_when_idle_and_stops_after_disconnect():
    tracker = ProgressTracker()
    request = FakeRequest()
    stream = progress_stream(request, tracker, "s1", keepalive_interval=0.01)

    connected = json.loads((await stream.__anext__())[len("data: "):])
    assert connected == {"type": "connected", "session_id": "s1"}
    assert await stream.__anext__() == ": ping\n\n"
    assert tracker.has_subscriber("s1")

    request.disconnected = True
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert not tracker.has_subscriber("s1")


@pytest.mark.asyncio
async def test_closing_stream_unsubscribes():
    tracker = ProgressTracker()
    stream = progress_stream(FakeRequest(), tracker, "s1", keepalive_interval=30)

    await stream.__anext__()
    assert tracker.has_subscriber("s1")

    await stream.aclose()
    assert not tracker.has_subscriber("s1")


@pytest.mark.asyncio
async def test_stream_pings_on_schedule_while_events_flow():
    tracker = ProgressTracker(cleanup_delay=0.01)
    stream = progress_stream(FakeRequest(), tracker, "s1", keepalive_interval=0.05)
    await stream.__anext__()

    async def publish():
        for done in range(1, 21):
            tracker.update("s1", ProgressStep.VERIFYING, 5 * done, done, 20)
            await asyncio.sleep(0.01)
        tracker.update("s1", ProgressStep.COMPLETED, 100, 20, 20)

    publisher = asyncio.create_task(publish())
    frames = [frame async for frame in stream]
    await publisher

    assert ": ping\n\n" in frames
    events = sse_payloads(line for frame in frames for line in frame.splitlines())
    assert len(events) == 21
    assert events[-1]["type"] == "completed"
    assert not tracker.has_subscriber("s1")


def test_recent_consensus_reports(client):
    first = client.post("/api/verify", json={"propositions": ["Cats are mammals."]}).json()
    second = client.post("/api/verify", json={"propositions": ["Birds lay eggs."]}).json()

    body = client.get("/api/consensus").json()
    assert body["success"] is True
    assert [r["consensus_id"] for r in body["reports"]] == [
        first["consensus_id"], second["consensus_id"],
    ]
    assert body["reports"][1]["total_propositions"] == 1

    latest = client.get("/api/consensus", params={"limit": 1}).json()
    assert [r["consensus_id"] for r in latest["reports"]] == [second["consensus_id"]]
    assert client.get("/api/consensus", params={"limit": 0}).status_code == 400
