from fastapi.testclient import TestClient

from gateway_core.engine.app import create_app
from gateway_core.engine.orchestrator import MockOrchestrator


class BrokenOrchestrator(MockOrchestrator):
    def initialize(self):
        raise RuntimeError("model weights missing")


class ExplodingOrchestrator(MockOrchestrator):
    def process_request(self, message, context=None):
        raise RuntimeError("inference crashed")


def test_health():
    client = TestClient(create_app())
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["service"] == "zenai-ai-engine"
    assert body["uptime"] >= 0


def test_chat_default_echo():
    client = TestClient(create_app())
    resp = client.post("/api/v1/ai/chat", json={"message": "hello"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert 'I received your message: "hello"' in body["data"]["response"]
    assert body["data"]["metadata"]["mode"] == "mock"


def test_chat_requires_message():
    client = TestClient(create_app())
    resp = client.post("/api/v1/ai/chat", json={"context": {}})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Message is required"}


def test_analyze_task():
    client = TestClient(create_app())
    resp = client.post("/api/v1/ai/analyze-task", json={"task": {"title": "API"}, "projectContext": {"projectId": "p"}})
    assert resp.status_code == 200
    analysis = resp.json()["data"]["analysis"]
    assert analysis["complexityScore"] == 5
    assert analysis["skillsRequired"] == ["JavaScript", "Node.js"]

    missing = client.post("/api/v1/ai/analyze-task", json={})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Task data is required"

    null_task = client.post("/api/v1/ai/analyze-task", json={"task": None})
    assert null_task.status_code == 400

    # 只有缺省或 null 视为缺失，空对象照常处理
    empty = client.post("/api/v1/ai/analyze-task", json={"task": {}})
    assert empty.status_code == 200
    assert empty.json()["success"] is True


def test_create_task_truncates_title_to_50():
    client = TestClient(create_app())
    description = "d" * 80
    resp = client.post("/api/v1/ai/create-task", json={"description": description, "projectId": "p1"})
    task = resp.json()["data"]["task"]
    assert task["title"] == "d" * 50
    assert task["description"] == description
    assert task["tags"] == ["ai-generated"]

    missing = client.post("/api/v1/ai/create-task", json={"projectId": "p1"})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Task description is required"


def test_analyze_project():
    client = TestClient(create_app())
    resp = client.post("/api/v1/ai/analyze-project", json={"projectData": {"name": "p"}, "tasks": []})
    health = resp.json()["data"]["health"]
    assert health["score"] == 75
    assert health["status"] == "healthy"

    missing = client.post("/api/v1/ai/analyze-project", json={"tasks": []})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Project data is required"


def test_unknown_endpoint_is_404_envelope():
    client = TestClient(create_app())
    resp = client.post("/api/v1/ai/suggest-breakdown", json={"task": {"title": "t"}})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Endpoint not found"}


def test_uninitialized_orchestrator_returns_503():
    app = create_app(BrokenOrchestrator())
    assert app.state.orchestrator is None
    client = TestClient(app)
    resp = client.post("/api/v1/ai/chat", json={"message": "hi"})
    assert resp.status_code == 503
    assert resp.json() == {"success": False, "error": "AI service not initialized"}
    assert client.get("/health").status_code == 200


def test_orchestrator_error_returns_500():
    client = TestClient(create_app(ExplodingOrchestrator()))
    resp = client.post("/api/v1/ai/chat", json={"message": "hi"})
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "inference crashed"}


def test_orchestrator_dispatch():
    orch = MockOrchestrator()
    assert orch.initialize() is True
    assert "analysis" in orch.process_request("x", {"type": "task-analysis"})
    assert "task" in orch.process_request("x", {"type": "task-creation"})
    assert "health" in orch.process_request("x", {"type": "project-analysis"})
    assert orch.process_request("x")["metadata"]["mode"] == "mock"
