import json

from gateway_core.domain.models import OP_TRANSCRIBE
from gateway_core.gateway.fallbacks import (
    CHAT_APOLOGY,
    FALLBACK_POLICIES,
    analyze_project_fallback,
    analyze_task_fallback,
    chat_fallback,
    create_task_fallback,
    estimate_effort_fallback,
    index_document_fallback,
    search_documents_fallback,
    suggest_breakdown_fallback,
)


def test_chat_fallback_is_fixed_apology():
    assert chat_fallback("hello") == {"response": CHAT_APOLOGY}
    assert chat_fallback("something else", {"type": "chat"}) == {"response": CHAT_APOLOGY}


def test_create_task_fallback_truncates_long_description():
    description = "x" * 150
    task = create_task_fallback(description)["task"]
    assert task["title"] == "x" * 100
    assert len(task["title"]) == 100
    assert task["description"] == description
    assert task["priority"] == "medium"
    assert task["estimatedTime"] == 4
    assert task["tags"] == ["pending-ai-analysis"]
    assert task["status"] == "todo"


def test_create_task_fallback_keeps_short_description():
    exact = "y" * 100
    assert create_task_fallback(exact)["task"]["title"] == exact
    assert create_task_fallback("Write docs")["task"] == {
        "title": "Write docs",
        "description": "Write docs",
        "priority": "medium",
        "estimatedTime": 4,
        "tags": ["pending-ai-analysis"],
        "status": "todo",
    }


def test_analyze_task_fallback_placeholder():
    analysis = analyze_task_fallback({"title": "t"})["analysis"]
    assert analysis == {
        "complexityScore": 5,
        "estimatedHours": 8,
        "skillsRequired": ["General"],
        "dependencies": [],
        "risks": ["Unable to perform AI analysis"],
        "recommendations": ["Manual review recommended"],
        "blockers": [],
    }


def test_analyze_project_fallback_health_score():
    tasks = [
        {"status": "completed"},
        {"status": "completed"},
        {"status": "done"},
        {"status": "in-progress"},
    ]
    health = analyze_project_fallback({"name": "p"}, tasks)["health"]
    assert health["healthScore"] == 75
    assert health["status"] == "unknown"
    assert health["insights"] == ["AI analysis unavailable"]
    assert health["recommendations"] == ["Manual project review recommended"]


def test_analyze_project_fallback_rounding_and_empty():
    assert analyze_project_fallback({}, [])["health"]["healthScore"] == 0
    assert analyze_project_fallback({}, None)["health"]["healthScore"] == 0
    # 1/8 = 12.5 -> 13, 1/3 = 33.3 -> 33, 2/3 = 66.7 -> 67
    one_of_eight = [{"status": "completed"}] + [{"status": "todo"}] * 7
    assert analyze_project_fallback({}, one_of_eight)["health"]["healthScore"] == 13
    one_of_three = [{"status": "completed"}, {"status": "todo"}, {"status": "todo"}]
    assert analyze_project_fallback({}, one_of_three)["health"]["healthScore"] == 33
    two_of_three = [{"status": "completed"}, {"status": "done"}, {"status": "todo"}]
    assert analyze_project_fallback({}, two_of_three)["health"]["healthScore"] == 67


def test_suggest_breakdown_fallback_two_phases():
    subtasks = suggest_breakdown_fallback({"title": "Login page", "description": "d"})["subtasks"]
    assert [s["title"] for s in subtasks] == ["Login page - Phase 1", "Login page - Phase 2"]
    assert [s["estimatedHours"] for s in subtasks] == [4, 3]
    assert [s["priority"] for s in subtasks] == ["high", "medium"]


def test_estimate_effort_fallback():
    tasks = [{"title": "a"}, {"title": "b"}, {"title": "c"}]
    result = estimate_effort_fallback(tasks)
    assert result["totalHours"] == 24
    assert len(result["estimates"]) == 3
    assert all(e["confidence"] == "low" for e in result["estimates"])
    assert all(e["estimatedHours"] == 8 for e in result["estimates"])
    assert estimate_effort_fallback([]) == {"estimates": [], "totalHours": 0}


def test_content_operations_never_fabricate():
    assert index_document_fallback("text", {"a": 1}) == {"success": False, "message": "unavailable"}
    assert search_documents_fallback("query", limit=5) == {"results": []}
    assert OP_TRANSCRIBE not in FALLBACK_POLICIES


def test_fallbacks_are_deterministic():
    inputs = {
        "chat": {"message": "hi"},
        "create-task": {"description": "d" * 120},
        "analyze-task": {"task": {"title": "t"}},
        "analyze-project": {"project_data": {}, "tasks": [{"status": "completed"}, {"status": "todo"}]},
        "suggest-breakdown": {"task": {"title": "t"}},
        "estimate-effort": {"tasks": [{"title": "a"}, {"title": "b"}]},
        "index-document": {"content": "c"},
        "search-documents": {"query": "q"},
    }
    for operation, kwargs in inputs.items():
        fn = FALLBACK_POLICIES[operation]
        first = json.dumps(fn(**kwargs), sort_keys=True)
        second = json.dumps(fn(**kwargs), sort_keys=True)
        assert first == second, operation
