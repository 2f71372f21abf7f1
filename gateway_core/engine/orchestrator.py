"""Mock AI Orchestrator。

在真实推理引擎接入前，按 context["type"] 返回固定结构的模拟结果，
用于约定 Gateway 所依赖的上游响应结构。
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from gateway_core.infrastructure.logging.logger import get_logger


logger = get_logger("engine.orchestrator")


class MockOrchestrator:
    """模拟的请求处理器。"""

    def __init__(self) -> None:
        self.initialized = False

    def initialize(self) -> bool:
        self.initialized = True
        logger.info("Mock orchestrator initialized")
        return True

    def process_request(self, message: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        context = context or {}
        logger.info(f"Processing request: {message[:50]}...")
        request_type = context.get("type")

        if request_type == "task-analysis":
            return {
                "response": f'Task analysis for: "{message}"',
                "analysis": {
                    "complexityScore": 5,
                    "estimatedHours": 8,
                    "skillsRequired": ["JavaScript", "Node.js"],
                    "recommendations": ["Break down into smaller tasks", "Add unit tests"],
                },
            }

        if request_type == "task-creation":
            return {
                "response": "Task created successfully",
                "task": {
                    "title": message[:50],
                    "description": message,
                    "priority": "medium",
                    "estimatedTime": 8,
                    "tags": ["ai-generated"],
                },
            }

        if request_type == "project-analysis":
            return {
                "response": "Project analysis completed",
                "health": {
                    "score": 75,
                    "status": "healthy",
                    "insights": ["Project on track", "Good velocity"],
                    "recommendations": ["Continue current pace"],
                },
            }

        return {
            "response": (
                f'I received your message: "{message}". AI engine is running in mock mode. '
                "Connect a model provider for full functionality."
            ),
            "metadata": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "mode": "mock",
            },
        }
