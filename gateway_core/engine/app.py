"""
Mock AI 引擎的 FastAPI HTTP 接口。

Endpoints:
  GET  /health                    : 存活探测
  POST /api/v1/ai/chat            : 对话
  POST /api/v1/ai/analyze-task    : 任务分析
  POST /api/v1/ai/create-task     : 根据描述生成任务
  POST /api/v1/ai/analyze-project : 项目健康分析

所有响应使用 {"success": bool, "data"|"error": ...} 信封。
其余路径返回 404，Gateway 对这些操作会走 fallback。
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway_core.config.settings import settings
from gateway_core.engine.orchestrator import MockOrchestrator
from gateway_core.infrastructure.logging.logger import get_logger
from gateway_core.upstream.endpoints import API_PREFIX, HEALTH_PATH


logger = get_logger("engine.api")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ChatBody(BaseModel):
    message: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class AnalyzeTaskBody(BaseModel):
    task: Optional[Dict[str, Any]] = None
    projectContext: Optional[Dict[str, Any]] = None


class CreateTaskBody(BaseModel):
    description: Optional[str] = None
    projectId: Optional[str] = None


class AnalyzeProjectBody(BaseModel):
    projectData: Optional[Dict[str, Any]] = None
    tasks: Optional[List[Dict[str, Any]]] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _ok(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "data": data}


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(orchestrator: Optional[MockOrchestrator] = None, cfg=settings) -> FastAPI:
    """构建引擎应用。orchestrator 初始化失败时服务仍然启动，AI 路由返回 503。"""

    app = FastAPI(
        title="ZenAI AI Engine (mock)",
        version="0.1.0",
        description="Mock AI engine honouring the gateway's upstream contract.",
    )
    started = time.monotonic()

    engine: Optional[MockOrchestrator] = orchestrator or MockOrchestrator()
    try:
        engine.initialize()
        logger.info("AI orchestrator initialized successfully")
    except Exception as exc:
        logger.error("Failed to initialize orchestrator: %s", exc, exc_info=True)
        engine = None
    app.state.orchestrator = engine

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error(404, "Endpoint not found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid request body")

    def _require_engine() -> Optional[JSONResponse]:
        if app.state.orchestrator is None:
            return _error(503, "AI service not initialized")
        return None

    def _process(label: str, message: str, context: Dict[str, Any]):
        try:
            return _ok(app.state.orchestrator.process_request(message, context))
        except Exception as exc:
            logger.error(f"{label} error: {exc}", exc_info=True)
            return _error(500, str(exc))

    @app.get(HEALTH_PATH, tags=["meta"])
    def health() -> Dict[str, Any]:
        """存活探测。"""
        return {
            "status": "healthy",
            "service": cfg.engine_service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - started,
        }

    @app.post(f"{API_PREFIX}/chat", tags=["ai"])
    def chat(body: ChatBody):
        if not body.message:
            return _error(400, "Message is required")
        return _require_engine() or _process("Chat", body.message, body.context or {})

    @app.post(f"{API_PREFIX}/analyze-task", tags=["ai"])
    def analyze_task(body: AnalyzeTaskBody):
        if body.task is None:
            return _error(400, "Task data is required")
        context = {**(body.projectContext or {}), "type": "task-analysis"}
        return _require_engine() or _process(
            "Task analysis",
            f"Analyze this task: {json.dumps(body.task, ensure_ascii=False)}",
            context,
        )

    @app.post(f"{API_PREFIX}/create-task", tags=["ai"])
    def create_task(body: CreateTaskBody):
        if not body.description:
            return _error(400, "Task description is required")
        context = {"type": "task-creation", "projectId": body.projectId}
        return _require_engine() or _process("Task creation", body.description, context)

    @app.post(f"{API_PREFIX}/analyze-project", tags=["ai"])
    def analyze_project(body: AnalyzeProjectBody):
        if body.projectData is None:
            return _error(400, "Project data is required")
        summary = json.dumps({"projectData": body.projectData, "tasks": body.tasks}, ensure_ascii=False)
        return _require_engine() or _process(
            "Project analysis",
            f"Analyze project: {summary}",
            {"type": "project-analysis"},
        )

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_engine() -> None:
    """通过 uvicorn 启动 Mock 引擎。"""
    logger.info(
        "Starting mock AI engine",
        extra={"extra": {"host": settings.engine_host, "port": settings.engine_port}},
    )
    uvicorn.run(
        create_app(),
        host=settings.engine_host,
        port=settings.engine_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_engine()
