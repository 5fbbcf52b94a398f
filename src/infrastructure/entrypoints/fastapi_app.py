"""
FastAPI entry point: thin HTTP adapter over AskQuestionUseCase.

    POST /chat         -> {"status": "ok", "answer": str, "context_used": str, "intent": str}
    POST /chat/stream  -> Server-Sent Events: data: {"token": str} ... data: [DONE]
    GET  /health

A price store failure is reported as a generic 503; nothing else surfaces as an
error. When the client disconnects mid-stream the generator is closed, which
cancels the generative backend request.

Run locally:
    uvicorn src.infrastructure.entrypoints.fastapi_app:create_app --factory --reload --port 8000
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from src.domain.errors import StoreUnavailableError
from src.infrastructure.config.settings import Settings, get_settings
from src.infrastructure.entrypoints.composition import Components, build_components

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to process chat request"


class ChatRequest(BaseModel):
    question: str = Field(min_length=1, max_length=500)


def sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def create_app(
    components: Optional[Components] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the FastAPI app. Pass *components* to inject a pre-wired pipeline."""
    load_dotenv()
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    components = components or build_components(settings)
    use_case = components.use_case

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await components.aclose()

    app = FastAPI(title="Metal Price Assistant API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.post("/chat")
    async def chat(body: ChatRequest):
        try:
            answer = await use_case.execute(body.question.strip())
        except StoreUnavailableError as exc:
            logger.error("Chat request failed: %s", exc)
            raise HTTPException(status_code=503, detail=GENERIC_FAILURE) from exc
        return {
            "status": "ok",
            "answer": answer.answer_text,
            "context_used": answer.evidence_excerpt,
            "intent": answer.intent.value,
        }

    @app.post("/chat/stream")
    async def chat_stream(body: ChatRequest, request: Request):
        """Stream the answer as Server-Sent Events."""

        async def event_stream():
            events = use_case.stream(body.question.strip())
            try:
                async for event in events:
                    if await request.is_disconnected():
                        logger.info("Client disconnected, stopping stream")
                        return
                    if event["type"] == "token":
                        yield sse({"token": event["content"]})
            except StoreUnavailableError as exc:
                logger.error("Chat stream failed: %s", exc)
                yield sse({"error": GENERIC_FAILURE})
            finally:
                await events.aclose()
            yield "data: [DONE]\n\n"

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
