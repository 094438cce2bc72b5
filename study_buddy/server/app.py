# server/app.py
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .llm import generate_quiz, generate_schedule
from .providers import ProviderError, select_provider
from .schemas import ChatIn, ChatOut, ChatReply, QuizOut, QuizRequest, ScheduleRequest

CHAT_PROVIDERS = ("auto", "gemini", "heroku")

app = FastAPI(title="Study Buddy Backend")

_startup_settings = get_settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_startup_settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _key_prefix(key: Optional[str]) -> str:
    return key[:8] + "..." if len(key or "") >= 8 else "(short key)"


if _startup_settings.has_heroku:
    logger.info(f"[app] Heroku AI configured; model: {_startup_settings.heroku_inference_model_id}")
if _startup_settings.has_gemini:
    logger.info(
        f"[app] Gemini configured; key prefix: {_key_prefix(_startup_settings.gemini_api_key)}"
    )
if not (_startup_settings.has_heroku or _startup_settings.has_gemini):
    logger.info("[app] No AI provider configured. Using deterministic fallbacks.")


# ---------------------------------------------------------------------------
# Errors – every error body is {"error": ...}
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # the rejected input is left out; it may hold values JSON cannot encode (NaN, Infinity)
    detail = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input", "detail": jsonable_encoder(detail)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_tool_provider(settings: Settings = Depends(get_settings)) -> Any:
    return select_provider(settings, "auto")


def get_provider_factory(
    settings: Settings = Depends(get_settings),
) -> Callable[[str], Any]:
    return lambda preference: select_provider(settings, preference)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/api/ping")
def ping(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    return {"message": settings.ping_message}


# ---------------------------------------------------------------------------
# /tools – schedule + quiz generators
# ---------------------------------------------------------------------------

tools = APIRouter(prefix="/tools", tags=["tools"])


@tools.post("/schedule_generator")
def schedule_generator(
    payload: ScheduleRequest,
    provider: Any = Depends(get_tool_provider),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    # Provider output is passed through unvalidated, so no response_model here.
    return generate_schedule(
        payload,
        provider=provider,
        remainder_policy=settings.schedule_remainder_policy,
    )


@tools.post("/quiz_generator", response_model=QuizOut)
def quiz_generator(
    payload: QuizRequest,
    provider: Any = Depends(get_tool_provider),
) -> QuizOut:
    if provider is None:
        raise HTTPException(
            status_code=501,
            detail="No AI provider configured. Set GEMINI_API_KEY or Heroku AI credentials.",
        )
    return QuizOut(**generate_quiz(payload, provider))


app.include_router(tools)
app.include_router(tools, prefix="/api")


# ---------------------------------------------------------------------------
# /api/ai – chat relay
# ---------------------------------------------------------------------------

ai = APIRouter(prefix="/api/ai", tags=["ai"])

_NOT_CONFIGURED = {
    "auto": "No AI providers configured. Set up Gemini or Heroku AI credentials.",
    "gemini": "GEMINI_API_KEY not set. Connect provider or set env.",
    "heroku": (
        "Heroku AI not configured. Set HEROKU_INFERENCE_URL, "
        "HEROKU_INFERENCE_KEY, and HEROKU_INFERENCE_MODEL_ID"
    ),
}


def _relay_chat(
    payload: ChatIn, preference: str, factory: Callable[[str], Any]
) -> ChatOut:
    if not payload.messages:
        raise HTTPException(status_code=400, detail="messages array required")
    if preference not in CHAT_PROVIDERS:
        raise HTTPException(
            status_code=400,
            detail="Invalid provider. Use 'gemini', 'heroku', or 'auto'",
        )

    provider = factory(preference)
    if provider is None:
        raise HTTPException(status_code=501, detail=_NOT_CONFIGURED[preference])

    try:
        result = provider.chat(payload.messages)
    except ProviderError as e:
        logger.warning(f"[ai] {e.provider} chat failed: {e}")
        if e.status_code is not None:
            raise HTTPException(status_code=502, detail=str(e))
        raise HTTPException(status_code=500, detail=str(e) or "AI request failed")

    return ChatOut(
        message=ChatReply(content=result.content or "(empty response)"),
        citations=[],
        provider=result.provider,
        usage=result.usage,
    )


@ai.post("/chat", response_model=ChatOut, response_model_exclude_none=True)
def chat(
    payload: ChatIn, factory: Callable[[str], Any] = Depends(get_provider_factory)
) -> ChatOut:
    return _relay_chat(payload, payload.provider, factory)


@ai.post("/gemini-chat", response_model=ChatOut, response_model_exclude_none=True)
def gemini_chat(
    payload: ChatIn, factory: Callable[[str], Any] = Depends(get_provider_factory)
) -> ChatOut:
    return _relay_chat(payload, "gemini", factory)


@ai.post("/heroku-chat", response_model=ChatOut, response_model_exclude_none=True)
def heroku_chat(
    payload: ChatIn, factory: Callable[[str], Any] = Depends(get_provider_factory)
) -> ChatOut:
    return _relay_chat(payload, "heroku", factory)


app.include_router(ai)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
