import asyncio
import logging
from typing import Optional, get_args

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .forms import FormRegistry, FormStateError, InvalidReferenceFormat, WikiRequestForm
from .models import (
    ConfigResponse, ConfigurationBundle, ConfirmResponse, FormSnapshot, NavigationTarget,
    Platform, RepositoryInputRequest, RepositoryLocator, ResolutionFailure, SubmitRequest,
    TargetResponse,
)
from .services import resolve_reference
from .utils import (
    CLEAN_INTERVAL_SECONDS, CORS_ORIGINS, DEFAULT_LANGUAGE,
    SESSION_TTL_SECONDS, SUPPORTED_LANGUAGES, load_messages, make_translator,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="repowiki")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def log_navigation(target: NavigationTarget) -> None:
    # 쿼리에는 토큰이 포함될 수 있으므로 경로만 기록
    logger.info("Navigating to %s", target.path)


# 세션별 입력 폼
forms = FormRegistry(navigate=log_navigation)
t = make_translator(load_messages())
cleanup_task = None


async def session_gc_loop():
    """세션 TTL 기반 백그라운드 청소"""
    while True:
        try:
            removed = forms.sweep(SESSION_TTL_SECONDS)
            if removed:
                logger.info("Expired %d idle form session(s)", removed)
        except Exception:
            logger.exception("Session cleanup failed")
        await asyncio.sleep(CLEAN_INTERVAL_SECONDS)


@app.on_event("startup")
async def start_cleanup_task():
    global cleanup_task
    cleanup_task = asyncio.create_task(session_gc_loop())


@app.on_event("shutdown")
async def stop_cleanup_task():
    global cleanup_task
    if cleanup_task:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        cleanup_task = None


def require_form(x_session_id: Optional[str]) -> WikiRequestForm:
    if not x_session_id:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header")
    return forms.get(x_session_id)


def target_response(target: Optional[NavigationTarget]) -> Optional[TargetResponse]:
    if target is None:
        return None
    return TargetResponse(path=target.path, query=target.query, url=target.url)


def snapshot(form: WikiRequestForm) -> FormSnapshot:
    return FormSnapshot(
        state=form.state,
        repository_input=form.repository_input,
        error=form.error,
        is_submitting=form.is_submitting,
        locator=form.locator,
        target=target_response(form.target),
        submit_label=t("common.processing") if form.is_submitting else t("common.generateWiki"),
        placeholder=t("form.repoPlaceholder"),
    )


@app.exception_handler(InvalidReferenceFormat)
async def invalid_reference_handler(_: Request, exc: InvalidReferenceFormat) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(FormStateError)
async def form_state_handler(_: Request, exc: FormStateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.get("/config", response_model=ConfigResponse)
def get_config():
    return ConfigResponse(
        platforms=list(get_args(Platform)),
        languages=SUPPORTED_LANGUAGES,
        default_language=DEFAULT_LANGUAGE,
        defaults=ConfigurationBundle(),
    )


@app.websocket("/ws/{session_id}")
async def ws_endpoint(websocket: WebSocket, session_id: str):
    await websocket.accept()
    logger.info("WebSocket connected: %s", session_id)
    try:
        while True:
            msg = await websocket.receive_text()
            if msg == "ping":
                await websocket.send_text("pong")
            elif msg == "disconnect":
                logger.info("Client requested disconnect: %s", session_id)
                await websocket.close()
                break
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: %s", session_id)
    finally:
        # 연결이 어떤 이유로든 종료되면 세션 폼 정리
        forms.discard(session_id)


@app.post("/resolve", response_model=RepositoryLocator)
def resolve(req: RepositoryInputRequest):
    result = resolve_reference(req.repository_input)
    if isinstance(result, ResolutionFailure):
        raise InvalidReferenceFormat()
    return result


@app.get("/form", response_model=FormSnapshot)
def get_form(x_session_id: Optional[str] = Header(None)):
    return snapshot(require_form(x_session_id))


@app.post("/form/input", response_model=FormSnapshot)
def edit_form(req: RepositoryInputRequest, x_session_id: Optional[str] = Header(None)):
    form = require_form(x_session_id)
    form.edit(req.repository_input)
    return snapshot(form)


@app.post("/form/submit", response_model=FormSnapshot)
def submit_form(req: SubmitRequest, x_session_id: Optional[str] = Header(None)):
    form = require_form(x_session_id)
    if form.submit(req.repository_input) is None:
        raise InvalidReferenceFormat(form.error)
    return snapshot(form)


@app.post("/form/cancel", response_model=FormSnapshot)
def cancel_form(x_session_id: Optional[str] = Header(None)):
    form = require_form(x_session_id)
    form.cancel()
    return snapshot(form)


@app.post("/form/confirm", response_model=ConfirmResponse)
def confirm_form(config: ConfigurationBundle, x_session_id: Optional[str] = Header(None)):
    form = require_form(x_session_id)
    target = form.confirm(config)
    if target is None:
        # 재검증 실패 시에는 대화상자가 열린 채로 오류를 표시
        if form.error and form.is_dialog_open:
            raise InvalidReferenceFormat(form.error)
        return ConfirmResponse(status="ignored")
    return ConfirmResponse(status="navigated", target=target_response(target))
