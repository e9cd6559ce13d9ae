"""FastAPI server: tasks, views, auth, and the voice and text assistants."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from trantor.config import Settings
from trantor.errors import (
    AuthenticationError,
    SpeechUnavailableError,
    TaskNotFoundError,
    TaskStoreError,
)
from trantor.models import (
    AuthSession,
    CalendarMode,
    Currency,
    KpiRange,
    Preferences,
    PreferencesUpdate,
    ProfileUpdate,
    Quadrant,
    Status,
    TaskCreate,
    TaskUpdate,
    User,
)
from trantor.services.state import AppState, build_state
from trantor.services.task_service import timer_snapshot
from trantor.tools.task_tools import set_task_service
from trantor.views import (
    calendar,
    dashboard,
    eisenhower_matrix,
    filter_tasks,
    kanban_board,
    kpi_report,
    shift_anchor,
)
from trantor.voice.live_session import VoiceSession
from trantor.voice.tools import ToolDispatcher

logger = logging.getLogger("trantor")


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class SignUpRequest(BaseModel):
    email: str
    password: str
    full_name: str | None = None


class SignUpResponse(BaseModel):
    session: AuthSession | None
    # True when the provider wants the email confirmed before signing in
    confirmation_required: bool


class LoginRequest(BaseModel):
    email: str
    password: str


class CommentRequest(BaseModel):
    text: str


class MoveRequest(BaseModel):
    status: Status | None = None
    quadrant: Quadrant | None = None


class ChatRequest(BaseModel):
    message: str
    thread_id: str = "default"


class ChatResponse(BaseModel):
    response: str
    thread_id: str


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

_bearer = HTTPBearer(auto_error=False)


def get_state(request: Request) -> AppState:
    return request.app.state.trantor


def get_token(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return credentials.credentials


def get_current_user(token: str = Depends(get_token), state: AppState = Depends(get_state)) -> User:
    return state.profile_for(state.auth.get_user(token))


def _user_from_socket(websocket: WebSocket) -> User | None:
    state: AppState = websocket.app.state.trantor
    token = websocket.query_params.get("token", "")
    if not token:
        return None
    try:
        return state.profile_for(state.auth.get_user(token))
    except AuthenticationError:
        return None


def _thread_key(user: User, thread_id: str) -> str:
    return f"{user.id}:{thread_id}"


def _last_ai_text(messages) -> str:
    for msg in reversed(messages):
        if msg.type == "ai" and msg.content and isinstance(msg.content, str):
            return msg.content
    return ""


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

def _register_error_handlers(application: FastAPI) -> None:
    @application.exception_handler(TaskNotFoundError)
    async def task_not_found(request: Request, exc: TaskNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @application.exception_handler(TaskStoreError)
    async def task_store_failed(request: Request, exc: TaskStoreError):
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @application.exception_handler(AuthenticationError)
    async def auth_failed(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @application.exception_handler(SpeechUnavailableError)
    async def speech_unavailable(request: Request, exc: SpeechUnavailableError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _register_routes(application: FastAPI) -> None:  # noqa: C901
    """Attach all endpoint handlers to *application*."""

    # ---- 1. Auth -----------------------------------------------------------

    @application.post("/api/auth/signup", response_model=SignUpResponse)
    def signup(request: SignUpRequest, state: AppState = Depends(get_state)):
        try:
            session = state.auth.sign_up(request.email, request.password, request.full_name)
        except AuthenticationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return SignUpResponse(session=session, confirmation_required=session is None)

    @application.post("/api/auth/login", response_model=AuthSession)
    def login(request: LoginRequest, state: AppState = Depends(get_state)):
        return state.auth.sign_in(request.email, request.password)

    @application.get("/api/auth/oauth/{provider}")
    def oauth(provider: str, state: AppState = Depends(get_state)):
        return {"url": state.auth.sign_in_with_oauth(provider)}

    @application.post("/api/auth/logout")
    def logout(token: str = Depends(get_token), state: AppState = Depends(get_state)):
        state.auth.sign_out(token)
        return {"status": "signed_out"}

    @application.get("/api/auth/me", response_model=User)
    def me(user: User = Depends(get_current_user)):
        return user

    # ---- 2. Profile & preferences -----------------------------------------

    @application.get("/api/profile", response_model=User)
    def get_profile(user: User = Depends(get_current_user)):
        return user

    @application.patch("/api/profile", response_model=User)
    def update_profile(
        update: ProfileUpdate,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        return state.update_profile(user, update)

    @application.get("/api/preferences", response_model=Preferences)
    def get_preferences(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return state.preferences_for(user.id)

    @application.patch("/api/preferences", response_model=Preferences)
    def update_preferences(
        update: PreferencesUpdate,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        current = state.preferences_for(user.id)
        updated = current.model_copy(update=update.model_dump(exclude_unset=True, exclude_none=True))
        state.set_preferences(user.id, updated)
        return updated

    # ---- 3. Tasks ----------------------------------------------------------

    @application.get("/api/tasks")
    def list_tasks(
        query: str = "",
        show_completed: bool = False,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        tasks = state.tasks_for(user.id).list_tasks()
        return filter_tasks(tasks, query, show_completed)

    @application.post("/api/tasks", status_code=201)
    def create_task(
        data: TaskCreate,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        language = state.preferences_for(user.id).language
        return state.tasks_for(user.id).create_task(data, language)

    @application.get("/api/tasks/{task_id}")
    def get_task(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return state.tasks_for(user.id).get_task(task_id)

    @application.patch("/api/tasks/{task_id}")
    def update_task(
        task_id: str,
        update: TaskUpdate,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        return state.tasks_for(user.id).update_task(task_id, update)

    @application.delete("/api/tasks/{task_id}", status_code=204)
    def delete_task(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        state.tasks_for(user.id).delete_task(task_id)

    @application.post("/api/tasks/{task_id}/toggle")
    def toggle_task(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return state.tasks_for(user.id).toggle_complete(task_id)

    @application.post("/api/tasks/{task_id}/comments")
    def add_comment(
        task_id: str,
        request: CommentRequest,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        return state.tasks_for(user.id).add_comment(task_id, request.text, user.name, user.avatar)

    @application.post("/api/tasks/{task_id}/timer/start")
    def start_timer(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return state.tasks_for(user.id).start_timer(task_id)

    @application.post("/api/tasks/{task_id}/timer/stop")
    def stop_timer(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return state.tasks_for(user.id).stop_timer(task_id)

    @application.get("/api/tasks/{task_id}/timer")
    def get_timer(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return asdict(timer_snapshot(state.tasks_for(user.id).get_task(task_id)))

    @application.post("/api/tasks/{task_id}/move")
    def move_task(
        task_id: str,
        request: MoveRequest,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        service = state.tasks_for(user.id)
        if request.status is None and request.quadrant is None:
            raise HTTPException(status_code=422, detail="Provide a status or a quadrant")
        task = None
        if request.status is not None:
            task = service.move_to_status(task_id, request.status)
        if request.quadrant is not None:
            task = service.move_to_quadrant(task_id, request.quadrant)
        return task

    @application.post("/api/tasks/{task_id}/speech")
    async def task_speech(task_id: str, user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        task = state.tasks_for(user.id).get_task(task_id)
        language = state.preferences_for(user.id).language
        return await state.speech.speak_task(task, language, state.logs_for(user.id))

    # ---- 4. Views ----------------------------------------------------------

    @application.get("/api/views/matrix")
    def matrix_view(
        query: str = "",
        show_completed: bool = False,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        tasks = filter_tasks(state.tasks_for(user.id).list_tasks(), query, show_completed)
        return eisenhower_matrix(tasks, state.preferences_for(user.id).language)

    @application.get("/api/views/board")
    def board_view(
        query: str = "",
        show_completed: bool = False,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        tasks = filter_tasks(state.tasks_for(user.id).list_tasks(), query, show_completed)
        return kanban_board(tasks, state.preferences_for(user.id).language)

    @application.get("/api/views/calendar")
    def calendar_view(
        mode: CalendarMode = CalendarMode.DAY,
        anchor: date | None = None,
        step: int = 0,
        query: str = "",
        show_completed: bool = False,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        anchor = anchor or date.today()
        if step:
            anchor = shift_anchor(anchor, mode, step)
        tasks = filter_tasks(state.tasks_for(user.id).list_tasks(), query, show_completed)
        return calendar(tasks, mode, anchor, state.preferences_for(user.id).language)

    # ---- 5. Dashboard & KPIs ----------------------------------------------

    @application.get("/api/dashboard")
    def get_dashboard(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        tasks = state.tasks_for(user.id).list_tasks()
        return dashboard(tasks, state.preferences_for(user.id).language)

    @application.get("/api/kpis")
    def get_kpis(
        kpi_range: KpiRange = Query(KpiRange.WEEK, alias="range"),
        currency: Currency | None = None,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        prefs = state.preferences_for(user.id)
        tasks = state.tasks_for(user.id).list_tasks()
        return kpi_report(tasks, kpi_range, currency or prefs.currency, prefs.language)

    # ---- 6. Notifications --------------------------------------------------

    @application.get("/api/notifications")
    def list_notifications(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        center = state.notifications_for(user.id)
        tasks = state.tasks_for(user.id).list_tasks()
        center.refresh(tasks, state.preferences_for(user.id).language)
        return {"unread": center.unread_count(), "items": center.list()}

    @application.post("/api/notifications/read")
    def mark_notifications_read(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        state.notifications_for(user.id).mark_all_read()
        return {"status": "ok"}

    @application.delete("/api/notifications", status_code=204)
    def clear_notifications(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        state.notifications_for(user.id).clear()

    # ---- 7. System log -----------------------------------------------------

    @application.get("/api/logs")
    def get_logs(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        return state.logs_for(user.id).entries()

    @application.delete("/api/logs", status_code=204)
    def clear_logs(user: User = Depends(get_current_user), state: AppState = Depends(get_state)):
        state.logs_for(user.id).clear()

    # ---- 8. Text assistant -------------------------------------------------

    @application.post("/api/assistant/chat", response_model=ChatResponse)
    async def assistant_chat(
        request: ChatRequest,
        user: User = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        """Send a message to the task assistant."""
        if state.assistant is None:
            raise HTTPException(status_code=503, detail="Assistant disabled: ANTHROPIC_API_KEY not set")
        language = state.preferences_for(user.id).language
        set_task_service(state.tasks_for(user.id), language)
        agent = state.assistant.agent(language)
        try:
            result = await agent.ainvoke(
                {"messages": [{"role": "user", "content": request.message}]},
                {"configurable": {"thread_id": _thread_key(user, request.thread_id)}},
            )
        except Exception as e:
            logger.error("Assistant failed: %s", e)
            raise HTTPException(status_code=500, detail=str(e))
        return ChatResponse(response=_last_ai_text(result["messages"]), thread_id=request.thread_id)

    # ---- 9. WebSocket /ws/chat ---------------------------------------------

    @application.websocket("/ws/chat")
    async def websocket_chat(websocket: WebSocket):
        """Token-streaming chat with the task assistant.

        Client sends {"message": "...", "thread_id": "..."}; the server answers
        with {"type": "token", "content": "..."} frames and a final {"type": "done"}.
        """
        await websocket.accept()
        user = _user_from_socket(websocket)
        state: AppState = application.state.trantor
        if user is None:
            await websocket.close(code=1008)
            return
        if state.assistant is None:
            await websocket.send_json({"type": "error", "content": "Assistant disabled"})
            await websocket.close()
            return

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    data = {"message": raw}
                message = data.get("message", "")
                thread_id = data.get("thread_id", "default")
                language = state.preferences_for(user.id).language
                set_task_service(state.tasks_for(user.id), language)
                agent = state.assistant.agent(language)

                try:
                    async for event in agent.astream_events(
                        {"messages": [{"role": "user", "content": message}]},
                        {"configurable": {"thread_id": _thread_key(user, thread_id)}},
                        version="v2",
                    ):
                        if event.get("event", "") == "on_chat_model_stream":
                            chunk = event.get("data", {}).get("chunk")
                            if chunk and isinstance(chunk.content, str) and chunk.content:
                                await websocket.send_json({"type": "token", "content": chunk.content})
                except Exception as e:
                    logger.error("Assistant stream failed: %s", e)
                    await websocket.send_json({"type": "error", "content": str(e)})

                await websocket.send_json({"type": "done"})

        except WebSocketDisconnect:
            pass

    # ---- 10. WebSocket /ws/voice -------------------------------------------

    @application.websocket("/ws/voice")
    async def websocket_voice(websocket: WebSocket):
        """Live voice assistant; see :mod:`trantor.voice.live_session` for the protocol."""
        await websocket.accept()
        user = _user_from_socket(websocket)
        if user is None:
            await websocket.close(code=1008)
            return
        state: AppState = application.state.trantor
        language = state.preferences_for(user.id).language
        session = VoiceSession(
            websocket,
            state.live_connector,
            ToolDispatcher(state.tasks_for(user.id), state.logs_for(user.id), language),
            state.logs_for(user.id),
            language,
        )
        try:
            await session.run()
        except WebSocketDisconnect:
            pass

    # ---- 11. GET /api/health -----------------------------------------------

    @application.get("/api/health")
    async def health_check():
        state: AppState | None = getattr(application.state, "trantor", None)
        return {
            "status": "ok",
            "service": "trantor",
            "voice": bool(state and state.live_connector),
            "assistant": bool(state and state.assistant),
        }


# ---------------------------------------------------------------------------
# Lifespan: initialise shared state once on startup
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = getattr(application.state, "settings", None) or Settings()
    application.state.settings = settings
    application.state.trantor = build_state(settings)
    logger.info("Trantor server started on %s:%s", settings.host, settings.port)
    yield


# ---------------------------------------------------------------------------
# App factory + default instance
# ---------------------------------------------------------------------------

def create_app(settings: Settings | None = None, state: AppState | None = None) -> FastAPI:
    """Create and return the FastAPI application.

    When *state* is provided the lifespan hook is skipped (useful for testing).
    """
    use_lifespan = state is None

    application = FastAPI(
        title="Trantor API",
        description="Task management with a voice assistant",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings is not None:
        application.state.settings = settings
    if state is not None:
        application.state.settings = state.settings
        application.state.trantor = state

    _register_error_handlers(application)
    _register_routes(application)
    return application


# Default app instance: used by ``uvicorn trantor.api.server:app``
app = create_app()
