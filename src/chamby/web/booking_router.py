"""FastAPI router for booking wizard sessions."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from chamby.auth.models import AuthCredentials
from chamby.auth.session import AuthSession
from chamby.booking.models import PhotoFile
from chamby.web.sessions import WizardSession

router = APIRouter()


# --- Request/Response models ---


class StartSessionRequest(BaseModel):
    device_id: str | None = None


class FieldValueRequest(BaseModel):
    value: Any = None


class ToggleRequest(BaseModel):
    value: str


class PhotoUpload(BaseModel):
    filename: str
    content_base64: str
    content_type: str = "image/jpeg"


class PhotoUploadRequest(BaseModel):
    files: list[PhotoUpload] = Field(default_factory=list)


class VisitFeeRequest(BaseModel):
    authorized: bool


class LoginRequest(BaseModel):
    username: str
    code: str


class SessionStateResponse(BaseModel):
    session_id: str
    device_id: str
    vertical_id: str
    category: str
    step: int
    total_steps: int
    step_title: str
    summary: bool
    can_advance: bool
    auth_required: bool
    login_route: str | None = None
    return_route: str
    is_uploading: bool
    is_submitting: bool
    submission_state: str
    phase: str
    answers: dict[str, Any]
    summary_rows: list[dict[str, str]] = Field(default_factory=list)
    description: str | None = None
    countdown_seconds: int
    created_job_id: str | None = None
    visit_fee_authorized: bool | None = None
    success_route: str | None = None
    notifications: list[dict[str, Any]] = Field(default_factory=list)


# --- Helpers ---


def _session_for(request: Request, session_id: str) -> WizardSession:
    """Look up a session and align its signed-in user with the request."""
    session = request.app.state.wizard_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id!r} not found")
    user = getattr(request.state, "user", None)
    if user is not None:
        session.auth.sign_in(user)
    else:
        session.auth.sign_out()
    return session


def _state(request: Request, session: WizardSession) -> SessionStateResponse:
    wizard = session.wizard
    settings = request.app.state.settings
    schema = wizard.schema
    step = wizard.position.step
    rows: list[dict[str, str]] = []
    description = None
    if wizard.viewing_summary:
        rows = [{"label": label, "value": value} for label, value in wizard.summary()]
        description = wizard.description()

    return SessionStateResponse(
        session_id=session.id,
        device_id=session.device_id,
        vertical_id=schema.id,
        category=schema.category,
        step=step,
        total_steps=schema.total_steps,
        step_title=schema.step(step).title,
        summary=wizard.viewing_summary,
        can_advance=wizard.can_advance,
        auth_required=wizard.auth_required,
        login_route=settings.auth.login_route if wizard.auth_required else None,
        return_route=schema.return_route,
        is_uploading=wizard.is_uploading,
        is_submitting=wizard.is_submitting,
        submission_state=wizard.submission_state.value,
        phase=wizard.phase.value,
        answers=wizard.export_answers(),
        summary_rows=rows,
        description=description,
        countdown_seconds=settings.booking.countdown_seconds,
        created_job_id=wizard.created_job_id,
        visit_fee_authorized=wizard.visit_fee_authorized,
        success_route=wizard.success_route,
        notifications=[n.model_dump(mode="json") for n in wizard.notifier.drain()],
    )


# --- Auth ---


@router.post("/api/auth/login")
async def login(body: LoginRequest, request: Request) -> dict[str, Any]:
    provider = request.app.state.auth_provider
    result = provider.authenticate(AuthCredentials(username=body.username, code=body.code))
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error)
    return {"token": result.token, "user": result.user.model_dump()}


# --- Verticals ---


@router.get("/api/verticals")
async def list_verticals(request: Request) -> list[dict[str, Any]]:
    sessions = request.app.state.wizard_sessions
    return [
        {
            "id": schema.id,
            "category": schema.category,
            "total_steps": schema.total_steps,
            "steps": [s.title for s in schema.steps],
        }
        for schema in sessions.verticals.values()
    ]


@router.post("/api/verticals/{vertical_id}/sessions")
async def start_session(
    vertical_id: str, request: Request, body: StartSessionRequest | None = None
) -> SessionStateResponse:
    sessions = request.app.state.wizard_sessions
    auth = AuthSession(getattr(request.state, "user", None))
    device_id = body.device_id if body else None
    try:
        session = sessions.create(vertical_id, auth, device_id=device_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(request, session)


# --- Session endpoints ---


@router.get("/api/sessions/{session_id}")
async def get_session(session_id: str, request: Request) -> SessionStateResponse:
    session = _session_for(request, session_id)
    return _state(request, session)


@router.delete("/api/sessions/{session_id}")
async def close_session(session_id: str, request: Request) -> dict[str, bool]:
    if not request.app.state.wizard_sessions.close(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id!r} not found")
    return {"closed": True}


@router.put("/api/sessions/{session_id}/fields/{key}")
async def set_field(
    session_id: str, key: str, body: FieldValueRequest, request: Request
) -> SessionStateResponse:
    session = _session_for(request, session_id)
    try:
        session.wizard.set_field(key, body.value)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(request, session)


@router.post("/api/sessions/{session_id}/fields/{key}/toggle")
async def toggle_field(
    session_id: str, key: str, body: ToggleRequest, request: Request
) -> SessionStateResponse:
    session = _session_for(request, session_id)
    try:
        session.wizard.toggle(key, body.value)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(request, session)


@router.post("/api/sessions/{session_id}/next")
async def next_step(session_id: str, request: Request) -> SessionStateResponse:
    session = _session_for(request, session_id)
    session.wizard.next()
    return _state(request, session)


@router.post("/api/sessions/{session_id}/back")
async def previous_step(session_id: str, request: Request) -> SessionStateResponse:
    session = _session_for(request, session_id)
    session.wizard.back()
    return _state(request, session)


@router.post("/api/sessions/{session_id}/photos")
async def add_photos(
    session_id: str, body: PhotoUploadRequest, request: Request
) -> SessionStateResponse:
    session = _session_for(request, session_id)
    try:
        files = [
            PhotoFile(
                filename=f.filename,
                content=base64.b64decode(f.content_base64, validate=True),
                content_type=f.content_type,
            )
            for f in body.files
        ]
    except binascii.Error as e:
        raise HTTPException(status_code=400, detail=f"Invalid photo payload: {e}")
    try:
        await session.wizard.add_photos(files)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(request, session)


@router.delete("/api/sessions/{session_id}/photos/{index}")
async def remove_photo(session_id: str, index: int, request: Request) -> SessionStateResponse:
    session = _session_for(request, session_id)
    try:
        session.wizard.remove_photo(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _state(request, session)


@router.post("/api/sessions/{session_id}/confirm")
async def confirm(session_id: str, request: Request) -> SessionStateResponse:
    session = _session_for(request, session_id)
    if not session.wizard.viewing_summary:
        raise HTTPException(status_code=409, detail="Summary has not been reached")
    await session.wizard.confirm()
    return _state(request, session)


@router.post("/api/sessions/{session_id}/resume")
async def resume(session_id: str, request: Request) -> SessionStateResponse:
    session = _session_for(request, session_id)
    if session.auth.get_current_user() is None:
        raise HTTPException(status_code=401, detail="Sign in required")
    session.wizard.resume_after_auth()
    return _state(request, session)


@router.post("/api/sessions/{session_id}/visit-fee")
async def visit_fee(
    session_id: str, body: VisitFeeRequest, request: Request
) -> SessionStateResponse:
    session = _session_for(request, session_id)
    if session.wizard.complete_visit_fee(body.authorized) is None:
        raise HTTPException(status_code=409, detail="No job is awaiting the visit fee")
    return _state(request, session)
