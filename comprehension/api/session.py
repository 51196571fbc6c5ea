"""Session API routes: the View Adapter for the pupil's browser.

Every screen of the app maps to one intent here:
- Login, photo upload, "I finished reading"
- Answer edits, batch submit, "see my results"
- CSV download, quit

All JSON responses use the ApiResponse envelope and carry the full session
view model, so the client re-renders from a single source of truth. Input
validation (non-empty names, image MIME type) lives here; all business
rules live in the orchestrator and the engine.

Wrong-state calls raise InvalidTransition, mapped to 409 by main.py.
"""

import base64
import binascii
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from comprehension.ai.gateway import split_data_url
from comprehension.api.deps import get_orchestrator
from comprehension.engine.question_engine import QuizIncomplete, SubmissionError
from comprehension.report import CSV_MEDIA_TYPE, build_csv, report_filename
from comprehension.schemas import ApiError, ApiResponse, AppState
from comprehension.session import AssessmentFailed, InvalidTransition, SessionOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_FILE_TYPE = "Veuillez sélectionner une image."
INVALID_NAMES = "Indique ton prénom et ton nom."


# ---------------------------------------------------------------------------
# Request bodies (API-boundary types, local to this module)
# ---------------------------------------------------------------------------


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_Body):
    """Request body for POST /login."""

    first_name: str
    last_name: str


class UploadRequest(_Body):
    """Request body for POST /upload.

    ``image`` is what a browser FileReader produces (a data URL) or bare
    base64; ``mime_type`` is required only for bare base64.
    """

    image: str
    mime_type: str | None = None


class AnswerRequest(_Body):
    """Request body for PUT /answers/{question_id}."""

    answer: str


class QuitRequest(_Body):
    """Request body for POST /quit."""

    confirmed: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ApiResponse(ok=False, error=ApiError(code=code, message=message)).model_dump(),
    )


def _ok(session: SessionOrchestrator) -> dict:
    return ApiResponse(ok=True, data=session.snapshot()).model_dump()


def validate_image(image: str, mime_type: str | None) -> tuple[str, str]:
    """Checks an uploaded image and returns (mime_type, base64 payload).

    Raises:
        HTTPException: 400 INVALID_FILE_TYPE for non-image MIME types,
            400 INVALID_IMAGE for payloads that are not base64.
    """
    header_mime, payload = split_data_url(image)
    mime = header_mime or mime_type or ""
    if not mime.startswith("image/"):
        raise _fail(400, "INVALID_FILE_TYPE", INVALID_FILE_TYPE)
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise _fail(400, "INVALID_IMAGE", INVALID_FILE_TYPE) from None
    if not decoded:
        raise _fail(400, "INVALID_IMAGE", INVALID_FILE_TYPE)
    return mime, payload


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("")
async def get_session(session: SessionOrchestrator = Depends(get_orchestrator)) -> dict:
    """Returns the current view model."""
    return _ok(session)


@router.post("/login")
async def login(
    body: LoginRequest,
    session: SessionOrchestrator = Depends(get_orchestrator),
) -> dict:
    """LOGIN → SETUP. Blank names leave the session on LOGIN."""
    if session.state is not AppState.LOGIN:
        raise InvalidTransition("login", session.state)
    try:
        session.login(body.first_name, body.last_name)
    except ValidationError:
        raise _fail(422, "VALIDATION_ERROR", INVALID_NAMES) from None
    return _ok(session)


@router.post("/upload")
async def upload(
    body: UploadRequest,
    session: SessionOrchestrator = Depends(get_orchestrator),
) -> dict:
    """SETUP → LOADING_STORY → READING, or back to SETUP on failure."""
    if session.state is not AppState.SETUP:
        raise InvalidTransition("upload", session.state)
    mime, payload = validate_image(body.image, body.mime_type)
    try:
        await session.upload(f"data:{mime};base64,{payload}", mime)
    except AssessmentFailed as exc:
        raise _fail(502, "ASSESSMENT_FAILED", exc.message) from None
    return _ok(session)


@router.post("/reading-done")
async def reading_done(session: SessionOrchestrator = Depends(get_orchestrator)) -> dict:
    """READING → QUIZ."""
    session.finish_reading()
    return _ok(session)


@router.put("/answers/{question_id}")
async def set_answer(
    question_id: int,
    body: AnswerRequest,
    session: SessionOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Stores the pupil's text for one question (no evaluation)."""
    if session.state is not AppState.QUIZ:
        raise InvalidTransition("answer", session.state)
    try:
        stored = session.engine.set_answer(question_id, body.answer)
    except KeyError:
        raise _fail(404, "QUESTION_NOT_FOUND", "Question inconnue.") from None
    if not stored:
        raise _fail(409, "QUESTION_LOCKED", "Cette question est déjà terminée.")
    return _ok(session)


@router.post("/submit")
async def submit(session: SessionOrchestrator = Depends(get_orchestrator)) -> dict:
    """Evaluates every unfinished question in one batch."""
    if session.state is not AppState.QUIZ:
        raise InvalidTransition("submit", session.state)
    if session.engine.is_evaluating:
        raise _fail(409, "SUBMISSION_IN_PROGRESS", "Validation déjà en cours.")
    try:
        await session.engine.submit()
    except SubmissionError as exc:
        raise _fail(502, "SUBMISSION_FAILED", exc.message) from None
    return _ok(session)


@router.post("/finish")
async def finish(session: SessionOrchestrator = Depends(get_orchestrator)) -> dict:
    """QUIZ → RESULTS once every question is finished."""
    try:
        await session.finish_quiz()
    except QuizIncomplete as exc:
        raise _fail(409, "QUIZ_INCOMPLETE", exc.message) from None
    return _ok(session)


@router.get("/report.csv")
async def download_report(session: SessionOrchestrator = Depends(get_orchestrator)) -> Response:
    """Downloads the single-row CSV score report."""
    report = session.report()
    filename = report_filename(report)
    return Response(
        content=build_csv(report).encode("utf-8"),
        media_type=CSV_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
        },
    )


@router.post("/quit")
async def quit_session(
    body: QuitRequest,
    session: SessionOrchestrator = Depends(get_orchestrator),
) -> dict:
    """RESULTS → LOGIN when confirmed; otherwise nothing changes."""
    session.quit(confirmed=body.confirmed)
    return _ok(session)
