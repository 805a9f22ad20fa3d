"""
FastAPI backend for the Scrum Room.

Endpoints:
    GET  /health                                      — Health check
    POST /api/scrums                                  — Register a scheduled scrum
    GET  /api/scrums/{scrum_id}                       — Fetch a scrum record
    POST /api/scrums/{scrum_id}/action-items/{i}/toggle
    POST /api/scrums/{scrum_id}/comments
    POST /api/rooms/{scrum_id}                        — Open the live room
    GET  /api/rooms/{scrum_id}                        — Live snapshot
    POST /api/rooms/{scrum_id}/{action}               — start|pause|resume|next|end|extend|log
    PUT  /api/rooms/{scrum_id}/draft                  — Replace the utterance draft
    PUT  /api/rooms/{scrum_id}/notes                  — Collaborative notes
    GET  /api/rooms/{scrum_id}/result                 — Result once summarized
    POST /api/analytics/report                        — Team participation report
    POST /api/analytics/member-summary                — AI digest for one member
    POST /api/analytics/blocker-trends                — AI blocker themes
"""

from contextlib import asynccontextmanager
from typing import Callable, Dict

from fastapi import FastAPI, status, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from domain.models import Scrum, ScrumStatus, TeamMember
from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import LogScope, APIEndpoints
from shared_utils.error_handler import AppException, MeetingStateError, ValidationError, handle_error
from shared_utils.di_container import get_di_container
from shared_utils.validation import InputValidator


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("api_initialized", environment=settings.environment, llm_provider=settings.llm_provider)
    yield
    # No tick thread may outlive the app.
    get_di_container().get_meeting_room_service().close_all()
    logger.info("api_shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
    lifespan=lifespan,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning("request_failed", path=request.url.path, error_code=exc.error_code)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request", context={"errors": jsonable_encoder(exc.errors())})
    return await app_exception_handler(request, error)


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    error_response = handle_error(exc, scope=LogScope.API)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def _rooms():
    return get_di_container().get_meeting_room_service()


def _parse(model, body):
    if not isinstance(body, dict):
        raise ValidationError(f"Invalid {model.__name__}: expected a JSON object")
    try:
        return model(**body)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {model.__name__}",
            context={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "llm_provider": settings.llm_provider,
        "open_rooms": _rooms().open_rooms,
    }


# ======================================================================
# Scrum records
# ======================================================================

@app.post(APIEndpoints.SCRUMS)
async def create_scrum(body: dict) -> JSONResponse:
    """Register a scheduled scrum supplied by the scheduling layer."""
    scrum = _parse(Scrum, body)
    store = get_di_container().get_scrum_store()
    if store.get_scrum(scrum.id) is not None:
        raise ValidationError("Scrum already exists", context={"scrum_id": scrum.id})
    scrum.status = ScrumStatus.NOT_STARTED
    store.put_scrum(scrum)
    logger.info("scrum_registered", scrum_id=scrum.id, attendees=len(scrum.attendees))
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=scrum.model_dump(mode="json"))


@app.get(APIEndpoints.SCRUM)
async def get_scrum(scrum_id: str) -> JSONResponse:
    scrum = _rooms().get_scrum(scrum_id)
    return JSONResponse(content=scrum.model_dump(mode="json"))


@app.post(APIEndpoints.ACTION_ITEM_TOGGLE)
async def toggle_action_item(scrum_id: str, index: int) -> JSONResponse:
    scrum = _rooms().toggle_action_item(scrum_id, index)
    return JSONResponse(content=[item.model_dump() for item in scrum.action_items])


@app.post(APIEndpoints.COMMENTS)
async def add_comment(scrum_id: str, body: dict) -> JSONResponse:
    scrum = _rooms().add_comment(scrum_id, author=body.get("author", ""), text=body.get("text", ""))
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=[c.model_dump(mode="json") for c in scrum.comments],
    )


# ======================================================================
# Live meeting room
# ======================================================================

@app.post(APIEndpoints.ROOM)
async def open_room(scrum_id: str) -> JSONResponse:
    room = _rooms().open_room(scrum_id)
    return JSONResponse(content=room.snapshot().model_dump(mode="json"))


@app.get(APIEndpoints.ROOM)
async def get_snapshot(scrum_id: str) -> JSONResponse:
    room = _rooms().get_room(scrum_id)
    return JSONResponse(content=room.snapshot().model_dump(mode="json"))


def _extend(room, body: dict) -> bool:
    seconds = body.get("seconds", settings.extend_step_seconds)
    if not isinstance(seconds, int) or isinstance(seconds, bool):
        raise ValidationError("seconds must be an integer", context={"seconds": seconds})
    return room.add_time(seconds)


def _next(room, body: dict) -> bool:
    expected = body.get("speaker_index")
    if expected is not None:
        expected = InputValidator.validate_positive_int(expected, "speaker_index", allow_zero=True)
    return room.next_speaker(expected_index=expected)


def _log(room, body: dict) -> bool:
    if "text" in body and not room.set_draft(str(body["text"])):
        return False
    return room.log_utterance()


_ROOM_ACTIONS: Dict[str, Callable] = {
    "start": lambda room, body: room.start(),
    "resume": lambda room, body: room.start(),
    "pause": lambda room, body: room.pause(),
    "next": _next,
    "end": lambda room, body: room.end_meeting(),
    "extend": _extend,
    "log": _log,
}


@app.post(APIEndpoints.ROOM_ACTION)
async def room_action(scrum_id: str, action: str, request: Request) -> JSONResponse:
    """Apply one transition. Rejected transitions answer 409 with the unchanged snapshot."""
    handler = _ROOM_ACTIONS.get(action)
    if handler is None:
        raise ValidationError(
            f"Unknown room action: {action}",
            context={"allowed": sorted(_ROOM_ACTIONS)},
        )

    body = {}
    if await request.body():
        try:
            body = await request.json()
        except ValueError as e:
            raise ValidationError("Request body is not valid JSON") from e
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

    room = _rooms().get_room(scrum_id)
    accepted = handler(room, body)
    return JSONResponse(
        status_code=status.HTTP_200_OK if accepted else status.HTTP_409_CONFLICT,
        content={
            "accepted": accepted,
            "action": action,
            "snapshot": room.snapshot().model_dump(mode="json"),
        },
    )


@app.put(APIEndpoints.ROOM_DRAFT)
async def set_draft(scrum_id: str, body: dict) -> JSONResponse:
    room = _rooms().get_room(scrum_id)
    accepted = room.set_draft(str(body.get("text", "")))
    return JSONResponse(
        status_code=status.HTTP_200_OK if accepted else status.HTTP_409_CONFLICT,
        content={"accepted": accepted},
    )


@app.put(APIEndpoints.ROOM_NOTES)
async def update_notes(scrum_id: str, body: dict) -> JSONResponse:
    _rooms().update_notes(scrum_id, str(body.get("notes", "")))
    return JSONResponse(content={"accepted": True})


@app.get(APIEndpoints.ROOM_RESULT)
async def get_result(scrum_id: str) -> JSONResponse:
    result = _rooms().get_result(scrum_id)
    if result is None:
        try:
            snapshot = _rooms().get_room(scrum_id).snapshot()
        except MeetingStateError:
            # Merged between the two lookups.
            result = _rooms().get_result(scrum_id)
            return JSONResponse(content=result.model_dump(mode="json"))
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"status": snapshot.status.value, "summarizing": snapshot.summarizing},
        )
    return JSONResponse(content=result.model_dump(mode="json"))


# ======================================================================
# Analytics
# ======================================================================

def _finished_scrums(team_id: str):
    return get_di_container().get_scrum_store().list_scrums(
        team_id=team_id or None, status=ScrumStatus.FINISHED
    )


@app.post(APIEndpoints.ANALYTICS_REPORT)
async def analytics_report(body: dict) -> JSONResponse:
    """Body JSON: team_id (str, optional), members (list[TeamMember])."""
    raw_members = body.get("members", [])
    if not isinstance(raw_members, list):
        raise ValidationError("members must be a list")
    members = [_parse(TeamMember, m) for m in raw_members]
    report = get_di_container().get_analytics_service().team_report(
        _finished_scrums(body.get("team_id", "")), members
    )
    return JSONResponse(content=report.model_dump())


@app.post(APIEndpoints.ANALYTICS_MEMBER_SUMMARY)
@limiter.limit("10/minute")
async def member_summary(request: Request, body: dict) -> JSONResponse:
    """Body JSON: team_id (str, optional), member (TeamMember), days (int, optional)."""
    member = _parse(TeamMember, body.get("member") or {})
    days = InputValidator.validate_positive_int(body.get("days", settings.member_summary_days), "days")
    text = get_di_container().get_analytics_service().member_summary(
        _finished_scrums(body.get("team_id", "")), member, days=days
    )
    return JSONResponse(content={"member": member.name, "summary": text})


@app.post(APIEndpoints.ANALYTICS_BLOCKER_TRENDS)
@limiter.limit("10/minute")
async def blocker_trends(request: Request, body: dict) -> JSONResponse:
    """Body JSON: team_id (str, optional)."""
    text = get_di_container().get_analytics_service().blocker_trends(
        _finished_scrums(body.get("team_id", ""))
    )
    return JSONResponse(content={"analysis": text})


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
