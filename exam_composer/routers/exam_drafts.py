"""
Exam draft API endpoints.

Each open exam composition form lives server-side as an ExamComposer in
the draft store. These endpoints expose the form operations: editing
exam-level fields, appending/updating/removing questions, submitting and
discarding.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from exam_composer.middleware.rate_limit import RATE_LIMITS, get_limiter
from exam_composer.models.session import SessionContext
from exam_composer.services.composer import ExamComposer
from exam_composer.services.draft_store import get_draft_store
from exam_composer.services.errors import FieldValueError, SubmissionInProgressError

router = APIRouter(prefix="/api/exam-drafts", tags=["exam-drafts"])
limiter = get_limiter()


class FieldUpdateRequest(BaseModel):
    """Request model for a single field edit."""
    field: str = Field(..., description="Field name, e.g. 'name' or 'correct_answer'")
    value: Any = Field(None, description="Raw input value")


def _json_response(data: Any, status_code: int = status.HTTP_200_OK) -> Response:
    return Response(
        content=json.dumps(data, default=str),
        media_type="application/json",
        status_code=status_code
    )


def session_from_request(request: Request) -> SessionContext:
    """Build the caller context from the incoming Authorization header."""
    authorization: Optional[str] = request.headers.get("Authorization")
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return SessionContext(access_token=token)


def _get_composer(draft_id: str) -> ExamComposer:
    composer = get_draft_store().get(draft_id)
    if composer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exam draft not found: {draft_id}"
        )
    return composer


def _field_error(e: FieldValueError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"field": e.field, "message": e.message}
    )


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def open_draft(request: Request) -> Response:
    """
    Open a new exam composition form with an empty draft.

    Returns:
        201: Form state including the new draft_id
    """
    composer = get_draft_store().open(session=session_from_request(request))
    return _json_response(composer.state().model_dump(), status.HTTP_201_CREATED)


@router.get("/{draft_id}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def get_draft(request: Request, draft_id: str) -> Response:
    """
    Get the current form state.

    Returns:
        200: Form state with errors for touched fields
        404: Unknown draft
    """
    composer = _get_composer(draft_id)
    return _json_response(composer.state().model_dump())


@router.patch("/{draft_id}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def update_draft_field(request: Request, draft_id: str, body: FieldUpdateRequest) -> Response:
    """
    Set one exam-level field.

    Returns:
        200: Updated form state
        404: Unknown draft
        422: Unknown field or unusable value
    """
    composer = _get_composer(draft_id)
    try:
        composer.update_field(body.field, body.value)
    except FieldValueError as e:
        raise _field_error(e)
    return _json_response(composer.state().model_dump())


@router.post("/{draft_id}/questions", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def append_question(request: Request, draft_id: str) -> Response:
    """
    Append a blank question.

    Returns:
        201: Updated form state
        404: Unknown draft
    """
    composer = _get_composer(draft_id)
    composer.append_question()
    return _json_response(composer.state().model_dump(), status.HTTP_201_CREATED)


@router.patch("/{draft_id}/questions/{index}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def update_question_field(
    request: Request,
    draft_id: str,
    index: int,
    body: FieldUpdateRequest,
) -> Response:
    """
    Set one field of one question. Out-of-range indices are ignored.

    Returns:
        200: Updated form state
        404: Unknown draft
        422: Unknown field or a value outside the field's choices
    """
    composer = _get_composer(draft_id)
    try:
        composer.update_question_field(index, body.field, body.value)
    except FieldValueError as e:
        raise _field_error(e)
    return _json_response(composer.state().model_dump())


@router.delete("/{draft_id}/questions/{index}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def remove_question(request: Request, draft_id: str, index: int) -> Response:
    """
    Remove a question. Out-of-range indices are ignored.

    Returns:
        200: Updated form state
        404: Unknown draft
    """
    composer = _get_composer(draft_id)
    composer.remove_question(index)
    return _json_response(composer.state().model_dump())


@router.post("/{draft_id}/submit", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["submit"])  # type: ignore[untyped-decorator]
async def submit_draft(request: Request, draft_id: str) -> Response:
    """
    Validate the draft and send it to the exam service.

    Returns:
        201: Exam created; the draft is closed and redirect_to says where to go
        404: Unknown draft
        409: A submission for this draft is already in flight
        422: Validation failed; nothing was sent
        4xx/5xx: The exam service rejected the request (its status is passed
            through); 502 when it could not be reached. The body carries
            source="exam_service" and upstream_status. The draft is kept.
    """
    composer = _get_composer(draft_id)

    try:
        result = await composer.submit()
    except SubmissionInProgressError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    if result.ok:
        get_draft_store().close(draft_id)
        return _json_response(
            {
                "status": result.status,
                "message": result.notification.message,
                "redirect_to": result.redirect_to,
                "exam": result.exam,
            },
            status.HTTP_201_CREATED
        )

    if result.status == "invalid":
        return _json_response(
            {
                "detail": result.notification.message,
                "errors": [
                    {"path": error.path, "message": error.message, "label": error.label}
                    for error in result.errors
                ],
                "draft": composer.state().model_dump(),
            },
            422
        )

    status_code = result.status_code
    if status_code is None or not 400 <= status_code < 600:
        status_code = status.HTTP_502_BAD_GATEWAY

    # source tells an upstream 404/422 apart from this API's own
    return _json_response(
        {
            "detail": result.notification.message,
            "source": "exam_service",
            "upstream_status": result.status_code,
            "draft": composer.state().model_dump(),
        },
        status_code
    )


@router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMITS["drafts"])  # type: ignore[untyped-decorator]
async def close_draft(request: Request, draft_id: str) -> Response:
    """
    Discard the draft (the user navigated away).

    Returns:
        204: Draft discarded
        404: Unknown draft
    """
    if not get_draft_store().close(draft_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exam draft not found: {draft_id}"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
