"""
Question Tree Admin Endpoints

CRUD over the question graph definition used by the wizard.

Security: X-Admin-API-Key header when ADMIN_API_KEY is configured
(dev mode without it).

Errors come back as {"error": message}:
- 400 blank option labels / missing id / foreign option id
- 401 missing or invalid admin key
- 404 unknown question on update
- 500 store failure
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request

from .errors import AdminAuthError
from .models import AckResponse, ErrorResponse, Question, QuestionIn, QuestionRow
from .service import QuestionService


def verify_admin_key(
    request: Request,
    x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key"),
) -> str:
    """
    Verify admin API key from header.

    Raises 401 if a key is configured and the header is missing or wrong.
    """
    config = request.app.state.questions_config

    if not config.admin_auth_enabled:
        return "dev_mode"

    expected_key = config.admin_api_key

    if not x_admin_api_key:
        raise AdminAuthError("Missing X-Admin-API-Key header")

    if x_admin_api_key != expected_key:
        raise AdminAuthError("Invalid admin API key")

    return x_admin_api_key


def get_question_service(request: Request) -> QuestionService:
    return QuestionService(request.app.state.question_store)


router = APIRouter(
    prefix="/api/questions",
    tags=["Admin - Questions"],
    dependencies=[Depends(verify_admin_key)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.get("", response_model=List[Question])
def list_questions(service: QuestionService = Depends(get_question_service)):
    """List every question with its options (empty list when it has none)."""
    return service.list_questions()


@router.post("", response_model=QuestionRow, status_code=201)
def create_question(
    payload: QuestionIn,
    service: QuestionService = Depends(get_question_service),
):
    """Create a question and its options. Returns the bare question row."""
    return service.create_question(payload)


@router.put("", response_model=AckResponse)
def update_question(
    payload: QuestionIn,
    service: QuestionService = Depends(get_question_service),
):
    """Replace a question and reconcile its options against the payload."""
    service.update_question(payload)
    return AckResponse(ok=True)


@router.delete("/{question_id}", response_model=AckResponse)
def delete_question(
    question_id: int,
    service: QuestionService = Depends(get_question_service),
):
    service.delete_question(question_id)
    return AckResponse(ok=True)
