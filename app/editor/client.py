"""
Question Tree API Client
========================
Thin httpx client the admin editor uses to talk to the question API.

Usage:
    from app.editor.client import QuestionsClient

    client = QuestionsClient("http://localhost:8000", admin_key="...")
    questions = client.list_questions()
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.questions.models import Question, QuestionRow

logger = logging.getLogger(__name__)


class QuestionsClientError(Exception):
    """Non-2xx answer or transport failure from the question API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class QuestionsClient:
    """
    Question API client.

    Args:
        base_url: API root (e.g. http://localhost:8000)
        admin_key: sent as X-Admin-API-Key when set
        timeout: request timeout in seconds
        http: pre-built httpx.Client (tests pass FastAPI's TestClient)
    """

    DEFAULT_TIMEOUT = 30.0
    QUESTIONS_PATH = "/api/questions"

    def __init__(
        self,
        base_url: str = "",
        admin_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.admin_key = admin_key
        self._http = http or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "QuestionsClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.admin_key:
            headers["X-Admin-API-Key"] = self.admin_key
        return headers

    def _handle_response(self, response: httpx.Response) -> Any:
        if 200 <= response.status_code < 300:
            return response.json() if response.content else {}

        try:
            error_body = response.json() if response.content else {}
        except json.JSONDecodeError:
            error_body = {"error": response.text}

        if isinstance(error_body, dict):
            message = error_body.get("error") or str(error_body.get("detail") or error_body)
        else:
            message = str(error_body)

        raise QuestionsClientError(message, status_code=response.status_code)

    def _request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._http.request(method, path, headers=self._get_headers(), json=data)
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise QuestionsClientError(f"Request failed: {e}")
        return self._handle_response(response)

    # ===== Questions API =====

    def list_questions(self) -> List[Question]:
        data = self._request("GET", self.QUESTIONS_PATH)
        if not isinstance(data, list):
            return []
        return [Question.model_validate(q) for q in data]

    def create_question(self, payload: Dict[str, Any]) -> QuestionRow:
        return QuestionRow.model_validate(self._request("POST", self.QUESTIONS_PATH, payload))

    def update_question(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", self.QUESTIONS_PATH, payload)

    def delete_question(self, question_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"{self.QUESTIONS_PATH}/{question_id}")
