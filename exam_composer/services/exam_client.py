"""HTTP client for the external exam service.

Sends the single exam-creation request and turns failures into
ExamServiceError subclasses carrying a user-facing message. There are no
automatic retries: a failed creation is only repeated when the user
resubmits.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from exam_composer.config import get_settings
from exam_composer.models.session import SessionContext

logger = logging.getLogger(__name__)

EXAMS_PATH = "/exams"

# Checked in order when the exam service explains a failure
ERROR_MESSAGE_FIELDS = ("message", "detail", "error")


class ExamServiceError(Exception):
    """Base error for a failed exam-creation request.

    Attributes:
        message: User-facing message (server-provided or fallback)
        status_code: HTTP status, or None when no response was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ExamServiceConnectionError(ExamServiceError):
    """No response was received (DNS, refused connection, timeout...)."""


class ExamServiceResponseError(ExamServiceError):
    """The exam service answered with a non-2xx status.

    Attributes:
        body: Decoded JSON body, if any
    """

    def __init__(self, message: str, status_code: int, body: Any = None):
        super().__init__(message, status_code)
        self.body = body


def extract_error_message(body: Any) -> Optional[str]:
    """Pick the server-provided message out of an error body.

    Tries ``message``, then ``detail`` (a string, or a FastAPI-style list of
    ``{"msg": ...}`` entries), then ``error``.

    Returns:
        The message, or None when the body carries none
    """
    if isinstance(body, str):
        return body.strip() or None
    if not isinstance(body, dict):
        return None

    for field in ERROR_MESSAGE_FIELDS:
        value = body.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, list):
            messages = [
                str(item.get("msg")) for item in value
                if isinstance(item, dict) and item.get("msg")
            ]
            if messages:
                return "; ".join(messages)
        if isinstance(value, dict):
            nested = extract_error_message(value)
            if nested:
                return nested

    return None


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ExamServiceClient:
    """Client for the exam service's creation endpoint.

    Args:
        base_url: Exam service base URL (defaults to EXAM_SERVICE_URL)
        session: Injected caller context; its token is sent as a bearer token
        timeout_seconds: Request timeout; None keeps the httpx default
        generic_error_message: Fallback when a failure response has no message
        connection_error_message: Message used when no response was received
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[SessionContext] = None,
        timeout_seconds: Optional[float] = None,
        generic_error_message: Optional[str] = None,
        connection_error_message: Optional[str] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.exam_service_url).rstrip("/")
        self.session = session or SessionContext()
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.request_timeout_seconds
        )
        self.generic_error_message = generic_error_message or settings.generic_error_message
        self.connection_error_message = (
            connection_error_message or settings.connection_error_message
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        authorization = self.session.authorization_header
        if authorization:
            headers["Authorization"] = authorization
        return headers

    def _client(self) -> httpx.AsyncClient:
        if self.timeout_seconds is None:
            return httpx.AsyncClient(base_url=self.base_url, headers=self._headers())
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )

    async def create_exam(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST the exam payload once.

        Args:
            payload: Request body built by build_exam_payload()

        Returns:
            Decoded response body (empty dict when the body is not a JSON object)

        Raises:
            ExamServiceConnectionError: If no response was received
            ExamServiceResponseError: If the service answered with a non-2xx status
        """
        logger.info(
            f"Creating exam '{payload.get('name')}' with "
            f"{len(payload.get('questions', []))} question(s)"
        )

        try:
            async with self._client() as client:
                response = await client.post(EXAMS_PATH, json=payload)
        except httpx.TransportError as e:
            logger.warning(f"Exam service unreachable: {type(e).__name__}: {e}")
            raise ExamServiceConnectionError(self.connection_error_message) from e

        body = _decode_json(response)

        if 200 <= response.status_code < 300:
            logger.info(f"Exam created: status={response.status_code}")
            return body if isinstance(body, dict) else {}

        message = extract_error_message(body) or self.generic_error_message
        logger.warning(
            f"Exam service rejected creation: status={response.status_code}, "
            f"message={message[:200]}"
        )
        raise ExamServiceResponseError(message, response.status_code, body)
