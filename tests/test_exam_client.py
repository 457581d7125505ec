"""Tests for the exam service client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from exam_composer.models.session import SessionContext
from exam_composer.services.exam_client import (
    ExamServiceClient,
    ExamServiceConnectionError,
    ExamServiceResponseError,
    extract_error_message,
)

PAYLOAD = {"name": "Midterm", "max_score": 10, "questions": [{"text": "q"}]}


def _mock_client_class(mock_client_class: MagicMock, post: AsyncMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.post = post
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_client_class.return_value = mock_client
    return mock_client


def _response(status_code: int, body=None, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = body
    return response


class TestExtractErrorMessage:
    def test_message_field(self):
        """Test reading the message field."""
        assert extract_error_message({"message": "duplicate exam name"}) == "duplicate exam name"

    def test_detail_field(self):
        """Test reading the detail field."""
        assert extract_error_message({"detail": "Course not found"}) == "Course not found"

    def test_message_wins_over_detail(self):
        """Test that message takes precedence over detail."""
        assert extract_error_message({"detail": "second", "message": "first"}) == "first"

    def test_fastapi_validation_detail_list(self):
        """Test joining a FastAPI validation detail list."""
        body = {"detail": [{"loc": ["body", "name"], "msg": "field required"}, {"msg": "bad date"}]}
        assert extract_error_message(body) == "field required; bad date"

    def test_error_field(self):
        """Test reading the error field."""
        assert extract_error_message({"error": "Forbidden"}) == "Forbidden"

    def test_nested_error_object(self):
        """Test reading a nested error object."""
        assert extract_error_message({"error": {"message": "Nope"}}) == "Nope"

    @pytest.mark.parametrize("body", [None, {}, {"message": "  "}, [], 42, {"detail": []}])
    def test_no_message(self, body):
        """Test bodies that carry no usable message."""
        assert extract_error_message(body) is None


@pytest.mark.asyncio
async def test_create_exam_success():
    """Test that a 2xx response returns the decoded body."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        post = AsyncMock(return_value=_response(201, {"id": 42, "name": "Midterm"}))
        mock_client = _mock_client_class(mock_client_class, post)

        client = ExamServiceClient()
        result = await client.create_exam(PAYLOAD)

        assert result == {"id": 42, "name": "Midterm"}
        mock_client.post.assert_called_once_with("/exams", json=PAYLOAD)


@pytest.mark.asyncio
async def test_create_exam_success_without_json_body():
    """Test that a 204 with no body is still a success."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(mock_client_class, AsyncMock(return_value=_response(204, json_error=True)))

        result = await ExamServiceClient().create_exam(PAYLOAD)

        assert result == {}


@pytest.mark.asyncio
async def test_client_uses_configured_base_url_and_bearer_token():
    """Test that the session token is forwarded and no timeout is forced."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(mock_client_class, AsyncMock(return_value=_response(201, {})))

        client = ExamServiceClient(session=SessionContext(access_token="abc123"))
        await client.create_exam(PAYLOAD)

        kwargs = mock_client_class.call_args.kwargs
        assert kwargs["base_url"] == "http://exam-service.test/api"
        assert kwargs["headers"]["Authorization"] == "Bearer abc123"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert "timeout" not in kwargs


@pytest.mark.asyncio
async def test_client_without_token_sends_no_authorization():
    """Test that no Authorization header is sent without a token."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(mock_client_class, AsyncMock(return_value=_response(201, {})))

        await ExamServiceClient().create_exam(PAYLOAD)

        assert "Authorization" not in mock_client_class.call_args.kwargs["headers"]


@pytest.mark.asyncio
async def test_client_passes_configured_timeout():
    """Test that a configured timeout is passed to httpx."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(mock_client_class, AsyncMock(return_value=_response(201, {})))

        await ExamServiceClient(timeout_seconds=5.0).create_exam(PAYLOAD)

        assert mock_client_class.call_args.kwargs["timeout"] == 5.0


@pytest.mark.asyncio
async def test_create_exam_application_error_uses_server_message():
    """Test that a 422 with a message surfaces that message verbatim."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(
            mock_client_class,
            AsyncMock(return_value=_response(422, {"message": "duplicate exam name"})),
        )

        with pytest.raises(ExamServiceResponseError) as exc_info:
            await ExamServiceClient().create_exam(PAYLOAD)

        assert exc_info.value.message == "duplicate exam name"
        assert exc_info.value.status_code == 422
        assert exc_info.value.body == {"message": "duplicate exam name"}


@pytest.mark.asyncio
async def test_create_exam_application_error_fallback_message():
    """Test that an error without a message falls back to the generic text."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(mock_client_class, AsyncMock(return_value=_response(500, json_error=True)))

        with pytest.raises(ExamServiceResponseError) as exc_info:
            await ExamServiceClient().create_exam(PAYLOAD)

        assert exc_info.value.message == "Failed to create exam."
        assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_create_exam_transport_error():
    """Test that a connection failure becomes ExamServiceConnectionError, without retrying."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        post = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        mock_client = _mock_client_class(mock_client_class, post)

        with pytest.raises(ExamServiceConnectionError) as exc_info:
            await ExamServiceClient().create_exam(PAYLOAD)

        assert exc_info.value.message == "Could not reach the exam service. Check your connection."
        assert exc_info.value.status_code is None
        assert mock_client.post.call_count == 1


@pytest.mark.asyncio
async def test_create_exam_timeout_is_a_transport_error():
    """Test that a read timeout becomes ExamServiceConnectionError."""
    with patch("exam_composer.services.exam_client.httpx.AsyncClient") as mock_client_class:
        _mock_client_class(mock_client_class, AsyncMock(side_effect=httpx.ReadTimeout("Timeout")))

        with pytest.raises(ExamServiceConnectionError):
            await ExamServiceClient().create_exam(PAYLOAD)
