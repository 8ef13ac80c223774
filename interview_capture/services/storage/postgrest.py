"""
PostgREST implementation of the interview data collaborator.

Uses ``httpx.AsyncClient`` against the interview API. Row filters use the
PostgREST operator syntax (``?id=eq.42``) and single-row lookups return a
list, so an empty list means "not found". Connection failures are retried
with exponential backoff; HTTP error statuses are not.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from interview_capture.core.config import get_settings
from interview_capture.core.exceptions import (
    ApplicantNotFoundError,
    InterviewNotFoundError,
    TransportError,
)
from interview_capture.core.models import Applicant, ApplicantStatus, Interview, Question
from interview_capture.services.storage.base import InterviewRepository

logger = logging.getLogger(__name__)


class PostgrestRepository(InterviewRepository):
    """Interview API client.

    Args:
        base_url: API root (falls back to settings if not provided).
        token: Bearer token sent on every request.
        username: Owner name merged into every write body.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        username: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.interview_api_url).rstrip("/")
        self._username = username if username is not None else settings.interview_api_username
        token = token if token is not None else settings.interview_api_token

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout or settings.interview_api_timeout,
            transport=transport,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    )
    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send one request; only connection failures are retried."""
        return await self._client.request(method, path, **kwargs)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute a request and return parsed JSON.

        Raises:
            TransportError: On connection failure or non-2xx status.
        """
        headers: dict[str, str] = {}
        if method in ("POST", "PATCH"):
            # Ask PostgREST to echo the written row
            headers["Prefer"] = "return=representation"
        if body is not None and self._username:
            body = {**body, "username": self._username}

        try:
            resp = await self._send(method, path, params=params, json=body, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Interview API %s %s returned %s", method, path, exc.response.status_code
            )
            raise TransportError(
                f"Interview API {method} {path} failed: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Interview API %s %s failed: %s", method, path, exc)
            raise TransportError(f"Interview API {method} {path} failed: {exc}") from exc

        if not resp.content:
            return None
        return resp.json()

    # ------------------------------------------------------------------
    # Loads
    # ------------------------------------------------------------------

    async def load_applicant(self, applicant_id: int) -> Applicant:
        rows = await self._request("GET", "/applicant", params={"id": f"eq.{applicant_id}"})
        if not rows:
            raise ApplicantNotFoundError(applicant_id)
        return Applicant.model_validate(rows[0])

    async def load_interview(self, interview_id: int) -> Interview:
        rows = await self._request("GET", "/interview", params={"id": f"eq.{interview_id}"})
        if not rows:
            raise InterviewNotFoundError(interview_id)
        return Interview.model_validate(rows[0])

    async def load_questions(self, interview_id: int) -> list[Question]:
        rows = await self._request(
            "GET",
            "/question",
            params={"interview_id": f"eq.{interview_id}", "order": "id.asc"},
        )
        return [Question.model_validate(row) for row in rows or []]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_answer_record(
        self,
        applicant_id: int,
        interview_id: int,
        question_id: int,
        text: str,
    ) -> None:
        await self._request(
            "POST",
            "/applicant_answer",
            body={
                "interview_id": interview_id,
                "question_id": question_id,
                "applicant_id": applicant_id,
                "answer": text,
            },
        )

    async def update_applicant_status(self, applicant_id: int, status: ApplicantStatus) -> None:
        await self._request(
            "PATCH",
            "/applicant",
            params={"id": f"eq.{applicant_id}"},
            body={"interview_status": status.value},
        )

    async def aclose(self) -> None:
        await self._client.aclose()
