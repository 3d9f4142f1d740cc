"""HTTP client for the remote estimation service."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .config import (
    BASE_URL,
    FEEDBACK_PATH,
    REQUEST_TIMEOUT_SECONDS,
    UPLOAD_FIELD_NAME,
    UPLOAD_PATH,
)
from .errors import ServiceError, TransportError
from .models import ExportRequest, Failure, Outcome, SourceDocument, Success


LOGGER = logging.getLogger(__name__)


class EstimationClient:
    """Issues exactly one request per call and maps it to one ``Outcome``.

    Connection problems become ``Failure(TransportError)``; any non-2xx answer
    becomes ``Failure(ServiceError)`` carrying the service's own message. No
    retries are attempted here.
    """

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "EstimationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upload_document(self, document: SourceDocument) -> Outcome[str]:
        """Send the document as multipart form data and return the estimate text."""

        files = {UPLOAD_FIELD_NAME: (document.filename, document.content, document.media_type)}
        outcome = await self._post(UPLOAD_PATH, files=files)
        if isinstance(outcome, Failure):
            return outcome
        return Success(outcome.payload.text)

    async def refine_estimate(self, scope_text: str, feedback: str) -> Outcome[str]:
        """Ask the service to regenerate ``scope_text`` with ``feedback`` applied."""

        payload = {"scopeText": scope_text, "feedback": feedback}
        outcome = await self._post(FEEDBACK_PATH, json=payload)
        if isinstance(outcome, Failure):
            return outcome
        return Success(outcome.payload.text)

    async def export_estimate(self, request: ExportRequest) -> Outcome[bytes]:
        """Fetch the rendered export; the body bytes are returned untouched."""

        outcome = await self._post(request.kind.endpoint, json={"scopeText": request.estimate_text})
        if isinstance(outcome, Failure):
            return outcome
        return Success(outcome.payload.content)

    async def _post(self, path: str, **kwargs: Any) -> Outcome[httpx.Response]:
        try:
            response = await self._client.post(path, **kwargs)
        except httpx.TimeoutException as exc:
            LOGGER.warning("Request to %s timed out: %s", path, exc)
            return Failure(TransportError(str(exc) or "timeout"))
        except httpx.HTTPError as exc:
            LOGGER.warning("Request to %s failed: %s", path, exc)
            return Failure(TransportError(str(exc) or exc.__class__.__name__))

        if response.status_code >= 400:
            message = _error_message(response)
            LOGGER.warning("Estimation service returned %s for %s: %s", response.status_code, path, message)
            return Failure(ServiceError(message, status_code=response.status_code))

        return Success(response)


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of an error response."""

    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("detail", "message", "error"):
            value: Any = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    text = response.text.strip() if response.content else ""
    if text and data is None:
        return text
    return f"Estimation service error: {response.status_code}"


__all__ = ["EstimationClient"]
