"""Controller for the upload -> estimate -> refine -> export workflow."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from .config import ACCEPTED_MEDIA_TYPES
from .errors import ActionInProgressError, EstimatorError, ValidationError
from .export import DownloadSink, ExportDispatcher
from .models import Action, ExportRequest, Failure, OutputKind, SourceDocument
from .state import WorkflowState
from .transport import EstimationClient


LOGGER = logging.getLogger(__name__)

StateListener = Callable[[WorkflowState], None]
ErrorHandler = Callable[[Action, EstimatorError], None]


class EstimateWorkflow:
    """Owns a ``WorkflowState`` and enforces its legal transitions.

    Each action (ingest, regenerate, export) has its own busy flag. Invoking an
    action while its flag is set raises ``ActionInProgressError``; different
    actions may overlap. Remote failures never raise: they are recorded on the
    state, logged and handed to the registered error handlers, and the action
    returns ``None``. Busy flags are always released when the call settles.
    """

    def __init__(
        self,
        client: EstimationClient,
        sink: Optional[DownloadSink] = None,
        state: Optional[WorkflowState] = None,
        dispatcher: Optional[ExportDispatcher] = None,
    ) -> None:
        self._client = client
        self._state = state or WorkflowState()
        self._dispatcher = dispatcher or ExportDispatcher(client, sink or DownloadSink())
        self._listeners: List[StateListener] = []
        self._error_handlers: List[ErrorHandler] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def add_error_handler(self, handler: ErrorHandler) -> None:
        self._error_handlers.append(handler)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def select_document(self, document: SourceDocument) -> None:
        if self._state.ingesting:
            raise ActionInProgressError(Action.INGEST.value)
        if document.media_type not in ACCEPTED_MEDIA_TYPES:
            accepted = ", ".join(ACCEPTED_MEDIA_TYPES)
            raise ValidationError(f"Unsupported document type {document.media_type!r} (expected {accepted})")
        if not document.content:
            raise ValidationError(f"{document.filename} is empty")
        self._state.document = document
        self._notify()

    def select_document_path(self, path: Union[str, Path]) -> SourceDocument:
        path = Path(path)
        if not path.is_file():
            raise ValidationError(f"No such file: {path}")
        document = SourceDocument.from_path(path)
        self.select_document(document)
        return document

    def set_feedback(self, text: str) -> None:
        self._state.feedback_text = text
        self._notify()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def submit_document(self, document: Optional[SourceDocument] = None) -> Optional[str]:
        """Upload the selected document and replace the estimate with the result."""

        self._reject_reentry(Action.INGEST)
        if document is not None:
            self.select_document(document)
        selected = self._state.document
        if selected is None:
            raise ValidationError("Please select a PDF file first")

        with self._in_flight(Action.INGEST):
            LOGGER.info("Uploading %r for estimation", selected)
            outcome = await self._client.upload_document(selected)
            if isinstance(outcome, Failure):
                self._report(Action.INGEST, outcome.error)
                return None
            self._replace_estimate(outcome.payload)
            return outcome.payload

    async def submit_feedback(self, text: Optional[str] = None) -> Optional[str]:
        """Regenerate the estimate with the pending feedback.

        Blank feedback is a no-op. On success the feedback is cleared; on
        failure both the estimate and the feedback are left as they were.
        """

        feedback = self._state.feedback_text if text is None else text
        if not feedback.strip():
            LOGGER.debug("Ignoring blank feedback")
            return None
        self._reject_reentry(Action.REGENERATE)
        if text is not None:
            self.set_feedback(text)

        with self._in_flight(Action.REGENERATE):
            scope_text = self._state.estimate_text
            outcome = await self._client.refine_estimate(scope_text, feedback)
            if isinstance(outcome, Failure):
                self._report(Action.REGENERATE, outcome.error)
                return None
            self._replace_estimate(outcome.payload)
            # Feedback typed while the call was in flight is kept.
            if self._state.feedback_text == feedback:
                self._state.feedback_text = ""
                self._notify()
            return outcome.payload

    async def request_export(self, kind: Union[OutputKind, str]) -> Optional[Path]:
        """Export the estimate as it stands now and save it locally.

        The estimate text is captured when the call is made; a regenerate that
        lands while the export is in flight does not affect the exported copy.
        """

        try:
            kind = OutputKind(kind)
        except ValueError as exc:
            raise ValidationError("Export format must be 'pdf' or 'docx'") from exc
        snapshot = self._state.estimate_text
        if not snapshot:
            raise ValidationError("No estimation available to download!")
        self._reject_reentry(Action.EXPORT)

        with self._in_flight(Action.EXPORT):
            outcome = await self._dispatcher.dispatch(ExportRequest(snapshot, kind))
            if isinstance(outcome, Failure):
                self._report(Action.EXPORT, outcome.error)
                return None
            return outcome.payload

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _reject_reentry(self, action: Action) -> None:
        if self._state.status_of(action).in_flight:
            LOGGER.info("Rejected %s while a previous call is in flight", action.value)
            raise ActionInProgressError(action.value)

    @contextmanager
    def _in_flight(self, action: Action) -> Iterator[None]:
        self._state.mark_in_flight(action)
        self._notify()
        try:
            yield
        finally:
            if self._state.status_of(action).in_flight:
                self._state.mark_idle(action)
            self._notify()

    def _replace_estimate(self, text: str) -> None:
        self._state.estimate_text = text
        self._notify()

    def _report(self, action: Action, error: EstimatorError) -> None:
        LOGGER.warning("%s failed: %s", action.value, error)
        self._state.mark_failed(action, error)
        for handler in self._error_handlers:
            handler(action, error)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self._state)


__all__ = ["EstimateWorkflow", "ErrorHandler", "StateListener"]
