from __future__ import annotations

import asyncio

import pytest

from scope_estimator.errors import ActionInProgressError, DownloadError, ServiceError, TransportError, ValidationError
from scope_estimator.export import DownloadSink
from scope_estimator.models import Action, ActionStatus, Failure, OutputKind, SourceDocument, Success
from scope_estimator.state import Phase
from scope_estimator.workflow import EstimateWorkflow


def test_initial_state_is_idle(workflow) -> None:
    state = workflow.state
    assert state.phase is Phase.IDLE
    assert state.estimate_text == ""
    assert not (state.ingesting or state.regenerating or state.exporting)
    assert not state.can_generate
    assert not state.can_export


def test_submit_document_replaces_estimate(workflow, fake_client, scope_pdf) -> None:
    fake_client.upload_outcome = Success("# Estimate\n| Task | Hours |")

    result = asyncio.run(workflow.submit_document(scope_pdf))

    assert result == "# Estimate\n| Task | Hours |"
    assert workflow.state.estimate_text == "# Estimate\n| Task | Hours |"
    assert workflow.state.phase is Phase.READY
    assert not workflow.state.ingesting
    assert fake_client.uploads == [scope_pdf]


def test_submit_document_without_selection_is_rejected(workflow, fake_client) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(workflow.submit_document())
    assert fake_client.uploads == []
    assert workflow.state.status_of(Action.INGEST).status is ActionStatus.IDLE


def test_select_document_rejects_non_pdf(workflow) -> None:
    with pytest.raises(ValidationError):
        workflow.select_document(SourceDocument("notes.txt", b"hello", "text/plain"))
    assert workflow.state.document is None


def test_ingest_transport_failure_keeps_previous_state(workflow, fake_client, scope_pdf) -> None:
    errors = []
    workflow.add_error_handler(lambda action, error: errors.append((action, str(error))))
    fake_client.upload_outcome = Failure(TransportError("timeout"))

    result = asyncio.run(workflow.submit_document(scope_pdf))

    assert result is None
    assert workflow.state.estimate_text == ""
    assert workflow.state.ingesting is False
    assert workflow.state.phase is Phase.IDLE
    assert errors == [(Action.INGEST, "timeout")]
    assert str(workflow.state.last_error) == "timeout"
    assert workflow.state.status_of(Action.INGEST).status is ActionStatus.FAILED
    assert workflow.state.status_of(Action.INGEST).reason == "timeout"


def test_failed_reupload_returns_to_ready(workflow, fake_client, scope_pdf) -> None:
    asyncio.run(workflow.submit_document(scope_pdf))
    fake_client.upload_outcome = Failure(ServiceError("No extractable text found in PDF", 422))

    asyncio.run(workflow.submit_document())

    assert workflow.state.estimate_text == "# Estimate"
    assert workflow.state.phase is Phase.READY


def test_submit_document_rejects_reentry(workflow, fake_client, scope_pdf) -> None:
    async def scenario() -> None:
        fake_client.upload_gate = asyncio.Event()
        first = asyncio.create_task(workflow.submit_document(scope_pdf))
        await asyncio.sleep(0)
        assert workflow.state.ingesting
        assert workflow.state.phase is Phase.INGESTING
        assert not workflow.state.can_generate
        with pytest.raises(ActionInProgressError):
            await workflow.submit_document()
        fake_client.upload_gate.set()
        await first

    asyncio.run(scenario())

    assert len(fake_client.uploads) == 1
    assert not workflow.state.ingesting


def test_feedback_success_replaces_estimate_and_clears_feedback(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"
    workflow.set_feedback("add a risk section")

    result = asyncio.run(workflow.submit_feedback())

    assert result == "# Estimate\n## Risks"
    assert workflow.state.estimate_text == "# Estimate\n## Risks"
    assert workflow.state.feedback_text == ""
    assert fake_client.refinements == [("# Estimate", "add a risk section")]
    assert not workflow.state.regenerating


def test_feedback_failure_preserves_estimate_and_feedback(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"
    fake_client.refine_outcome = Failure(ServiceError("Claude API call failed", 502))

    result = asyncio.run(workflow.submit_feedback("add a risk section"))

    assert result is None
    assert workflow.state.estimate_text == "# Estimate"
    assert workflow.state.feedback_text == "add a risk section"
    assert not workflow.state.regenerating
    assert workflow.state.can_regenerate


@pytest.mark.parametrize("feedback", ["", "   ", "\n\t"])
def test_blank_feedback_is_a_noop(workflow, fake_client, feedback) -> None:
    workflow.state.estimate_text = "# Estimate"

    assert asyncio.run(workflow.submit_feedback(feedback)) is None

    assert fake_client.refinements == []
    assert workflow.state.status_of(Action.REGENERATE).status is ActionStatus.IDLE
    assert workflow.state.estimate_text == "# Estimate"


def test_feedback_rejects_reentry(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"

    async def scenario() -> None:
        fake_client.refine_gate = asyncio.Event()
        first = asyncio.create_task(workflow.submit_feedback("add QA"))
        await asyncio.sleep(0)
        assert workflow.state.phase is Phase.REGENERATING
        with pytest.raises(ActionInProgressError):
            await workflow.submit_feedback("add QA again")
        fake_client.refine_gate.set()
        await first

    asyncio.run(scenario())

    assert len(fake_client.refinements) == 1


def test_export_without_estimate_is_rejected(workflow, fake_client) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(workflow.request_export(OutputKind.PDF))
    assert fake_client.exports == []
    assert not workflow.state.exporting


def test_export_saves_payload(workflow, fake_client, download_dir) -> None:
    workflow.state.estimate_text = "# Estimate"

    path = asyncio.run(workflow.request_export("pdf"))

    assert path == download_dir / "estimation.pdf"
    assert path.read_bytes() == fake_client.export_outcome.payload
    assert sorted(p.name for p in download_dir.iterdir()) == ["estimation.pdf"]
    assert not workflow.state.exporting


def test_export_failure_is_reported(workflow, fake_client, download_dir) -> None:
    workflow.state.estimate_text = "# Estimate"
    fake_client.export_outcome = Failure(TransportError("connection refused"))

    assert asyncio.run(workflow.request_export(OutputKind.DOCX)) is None

    assert list(download_dir.iterdir()) == []
    assert not workflow.state.exporting
    assert str(workflow.state.last_error) == "connection refused"


def test_export_uses_estimate_at_call_time(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"

    async def scenario() -> None:
        fake_client.refine_gate = asyncio.Event()
        regenerate = asyncio.create_task(workflow.submit_feedback("add a risk section"))
        await asyncio.sleep(0)
        # A different action may run while regenerate is in flight.
        await workflow.request_export(OutputKind.PDF)
        fake_client.refine_gate.set()
        await regenerate

    asyncio.run(scenario())

    assert fake_client.exports[0].estimate_text == "# Estimate"
    assert workflow.state.estimate_text == "# Estimate\n## Risks"


def test_listeners_see_busy_flag_transitions(workflow, scope_pdf) -> None:
    seen = []
    workflow.add_listener(lambda state: seen.append((state.ingesting, state.estimate_text)))

    asyncio.run(workflow.submit_document(scope_pdf))

    assert (True, "") in seen
    assert seen[-1] == (False, "# Estimate")


def test_select_document_path(workflow, tmp_path) -> None:
    pdf = tmp_path / "scope.pdf"
    pdf.write_bytes(b"%PDF-1.4 scope")

    document = workflow.select_document_path(pdf)

    assert document.filename == "scope.pdf"
    assert document.media_type == "application/pdf"
    assert workflow.state.can_generate


def test_select_document_path_missing_file(workflow, tmp_path) -> None:
    with pytest.raises(ValidationError):
        workflow.select_document_path(tmp_path / "missing.pdf")


def test_rejected_feedback_leaves_pending_text_alone(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"

    async def scenario() -> None:
        fake_client.refine_gate = asyncio.Event()
        first = asyncio.create_task(workflow.submit_feedback("add QA"))
        await asyncio.sleep(0)
        with pytest.raises(ActionInProgressError):
            await workflow.submit_feedback("trim design")
        assert workflow.state.feedback_text == "add QA"
        fake_client.refine_gate.set()
        await first

    asyncio.run(scenario())

    assert fake_client.refinements == [("# Estimate", "add QA")]
    assert workflow.state.feedback_text == ""


def test_feedback_edited_during_regenerate_is_kept(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"

    async def scenario() -> None:
        fake_client.refine_gate = asyncio.Event()
        first = asyncio.create_task(workflow.submit_feedback("add QA"))
        await asyncio.sleep(0)
        workflow.set_feedback("trim design")
        fake_client.refine_gate.set()
        await first

    asyncio.run(scenario())

    assert workflow.state.estimate_text == "# Estimate\n## Risks"
    assert workflow.state.feedback_text == "trim design"


def test_blank_feedback_keeps_pending_feedback(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"
    workflow.set_feedback("add a risk section")

    assert asyncio.run(workflow.submit_feedback("   ")) is None

    assert workflow.state.feedback_text == "add a risk section"
    assert fake_client.refinements == []


def test_export_rejects_reentry(workflow, fake_client, download_dir) -> None:
    workflow.state.estimate_text = "# Estimate"

    async def scenario() -> None:
        fake_client.export_gate = asyncio.Event()
        first = asyncio.create_task(workflow.request_export(OutputKind.PDF))
        await asyncio.sleep(0)
        assert workflow.state.exporting
        assert not workflow.state.can_export
        with pytest.raises(ActionInProgressError):
            await workflow.request_export(OutputKind.DOCX)
        fake_client.export_gate.set()
        await first

    asyncio.run(scenario())

    assert len(fake_client.exports) == 1
    assert not workflow.state.exporting
    assert sorted(p.name for p in download_dir.iterdir()) == ["estimation.pdf"]


def test_export_save_failure_is_reported(fake_client, tmp_path) -> None:
    blocker = tmp_path / "downloads"
    blocker.write_text("not a directory")
    errors = []
    workflow = EstimateWorkflow(fake_client, sink=DownloadSink(blocker))  # type: ignore[arg-type]
    workflow.add_error_handler(lambda action, error: errors.append((action, error)))
    workflow.state.estimate_text = "# Estimate"

    assert asyncio.run(workflow.request_export(OutputKind.PDF)) is None

    assert isinstance(workflow.state.last_error, DownloadError)
    assert workflow.state.status_of(Action.EXPORT).status is ActionStatus.FAILED
    assert workflow.state.estimate_text == "# Estimate"
    assert not workflow.state.exporting
    assert errors == [(Action.EXPORT, workflow.state.last_error)]


def test_export_rejects_unknown_format(workflow, fake_client) -> None:
    workflow.state.estimate_text = "# Estimate"

    with pytest.raises(ValidationError, match="'pdf' or 'docx'"):
        asyncio.run(workflow.request_export("html"))
    assert fake_client.exports == []
