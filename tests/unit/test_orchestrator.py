from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from bulk_import.logging.error_log import EMPTY_PAYLOAD, FILE_FORMAT_ERROR, ROW_VALIDATION_ERROR, ErrorLogBuffer
from bulk_import.models.field_spec import EntityType
from bulk_import.models.import_result import ImportResult
from bulk_import.models.pipeline_state import CompletionStatus, PipelineState
from bulk_import.services.orchestrator import (
    NO_VALID_ROWS_MESSAGE,
    SUBMISSION_FAILED_MESSAGE,
    EmptyPayloadError,
    ImportOrchestrator,
    InvalidTransitionError,
)
from bulk_import.services.submitter import SubmissionError
from conftest import PARTY_LABELS, PRODUCT_LABELS, make_xlsx, party_row, product_row


class RecordingSubmitter:
    """Returns a fixed result and remembers what it was given."""

    def __init__(self, result: ImportResult | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list = []

    async def submit_batch(self, entity_type, organization_id, payloads):
        self.calls.append((entity_type, organization_id, list(payloads)))
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return ImportResult(imported_count=len(payloads))


class GatedSubmitter(RecordingSubmitter):
    """Blocks inside submit_batch until released."""

    def __init__(self, result: ImportResult) -> None:
        super().__init__(result)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def submit_batch(self, entity_type, organization_id, payloads):
        self.calls.append((entity_type, organization_id, list(payloads)))
        self.entered.set()
        await self.release.wait()
        return self.result


def _five_parties() -> bytes:
    rows = [party_row(n) for n in range(1, 6)]
    rows[2] = party_row(3, phone="9841234")
    return make_xlsx(PARTY_LABELS, rows)


def _orchestrator(submitter, entity=EntityType.PARTY, **kwargs) -> ImportOrchestrator:
    return ImportOrchestrator(entity, "org-42", submitter, **kwargs)


def test_starts_idle():
    orch = _orchestrator(RecordingSubmitter())
    assert orch.state is PipelineState.IDLE
    assert orch.snapshot().entity_type is EntityType.PARTY


def test_select_file_previews_first_rows_with_errors():
    orch = _orchestrator(RecordingSubmitter())
    snap = asyncio.run(orch.select_file("parties.xlsx", _five_parties()))
    assert snap.state is PipelineState.PREVIEWING
    assert snap.total_rows == 5
    assert snap.message == "File loaded. Found 5 rows."
    assert len(snap.preview) == 5
    assert snap.preview_errors == {2: ("Phone Number must have at least 10 digits",)}
    assert [p.valid for p in snap.preview] == [True, True, False, True, True]
    assert snap.preview[0].s_no == 1


def test_preview_limited_to_configured_rows():
    rows = [product_row(n) for n in range(1, 9)]
    rows[0][0] = None  # blank S.No falls back to position
    orch = _orchestrator(RecordingSubmitter(), EntityType.PRODUCT, preview_rows=3)
    snap = asyncio.run(orch.select_file("products.xlsx", make_xlsx(PRODUCT_LABELS, rows)))
    assert snap.total_rows == 8
    assert [p.row_index for p in snap.preview] == [0, 1, 2]
    assert snap.preview[0].s_no == 1
    assert snap.preview[1].s_no == 2


def test_confirm_submits_only_valid_rows():
    submitter = RecordingSubmitter(ImportResult(imported_count=4))
    orch = _orchestrator(submitter)

    async def flow():
        await orch.select_file("parties.xlsx", _five_parties())
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert len(submitter.calls) == 1
    entity, org_id, payloads = submitter.calls[0]
    assert (entity, org_id) == (EntityType.PARTY, "org-42")
    assert [p.company_name for p in payloads] == ["Party 1", "Party 2", "Party 4", "Party 5"]
    assert snap.state is PipelineState.COMPLETED
    assert snap.status is CompletionStatus.SUCCESS
    assert snap.valid_count == 4
    assert snap.invalid_count == 1
    assert snap.row_errors[0].row_number == 5
    assert snap.message == "Successfully uploaded 4 parties."


def test_partial_result():
    submitter = RecordingSubmitter(ImportResult(imported_count=3, errors=("Row 2: duplicate tax ID",)))
    rows = [party_row(n) for n in range(1, 5)]
    orch = _orchestrator(submitter)

    async def flow():
        await orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, rows))
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert len(submitter.calls[0][2]) == 4
    assert snap.status is CompletionStatus.PARTIAL
    assert snap.result.errors == ("Row 2: duplicate tax ID",)
    assert "3 imported" in snap.message


def test_zero_imported_is_failed():
    submitter = RecordingSubmitter(ImportResult(imported_count=0, errors=("Row 1: duplicate",)))
    orch = _orchestrator(submitter, EntityType.PRODUCT)

    async def flow():
        await orch.select_file("products.xlsx", make_xlsx(PRODUCT_LABELS, [product_row(1)]))
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert snap.status is CompletionStatus.FAILED
    assert snap.message == "Upload failed. No products were imported."


def test_empty_file_skips_submitter():
    submitter = RecordingSubmitter()
    orch = _orchestrator(submitter)

    async def flow():
        preview = await orch.select_file("empty.xlsx", make_xlsx(PARTY_LABELS, []))
        assert preview.state is PipelineState.PREVIEWING
        assert preview.total_rows == 0
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert submitter.calls == []
    assert snap.state is PipelineState.READY_TO_SUBMIT
    assert isinstance(snap.error, EmptyPayloadError)
    assert snap.message == NO_VALID_ROWS_MESSAGE


def test_all_rows_invalid_skips_submitter_and_logs_errors(temp_workdir: Path):
    submitter = RecordingSubmitter()
    error_log = ErrorLogBuffer()
    orch = _orchestrator(submitter, error_log=error_log)
    rows = [party_row(1, phone="123"), party_row(2, phone="456")]

    async def flow():
        await orch.select_file("bad.xlsx", make_xlsx(PARTY_LABELS, rows))
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert submitter.calls == []
    assert snap.state is PipelineState.READY_TO_SUBMIT
    assert snap.invalid_count == 2
    types = [r.error_type for r in error_log.records]
    assert types == [ROW_VALIDATION_ERROR, ROW_VALIDATION_ERROR, EMPTY_PAYLOAD]
    assert error_log.records[0].row == 3


def test_unreadable_file_returns_to_idle(temp_workdir: Path):
    error_log = ErrorLogBuffer()
    orch = _orchestrator(RecordingSubmitter(), error_log=error_log)
    snap = asyncio.run(orch.select_file("broken.xlsx", b"PK\x03\x04garbage"))
    assert snap.state is PipelineState.IDLE
    assert snap.file_name is None
    assert snap.message and snap.error is not None
    assert error_log.records[0].error_type == FILE_FORMAT_ERROR
    with pytest.raises(InvalidTransitionError):
        asyncio.run(orch.confirm_upload())


def test_wrong_extension_rejected_before_reading():
    orch = _orchestrator(RecordingSubmitter())
    snap = asyncio.run(orch.select_file("parties.pdf", b"%PDF-1.4"))
    assert snap.state is PipelineState.IDLE
    assert "Invalid file type" in snap.message


def test_submission_error_completes_failed_with_generic_message():
    submitter = RecordingSubmitter(error=SubmissionError("could not reach import service: refused"))
    orch = _orchestrator(submitter)

    async def flow():
        await orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)]))
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert snap.state is PipelineState.COMPLETED
    assert snap.status is CompletionStatus.FAILED
    assert snap.result == ImportResult(imported_count=0, errors=(SUBMISSION_FAILED_MESSAGE,))
    assert isinstance(snap.error, SubmissionError)


def test_unexpected_submitter_error_completes_failed(temp_workdir: Path):
    submitter = RecordingSubmitter(error=RuntimeError("boom"))
    error_log = ErrorLogBuffer()
    orch = _orchestrator(submitter, error_log=error_log)

    async def flow():
        await orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)]))
        return await orch.confirm_upload()

    snap = asyncio.run(flow())
    assert orch.state is PipelineState.COMPLETED
    assert snap.status is CompletionStatus.FAILED
    assert snap.result == ImportResult(imported_count=0, errors=(SUBMISSION_FAILED_MESSAGE,))
    assert isinstance(snap.error, RuntimeError)
    assert [r.error_type for r in error_log.records] == ["SUBMISSION_ERROR"]
    # the flow is not stuck: a new file can be previewed and confirmed again
    submitter.error = None
    asyncio.run(orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)])))
    assert asyncio.run(orch.confirm_upload()).status is CompletionStatus.SUCCESS


def test_confirm_before_file_is_rejected():
    orch = _orchestrator(RecordingSubmitter())
    with pytest.raises(InvalidTransitionError):
        asyncio.run(orch.confirm_upload())


def test_confirm_without_organization_is_rejected():
    orch = ImportOrchestrator(EntityType.PARTY, None, RecordingSubmitter())
    asyncio.run(orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)])))
    with pytest.raises(InvalidTransitionError):
        asyncio.run(orch.confirm_upload())


def test_second_confirm_while_submitting_is_rejected():
    submitter = GatedSubmitter(ImportResult(imported_count=1))
    orch = _orchestrator(submitter)

    async def flow():
        await orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)]))
        task = asyncio.create_task(orch.confirm_upload())
        await submitter.entered.wait()
        assert orch.state is PipelineState.SUBMITTING
        with pytest.raises(InvalidTransitionError):
            await orch.confirm_upload()
        submitter.release.set()
        return await task

    snap = asyncio.run(flow())
    assert len(submitter.calls) == 1
    assert snap.status is CompletionStatus.SUCCESS


def test_close_during_submission_discards_result():
    submitter = GatedSubmitter(ImportResult(imported_count=1))
    orch = _orchestrator(submitter)

    async def flow():
        await orch.select_file("parties.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)]))
        task = asyncio.create_task(orch.confirm_upload())
        await submitter.entered.wait()
        orch.close()
        submitter.release.set()
        await task

    asyncio.run(flow())
    snap = orch.snapshot()
    assert snap.state is PipelineState.IDLE
    assert snap.result is None
    assert snap.status is None
    assert snap.file_name is None


def test_new_file_during_submission_supersedes_flow():
    submitter = GatedSubmitter(ImportResult(imported_count=1))
    orch = _orchestrator(submitter)

    async def flow():
        await orch.select_file("first.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)]))
        task = asyncio.create_task(orch.confirm_upload())
        await submitter.entered.wait()
        await orch.select_file("second.xlsx", make_xlsx(PARTY_LABELS, [party_row(1), party_row(2)]))
        submitter.release.set()
        await task

    asyncio.run(flow())
    snap = orch.snapshot()
    assert snap.state is PipelineState.PREVIEWING
    assert snap.file_name == "second.xlsx"
    assert snap.total_rows == 2
    assert snap.result is None


def test_reselect_replaces_preview():
    orch = _orchestrator(RecordingSubmitter())

    async def flow():
        await orch.select_file("first.xlsx", _five_parties())
        return await orch.select_file("second.xlsx", make_xlsx(PARTY_LABELS, [party_row(1)]))

    snap = asyncio.run(flow())
    assert snap.file_name == "second.xlsx"
    assert snap.total_rows == 1
    assert snap.preview_errors == {}


def test_close_resets_everything():
    orch = _orchestrator(RecordingSubmitter())
    asyncio.run(orch.select_file("parties.xlsx", _five_parties()))
    snap = orch.close()
    assert snap.state is PipelineState.IDLE
    assert snap.preview == ()
    assert snap.total_rows == 0


def test_template_uses_organization_name():
    orch = ImportOrchestrator("product", "org-42", RecordingSubmitter(), organization_name="Acme Traders")
    name, data = orch.template()
    assert name == "Products_Upload_Template_Acme_Traders.xlsx"
    assert data[:2] == b"PK"
