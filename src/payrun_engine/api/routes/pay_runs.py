"""Pay run API endpoints.

Every endpoint acts on "the current run", resolved from the database on each
request. Business errors raised by the services are translated to structured
responses by the handlers registered in ``payrun_engine.api.app``.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status
from fastapi.responses import Response

from payrun_engine.api.dependencies import ActorId, AppSettings, PayRuns, SessionFactory
from payrun_engine.api.schemas import (
    BankFileResponse,
    CurrentRunResponse,
    DeleteItemResponse,
    ErrorResponse,
    ItemListResponse,
    ItemUpdateResponse,
    PayRunItemResponse,
    PayRunResponse,
    RunSummaryResponse,
    StartRunRequest,
    StatusChangeRequest,
    StpPreviewResponse,
    TotalsResponse,
    ValidationResponse,
)
from payrun_engine.errors import NotFoundError
from payrun_engine.exports import (
    BankFileBuilder,
    PayslipRenderer,
    build_stp_preview,
    load_run_snapshot,
)
from payrun_engine.services.inputs import ItemPatch, NewItem

router = APIRouter(prefix="/pay-runs", tags=["pay-runs"])


# ============================================================================
# Reads
# ============================================================================


@router.get("/current", response_model=CurrentRunResponse)
async def get_current_run(service: PayRuns) -> CurrentRunResponse:
    """Get the current run with period, items and totals."""
    view = await service.get_current_run()
    return CurrentRunResponse.model_validate(view)


@router.get("/current/summary", response_model=RunSummaryResponse)
async def get_current_run_summary(service: PayRuns) -> RunSummaryResponse:
    """Get status, period and totals of the current run without its lines."""
    summary = await service.get_current_run_summary()
    return RunSummaryResponse.model_validate(summary)


@router.get("/current/items", response_model=ItemListResponse)
async def list_current_items(
    service: PayRuns,
    search: str = "",
    limit: Annotated[int, Query(ge=1, le=200)] = 25,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ItemListResponse:
    """List items of the current run, optionally filtered by employee name."""
    page = await service.list_current_items(search=search, limit=limit, offset=offset)
    return ItemListResponse.model_validate(page)


@router.get("/current/validation", response_model=ValidationResponse)
async def validate_current_run(service: PayRuns) -> ValidationResponse:
    """Validate the current run without changing it."""
    report = await service.validate_current_run()
    return ValidationResponse.model_validate(report)


# ============================================================================
# Run creation
# ============================================================================


@router.post(
    "/start",
    response_model=PayRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def start_run(
    service: PayRuns,
    actor_id: ActorId,
    payload: StartRunRequest,
) -> PayRunResponse:
    """Start (or return) the run of a given period."""
    record = await service.start_run(payload.pay_period_id, actor_id)
    return PayRunResponse.model_validate(record)


@router.post(
    "/current/start",
    response_model=PayRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def start_current_run(service: PayRuns, actor_id: ActorId) -> PayRunResponse:
    """Start (or return) the run of the current period."""
    record = await service.start_current_run(actor_id)
    return PayRunResponse.model_validate(record)


# ============================================================================
# Items
# ============================================================================


@router.post(
    "/current/items",
    response_model=PayRunItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_item(
    service: PayRuns,
    actor_id: ActorId,
    payload: NewItem,
) -> PayRunItemResponse:
    """Add a line to the current run (Draft only)."""
    line = await service.add_item(payload, actor_id)
    return PayRunItemResponse.model_validate(line)


@router.patch(
    "/current/items/{item_id}",
    response_model=ItemUpdateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_item(
    service: PayRuns,
    actor_id: ActorId,
    item_id: Annotated[UUID, Path()],
    patch: ItemPatch,
) -> ItemUpdateResponse:
    """Patch a line of the current run and return the refreshed line and totals."""
    result = await service.update_item(item_id, patch, actor_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found in an editable current run",
        )
    return ItemUpdateResponse.model_validate(result)


@router.delete(
    "/current/items/{item_id}",
    response_model=DeleteItemResponse,
    responses={409: {"model": ErrorResponse}},
)
async def delete_item(
    service: PayRuns,
    actor_id: ActorId,
    item_id: Annotated[UUID, Path()],
) -> DeleteItemResponse:
    """Delete a line (Draft only). Deleting a missing line succeeds."""
    deleted = await service.delete_item(item_id, actor_id)
    return DeleteItemResponse(deleted=deleted)


@router.post(
    "/current/items/{item_id}/recalculate",
    response_model=PayRunItemResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def recalculate_item(
    service: PayRuns,
    item_id: Annotated[UUID, Path()],
) -> PayRunItemResponse:
    """Recalculate one line and the run totals."""
    line = await service.recalc_line(item_id)
    if line is None:
        raise NotFoundError(f"Pay run item {item_id} not found", {"item_id": str(item_id)})
    return PayRunItemResponse.model_validate(line)


# ============================================================================
# Calculation and status transitions
# ============================================================================


@router.post(
    "/current/recalculate",
    response_model=TotalsResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def recalculate_current_run(service: PayRuns) -> TotalsResponse:
    """Recalculate every line of the current run."""
    totals = await service.recalculate_current_run()
    return TotalsResponse.model_validate(totals)


@router.post(
    "/current/approve",
    response_model=PayRunResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def approve_current_run(service: PayRuns, actor_id: ActorId) -> PayRunResponse:
    """Approve the current run. Requires a Draft run that passes validation."""
    record = await service.approve(actor_id)
    return PayRunResponse.model_validate(record)


@router.post(
    "/current/post",
    response_model=PayRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def post_current_run(service: PayRuns, actor_id: ActorId) -> PayRunResponse:
    """Post the current run. Requires an Approved run."""
    record = await service.post(actor_id)
    return PayRunResponse.model_validate(record)


@router.post(
    "/current/status",
    response_model=PayRunResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def change_status(
    service: PayRuns,
    actor_id: ActorId,
    payload: StatusChangeRequest,
) -> PayRunResponse:
    """Move the current run to the requested status."""
    record = await service.update_status(
        payload.status,
        actor_id,
        allow_approved_to_draft=payload.allow_approved_to_draft,
    )
    return PayRunResponse.model_validate(record)


# ============================================================================
# Exports
# ============================================================================


@router.get(
    "/current/export/bank-file",
    response_model=BankFileResponse,
    responses={404: {"model": ErrorResponse}},
)
async def export_bank_file(
    factory: SessionFactory,
    settings: AppSettings,
    file_format: Annotated[str | None, Query(alias="format", pattern="^(aba|csv)$")] = None,
) -> BankFileResponse:
    """Generate the bank payment file for the current run."""
    run = await load_run_snapshot(factory)
    if run is None:
        raise NotFoundError("No current pay run")
    bank_file = BankFileBuilder(settings).build(run, file_format=file_format)
    return BankFileResponse.model_validate(bank_file)


@router.get(
    "/current/export/payslips",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}},
        404: {"model": ErrorResponse},
    },
)
async def export_payslips(factory: SessionFactory, settings: AppSettings) -> Response:
    """Render one PDF with a payslip page per line of the current run."""
    run = await load_run_snapshot(factory)
    if run is None:
        raise NotFoundError("No current pay run")
    renderer = PayslipRenderer(settings)
    return Response(
        content=renderer.render(run),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{renderer.filename(run)}"'},
    )


@router.get(
    "/current/export/stp-preview",
    response_model=StpPreviewResponse,
    responses={404: {"model": ErrorResponse}},
)
async def export_stp_preview(factory: SessionFactory) -> StpPreviewResponse:
    """Per-employee gross, tax and super for the current run."""
    run = await load_run_snapshot(factory)
    if run is None:
        raise NotFoundError("No current pay run")
    return StpPreviewResponse.model_validate(build_stp_preview(run))
