"""Reporting router for the ad-hoc report builder."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from report_builder.api.deps import ReportContext, get_report_context, get_reporting_service
from report_builder.core.exceptions import raise_internal_server_error, raise_not_found
from report_builder.core.reporting.export import (
    config_filename,
    csv_filename,
    export_config_json,
    export_csv_bytes,
    import_config_json,
)
from report_builder.core.reporting.service import ReportingService
from report_builder.core.reporting.session import default_config
from report_builder.schemas.common import (
    ErrorResponse,
    ListMeta,
    StandardListResponse,
    StandardResponse,
)
from report_builder.schemas.reporting import (
    ReportConfig,
    ReportExecutionResponse,
    ReportResult,
    SavedReportCreate,
    SavedReportResponse,
    SourceResponse,
)

router = APIRouter()

# Errors any execution can answer with
EXECUTION_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid report configuration"},
    502: {"model": ErrorResponse, "description": "Datastore query failed"},
}


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get(
    "/sources",
    response_model=StandardListResponse[SourceResponse],
    status_code=status.HTTP_200_OK,
    summary="List report sources",
    description="List the sources a report can be built from, with their columns.",
)
async def list_sources(
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> StandardListResponse[SourceResponse]:
    """List report sources."""
    sources = service.list_sources()
    return StandardListResponse(
        data=[SourceResponse.model_validate(source.to_dict()) for source in sources],
        meta=ListMeta(total=len(sources)),
    )


@router.get(
    "/sources/{source_id}",
    response_model=StandardResponse[SourceResponse],
    status_code=status.HTTP_200_OK,
    summary="Get report source",
)
async def get_source(
    source_id: str,
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> StandardResponse[SourceResponse]:
    """Get one report source."""
    source = service.get_source(source_id)
    if source is None:
        raise_not_found("Source", source_id, code="REPORTING_SOURCE_NOT_FOUND")
    return StandardResponse(data=SourceResponse.model_validate(source.to_dict()))


@router.get(
    "/config/default",
    response_model=StandardResponse[ReportConfig],
    status_code=status.HTTP_200_OK,
    summary="Default report configuration",
    description="Blank configuration covering the last days up to today.",
)
async def get_default_config(
    context: Annotated[ReportContext, Depends(get_report_context)],
) -> StandardResponse[ReportConfig]:
    """Get a blank report configuration."""
    return StandardResponse(data=default_config())


@router.post(
    "/execute",
    response_model=StandardResponse[ReportResult],
    status_code=status.HTTP_200_OK,
    summary="Execute report",
    description=(
        "Run a report configuration for the caller's organization. "
        "`total` counts output rows and `fetched` the rows read before grouping; "
        "`meta.partial` is true when `fetched` reached the limit and more rows may exist."
    ),
    responses=EXECUTION_ERRORS,
)
async def execute_report(
    config: ReportConfig,
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> StandardResponse[ReportResult]:
    """Execute a report."""
    result = await service.execute(context.organization_id, config, context.user_id)
    return StandardResponse(
        data=result,
        meta={"partial": result.reached_limit(config.limit), "limit": config.limit},
    )


@router.post(
    "/export/csv",
    status_code=status.HTTP_200_OK,
    summary="Export report as CSV",
    response_class=Response,
    responses=EXECUTION_ERRORS,
)
async def export_report_csv(
    config: ReportConfig,
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> Response:
    """Execute a report and download the rows as CSV (UTF-8 with BOM)."""
    result = await service.execute(context.organization_id, config, context.user_id)
    return Response(
        content=export_csv_bytes(result),
        media_type="text/csv; charset=utf-8",
        headers=_attachment(csv_filename(config)),
    )


@router.post(
    "/export/json",
    status_code=status.HTTP_200_OK,
    summary="Export report configuration",
    response_class=Response,
)
async def export_report_config(
    config: ReportConfig,
    context: Annotated[ReportContext, Depends(get_report_context)],
) -> Response:
    """Download a report configuration as a JSON file."""
    return Response(
        content=export_config_json(config),
        media_type="application/json",
        headers=_attachment(config_filename(config)),
    )


@router.post(
    "/import/json",
    response_model=StandardResponse[ReportConfig],
    status_code=status.HTTP_200_OK,
    summary="Import report configuration",
    description="Parse an exported configuration file; the result replaces the active one.",
)
async def import_report_config(
    request: Request,
    context: Annotated[ReportContext, Depends(get_report_context)],
) -> StandardResponse[ReportConfig]:
    """Import a report configuration."""
    config = import_config_json(await request.body())
    return StandardResponse(data=config)


@router.get(
    "/saved-reports",
    response_model=StandardListResponse[SavedReportResponse],
    status_code=status.HTTP_200_OK,
    summary="List saved reports",
)
async def list_saved_reports(
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> StandardListResponse[SavedReportResponse]:
    """List the organization's saved reports, newest first."""
    reports = service.get_saved_reports(context.organization_id)
    return StandardListResponse(
        data=[SavedReportResponse.model_validate(report) for report in reports],
        meta=ListMeta(total=len(reports)),
    )


@router.post(
    "/saved-reports",
    response_model=StandardResponse[SavedReportResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Save report",
)
async def save_report(
    report_data: SavedReportCreate,
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> StandardResponse[SavedReportResponse]:
    """Save a report configuration."""
    report = service.save_report(
        organization_id=context.organization_id,
        user_id=context.user_id,
        name=report_data.name,
        config=report_data.config,
        description=report_data.description,
    )
    if report is None:
        raise_internal_server_error(
            "REPORTING_SAVE_FAILED", f"Report '{report_data.name}' could not be saved"
        )
    return StandardResponse(data=SavedReportResponse.model_validate(report))


@router.get(
    "/saved-reports/{report_id}",
    response_model=StandardResponse[SavedReportResponse],
    status_code=status.HTTP_200_OK,
    summary="Get saved report",
)
async def get_saved_report(
    report_id: UUID,
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
) -> StandardResponse[SavedReportResponse]:
    """Get a saved report."""
    report = service.get_saved_report(report_id, context.organization_id)
    if report is None:
        raise_not_found("Saved report", str(report_id), code="REPORTING_SAVED_REPORT_NOT_FOUND")
    return StandardResponse(data=SavedReportResponse.model_validate(report))


@router.delete(
    "/saved-reports/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete saved report",
    description=(
        "Delete a saved report. Deleting a report that no longer exists also "
        "answers 204 unless `strict=true`."
    ),
)
async def delete_saved_report(
    report_id: UUID,
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
    strict: bool = Query(default=False, description="Answer 404 for unknown reports"),
) -> Response:
    """Delete a saved report."""
    if service.delete_saved_report(report_id, context.organization_id):
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    if service.get_saved_report(report_id, context.organization_id) is not None:
        raise_internal_server_error(
            "REPORTING_DELETE_FAILED", f"Saved report {report_id} could not be deleted"
        )
    if strict:
        raise_not_found("Saved report", str(report_id), code="REPORTING_SAVED_REPORT_NOT_FOUND")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/executions",
    response_model=StandardListResponse[ReportExecutionResponse],
    status_code=status.HTTP_200_OK,
    summary="Recent executions",
)
async def list_recent_executions(
    context: Annotated[ReportContext, Depends(get_report_context)],
    service: Annotated[ReportingService, Depends(get_reporting_service)],
    limit: int = Query(default=5, ge=1, le=50, description="Number of executions"),
) -> StandardListResponse[ReportExecutionResponse]:
    """List the organization's latest report executions."""
    executions = service.get_recent_executions(context.organization_id, limit)
    return StandardListResponse(
        data=[ReportExecutionResponse.model_validate(execution) for execution in executions],
        meta=ListMeta(total=len(executions)),
    )
