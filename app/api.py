"""HTTP route definitions for the service."""

from __future__ import annotations

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.schemas import (
    ChartPointOut,
    InsightRequest,
    InsightResponse,
    ReadingCreate,
    ReadingOut,
    ReadingUpdate,
    StatisticsOut,
)
from models.records import ALL_UTILITIES, UTILITY_TYPE_VALUES, DateRange
from services.auth import require_owner
from services.dates import InvalidDateRangeError, resolve_date_range
from services.insights import InsightOrchestrator, InsightOutcomeKind, NoDataError
from services.readings import ReadingService, ReadingValidationError
from settings import get_settings

router = APIRouter()

_OUTCOME_STATUS = {
    InsightOutcomeKind.timeout: status.HTTP_504_GATEWAY_TIMEOUT,
    InsightOutcomeKind.configuration_error: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InsightOutcomeKind.upstream_error: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InsightOutcomeKind.unknown: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_reading_service(request: Request) -> ReadingService:
    return request.app.state.reading_service


def get_orchestrator(request: Request) -> InsightOrchestrator:
    return request.app.state.insight_orchestrator


def get_date_range(
    start: Optional[str] = Query(None, description="Inclusive start date (YYYY-MM-DD)."),
    end: Optional[str] = Query(None, description="Inclusive end date (YYYY-MM-DD)."),
) -> DateRange:
    try:
        return resolve_date_range(start, end, default_days=get_settings().default_range_days)
    except InvalidDateRangeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


def get_utility_filter(
    utility_type: str = Query(ALL_UTILITIES, alias="type", description="electricity, gas, water or all."),
) -> str:
    if utility_type != ALL_UTILITIES and utility_type not in UTILITY_TYPE_VALUES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown utility type {utility_type!r}.",
        )
    return utility_type


def _validation_failed(exc: ReadingValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"errors": exc.errors},
    )


@router.get(
    "/readings",
    response_model=List[ReadingOut],
    summary="List the caller's readings within a date range.",
)
async def list_readings(
    owner_id: str = Depends(require_owner),
    date_range: DateRange = Depends(get_date_range),
    utility_type: str = Depends(get_utility_filter),
    service: ReadingService = Depends(get_reading_service),
) -> List[ReadingOut]:
    readings = service.list_readings(owner_id, date_range, utility_type)
    return [ReadingOut.from_record(reading) for reading in readings]


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingOut,
    summary="Log a new reading.",
)
async def create_reading(
    payload: ReadingCreate,
    owner_id: str = Depends(require_owner),
    service: ReadingService = Depends(get_reading_service),
) -> ReadingOut:
    try:
        reading = service.add_reading(owner_id, payload.model_dump())
    except ReadingValidationError as exc:
        raise _validation_failed(exc) from exc
    return ReadingOut.from_record(reading)


@router.get(
    "/readings/statistics",
    response_model=StatisticsOut,
    summary="Totals and daily averages per utility over a date range.",
)
async def reading_statistics(
    owner_id: str = Depends(require_owner),
    date_range: DateRange = Depends(get_date_range),
    service: ReadingService = Depends(get_reading_service),
) -> StatisticsOut:
    return StatisticsOut.from_record(service.statistics(owner_id, date_range))


@router.get(
    "/readings/chart",
    response_model=List[ChartPointOut],
    response_model_exclude_none=True,
    summary="Chart series with one point per date.",
)
async def reading_chart(
    owner_id: str = Depends(require_owner),
    date_range: DateRange = Depends(get_date_range),
    utility_type: str = Depends(get_utility_filter),
    service: ReadingService = Depends(get_reading_service),
) -> List[ChartPointOut]:
    points = service.chart(owner_id, date_range, utility_type)
    return [ChartPointOut.from_record(point) for point in points]


@router.patch(
    "/readings/{reading_id}",
    response_model=ReadingOut,
    summary="Change some fields of an existing reading.",
)
async def update_reading(
    reading_id: str,
    payload: ReadingUpdate,
    owner_id: str = Depends(require_owner),
    service: ReadingService = Depends(get_reading_service),
) -> ReadingOut:
    try:
        reading = service.update_reading(
            owner_id, reading_id, payload.model_dump(exclude_unset=True)
        )
    except ReadingValidationError as exc:
        raise _validation_failed(exc) from exc
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reading {reading_id} not found.",
        ) from exc
    return ReadingOut.from_record(reading)


@router.delete(
    "/readings/{reading_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a reading.",
)
async def delete_reading(
    reading_id: str,
    owner_id: str = Depends(require_owner),
    service: ReadingService = Depends(get_reading_service),
) -> Response:
    try:
        service.delete_reading(owner_id, reading_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reading {reading_id} not found.",
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/insights",
    response_model=InsightResponse,
    response_model_by_alias=True,
    summary="Generate a narrative summary and recommendations for readings.",
)
async def generate_insights(
    request: Request,
    owner_id: str = Depends(require_owner),
    orchestrator: InsightOrchestrator = Depends(get_orchestrator),
) -> InsightResponse:
    try:
        body = await request.json()
        payload = InsightRequest.model_validate(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid request: energyData array is required",
        ) from exc

    readings = [item.to_record(owner_id) for item in payload.energy_data]
    try:
        outcome = await run_in_threadpool(orchestrator.request_insights, readings)
    except NoDataError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    if not outcome.succeeded:
        raise HTTPException(
            status_code=_OUTCOME_STATUS[outcome.kind],
            detail=outcome.message,
        )

    return InsightResponse(
        summary=outcome.summary or "",
        recommendations=outcome.recommendations,
        generated_at=outcome.generated_at,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
