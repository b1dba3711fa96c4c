"""Alert endpoints: threshold CRUD, evaluation, and alert history."""

import time

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
import structlog

from src.alerts.service import AlertService
from src.api.dependencies import get_alert_service
from src.api.models import (
    AlertActionRequest,
    ApiResponse,
    ErrorResponse,
    ThresholdUpdateRequest,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get(
    "/alerts",
    response_model=ApiResponse,
    responses={500: {"model": ErrorResponse, "description": "Server error"}},
    summary="Alert summary, thresholds, or history",
    description=(
        "``type`` selects the payload: summary (default), thresholds, events "
        "(most recent first, up to ``limit``), or unacknowledged."
    ),
)
async def get_alerts(
    type: str = Query(default="summary", description="summary, thresholds, events, unacknowledged"),
    limit: int | None = Query(default=None, ge=0, le=1000, description="Maximum events to return"),
    service: AlertService = Depends(get_alert_service),
) -> ApiResponse:
    if type == "thresholds":
        thresholds = await service.registry.list()
        return ApiResponse(data=[t.to_dict() for t in thresholds])

    if type == "events":
        events = await service.get_events(limit)
        return ApiResponse(data=[e.to_dict() for e in events])

    if type == "unacknowledged":
        events = await service.get_unacknowledged()
        return ApiResponse(data=[e.to_dict() for e in events])

    summary = await service.get_summary()
    return ApiResponse(data=summary.to_dict())


@router.post(
    "/alerts",
    response_model=ApiResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown action or missing field"},
        422: {"model": ErrorResponse, "description": "Invalid threshold definition"},
    },
    summary="Create a threshold, evaluate metrics, or acknowledge alerts",
)
async def post_alert_action(
    request: AlertActionRequest,
    background_tasks: BackgroundTasks,
    service: AlertService = Depends(get_alert_service),
) -> ApiResponse:
    action = request.action

    if action == "create":
        if request.threshold is None:
            raise HTTPException(status_code=400, detail="'threshold' is required for create")
        try:
            threshold = await service.registry.create(request.threshold.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
        return ApiResponse(data=threshold.to_dict())

    if action == "evaluate":
        if request.metrics is None:
            raise HTTPException(status_code=400, detail="'metrics' is required for evaluate")
        start_time = time.perf_counter()
        events = await service.evaluate(request.metrics.to_metrics(), notify=False)
        if events:
            # Retries can take minutes; deliver after the response
            background_tasks.add_task(service.notify, events)
        summary = await service.get_summary()
        logger.info(
            "Thresholds evaluated",
            triggered=len(events),
            latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return ApiResponse(data={
            "triggered_alerts": [e.to_dict() for e in events],
            "summary": summary.to_dict(),
        })

    if action == "acknowledge":
        if not request.alert_id:
            raise HTTPException(status_code=400, detail="'alert_id' is required for acknowledge")
        acknowledged = await service.acknowledge(request.alert_id)
        return ApiResponse(data={"acknowledged": acknowledged})

    if action == "acknowledgeAll":
        count = await service.acknowledge_all()
        return ApiResponse(data={"acknowledged": count})

    raise HTTPException(status_code=400, detail=f"Invalid action {action!r}")


@router.put(
    "/alerts",
    response_model=ApiResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Threshold not found"},
        422: {"model": ErrorResponse, "description": "Invalid update"},
    },
    summary="Update a threshold",
)
async def update_threshold(
    request: ThresholdUpdateRequest,
    service: AlertService = Depends(get_alert_service),
) -> ApiResponse:
    try:
        updated = await service.registry.update(request.id, request.updates)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    if updated is None:
        raise HTTPException(status_code=404, detail="Threshold not found")
    return ApiResponse(data=updated.to_dict())


@router.delete(
    "/alerts",
    response_model=ApiResponse,
    responses={400: {"model": ErrorResponse, "description": "Missing threshold id"}},
    summary="Delete a threshold",
)
async def delete_threshold(
    id: str | None = Query(default=None, description="Threshold identifier"),
    service: AlertService = Depends(get_alert_service),
) -> ApiResponse:
    if not id:
        raise HTTPException(status_code=400, detail="Threshold ID required")
    deleted = await service.registry.delete(id)
    return ApiResponse(data={"deleted": deleted})
