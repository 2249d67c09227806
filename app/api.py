"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.schemas import (
    ErrorResponse,
    LatestReadingResponse,
    MessageResponse,
    SaveReadingRequest,
)
from datastore.mongo import ReadingStore, StoreError
from models.records import SensorReading

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_READING_MESSAGE = "Missing or invalid device_id or temperature."
MISSING_DEVICE_MESSAGE = "Missing device ID query parameter."
NO_DATA_MESSAGE = "No data found for this device."
SAVE_FAILED_MESSAGE = "Failed to save data to database."
FETCH_FAILED_MESSAGE = "Failed to retrieve data from database."


def get_store(request: Request) -> ReadingStore:
    return request.app.state.store


# Handlers are plain functions: FastAPI runs them on its worker threads, so a
# blocking pymongo call only holds up its own request.
@router.post(
    "/api/v1/data/save",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    summary="Store one reading pushed by a device.",
)
def save_reading(
    payload: SaveReadingRequest,
    store: ReadingStore = Depends(get_store),
) -> MessageResponse:
    reading = SensorReading(device_id=payload.device_id, temperature=payload.temperature)
    try:
        record_id = store.insert(reading)
    except StoreError as exc:
        logger.exception(
            "[SAVE] Database write error",
            extra={"device_id": reading.device_id, "status_code": 500},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SAVE_FAILED_MESSAGE,
        ) from exc

    logger.info(
        "[SAVE] Data received and stored",
        extra={
            "device_id": reading.device_id,
            "temperature": reading.temperature,
            "record_id": record_id,
            "status_code": 201,
        },
    )
    return MessageResponse(message="Data saved successfully.")


@router.get(
    "/api/v1/data/latest",
    response_model=LatestReadingResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    summary="Fetch the most recent reading for a device.",
)
def get_latest_reading(
    device: Optional[str] = Query(None, description="Device identifier."),
    store: ReadingStore = Depends(get_store),
) -> LatestReadingResponse:
    device_id = (device or "").strip()
    if not device_id:
        logger.warning(
            "[FETCH] Rejected request", extra={"reason": "missing device", "status_code": 400}
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=MISSING_DEVICE_MESSAGE,
        )

    try:
        reading = store.find_latest(device_id)
    except StoreError as exc:
        logger.exception(
            "[FETCH] Database read error",
            extra={"device_id": device_id, "status_code": 500},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=FETCH_FAILED_MESSAGE,
        ) from exc

    if reading is None:
        logger.info("[FETCH] No data found", extra={"device_id": device_id, "status_code": 404})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=NO_DATA_MESSAGE,
        )

    logger.info(
        "[FETCH] Sent latest reading",
        extra={"device_id": device_id, "temperature": reading.temperature, "status_code": 200},
    )
    return LatestReadingResponse(temperature=reading.temperature, timestamp=reading.timestamp)


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
