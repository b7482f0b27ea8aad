"""Public abuse report route declarations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from dependencies import get_client_ip, get_db, get_notifier
from services.discord_service import DiscordNotifier
from services.moderation_service import ModerationServiceError, submit_report

router = APIRouter(prefix="/api", tags=["reports"])


class ReportRequest(BaseModel):
    image: str = Field(..., min_length=1, max_length=32)
    reason: str = Field(..., min_length=1, max_length=2000)


@router.post("/reports", status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: ReportRequest,
    db: Session = Depends(get_db),
    notifier: DiscordNotifier = Depends(get_notifier),
    ip: str = Depends(get_client_ip),
) -> dict[str, str]:
    try:
        report = await run_in_threadpool(submit_report, db, payload.image, payload.reason, ip)
    except ModerationServiceError as exc:
        message = str(exc)
        status_code = status.HTTP_404_NOT_FOUND if message.startswith("No image") else status.HTTP_422_UNPROCESSABLE_ENTITY
        raise HTTPException(status_code=status_code, detail=message) from exc

    notifier.dispatch(notifier.notify_report_submitted(report), "report_submitted")
    return {"message": "Report submitted", "report_id": str(report.id)}
