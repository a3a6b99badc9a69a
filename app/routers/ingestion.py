# app/routers/ingestion.py
"""Manual "crawl now" trigger. Goes through the same single-flight job as the scheduler."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from app.database import get_db
from app.services import event_store
from app.services.ingestion import IngestionJob, get_ingestion_job
from app.schemas.ingestion import IngestionRunIn, IngestionOutcomeOut, IngestionStateOut
from app.utils.dates import DATE_FORMAT

router = APIRouter()


@router.post("/ingestion/run", response_model=IngestionOutcomeOut, summary="Run ingestion now")
async def run_ingestion(body: Optional[IngestionRunIn] = None, job: IngestionJob = Depends(get_ingestion_job)):
    """
    Returns status=skipped if a run is already in progress.
    Failures are reported in the body (status=failed), not as HTTP errors.
    """
    body = body or IngestionRunIn()
    start = body.start_date.strftime(DATE_FORMAT) if body.start_date else None
    end = body.end_date.strftime(DATE_FORMAT) if body.end_date else None
    return await job.run(start, end)


@router.get("/ingestion/state", response_model=IngestionStateOut, summary="Is a run in progress?")
def ingestion_state(db: Session = Depends(get_db), job: IngestionJob = Depends(get_ingestion_job)):
    return {
        "running": job.is_running,
        "provider_authenticated": job.client.is_authenticated,
        "last_update_time": event_store.last_update_time(db),
    }
