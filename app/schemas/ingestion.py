# app/schemas/ingestion.py
from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional


class IngestionRunIn(BaseModel):
    start_date: Optional[date] = None   # defaults to today
    end_date: Optional[date] = None     # defaults to start_date


class IngestionOutcomeOut(BaseModel):
    status: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    fetched: int = 0
    inserted: int = 0
    currently_parked: Optional[int] = None
    error: Optional[str] = None


class IngestionStateOut(BaseModel):
    running: bool
    provider_authenticated: bool
    last_update_time: Optional[datetime]
