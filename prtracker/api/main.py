"""FastAPI main application."""
import logging
from datetime import date, datetime
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, ConfigDict, Field

from prtracker.config import Config, config
from prtracker.exceptions import (
    BackendUnavailableError,
    DuplicatePRNumberError,
    WriteFailureError,
)
from prtracker.models import Availability, DashboardStats, PRRecord
from prtracker.service import (
    PRService,
    dashboard_stats,
    export_csv,
    filter_records,
    format_pr_number,
    new_record,
)
from prtracker.store.factory import build_store

logger = logging.getLogger(__name__)

app = FastAPI(title="PR Tracker API", version="0.1.0")

# API Key security (if configured)
API_KEY_HEADER = APIKeyHeader(name="X-API-KEY", auto_error=False)


def get_config() -> Config:
    return config


def verify_api_key(
    api_key: Optional[str] = Depends(API_KEY_HEADER),
    cfg: Config = Depends(get_config),
) -> bool:
    """Verify API key if configured."""
    if cfg.API_KEY and api_key != cfg.API_KEY:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return True


async def get_service(cfg: Config = Depends(get_config)) -> AsyncIterator[PRService]:
    """One store per request, closed afterwards."""
    async with build_store(cfg) as store:
        yield PRService(store)


class NewRecordRequest(BaseModel):
    """Fields the caller fills in; id and timestamp are assigned here."""

    model_config = ConfigDict(populate_by_name=True)

    pr_number: str = Field(..., alias="prNumber")
    date: str
    requested_by: str = Field(..., alias="requestedBy")
    vendor: str = ""
    description: str = ""


class SequenceResponse(BaseModel):
    year: str
    sequence: str
    pr_number: str = Field(..., serialization_alias="prNumber")


def _duplicate(e: DuplicatePRNumberError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


@app.exception_handler(BackendUnavailableError)
async def backend_unavailable_handler(request, exc: BackendUnavailableError):
    logger.error(f"Remote backend unavailable: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
async def health(cfg: Config = Depends(get_config)):
    """Health check endpoint (no auth required)."""
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "remote" if cfg.use_remote else "local",
    }


@app.get("/records", response_model=list[PRRecord], response_model_by_alias=True)
async def list_records(
    search: str = "",
    user: Optional[str] = None,
    month: str = "",
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    """List records newest first, with the dashboard filters."""
    return filter_records(await service.list_records(), search, user, month)


@app.post("/records", response_model=PRRecord, status_code=201, response_model_by_alias=True)
async def create_record(
    request: NewRecordRequest,
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    """Create a record after the duplicate check."""
    record = new_record(
        pr_number=request.pr_number,
        pr_date=request.date,
        requested_by=request.requested_by,
        vendor=request.vendor,
        description=request.description,
    )
    try:
        await service.save(record)
    except DuplicatePRNumberError as e:
        raise _duplicate(e) from e
    except WriteFailureError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return record


@app.put("/records/{record_id}", response_model=PRRecord, response_model_by_alias=True)
async def update_record(
    record_id: str,
    record: PRRecord,
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    """Replace a record; the path id wins over the body id."""
    record = record.model_copy(update={"id": record_id})
    try:
        await service.update(record)
    except DuplicatePRNumberError as e:
        raise _duplicate(e) from e
    except WriteFailureError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return record


@app.delete("/records/{record_id}", status_code=204)
async def delete_record(
    record_id: str,
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    try:
        await service.delete(record_id)
    except WriteFailureError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


@app.get("/availability", response_model=Availability, response_model_by_alias=True)
async def check_availability(
    pr_number: str = Query(..., alias="prNumber"),
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    return await service.check_availability(pr_number)


@app.get("/sequence/{year}", response_model=SequenceResponse)
async def next_sequence(
    year: str,
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    """Next proposed sequence for a year."""
    sequence = await service.next_sequence(year)
    return SequenceResponse(year=year, sequence=sequence, pr_number=format_pr_number(year, sequence))


@app.get("/stats", response_model=DashboardStats, response_model_by_alias=True)
async def stats(
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    return dashboard_stats(await service.list_all())


@app.get("/export.csv", response_class=PlainTextResponse)
async def export(
    service: PRService = Depends(get_service),
    _: bool = Depends(verify_api_key),
):
    """Download all records as CSV."""
    content = export_csv(await service.list_records())
    filename = f"pr_export_{date.today().isoformat()}.csv"
    return PlainTextResponse(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn
    config.validate()
    uvicorn.run(app, host="0.0.0.0", port=8000)
