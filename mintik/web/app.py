from datetime import datetime
import logging
from typing import Any, Dict

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from mintik.context import AppContext
from mintik.services.errors import ConfigError

logger = logging.getLogger(__name__)

def _parse_date(value: str):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")

def create_app(context: AppContext) -> FastAPI:
    """JSON read surface and commands over a running context"""
    app = FastAPI(title="MinTik")

    @app.get("/api/state")
    async def get_state():
        """Everything a status popover needs"""
        return context.published_state()

    @app.get("/api/days")
    async def list_days():
        return {"days": context.daily_store.date_keys()}

    @app.get("/api/days/{date}")
    async def get_day(date: str):
        day = context.get_daily_data(_parse_date(date))
        if day is None:
            raise HTTPException(status_code=404, detail=f"No data for {date}")
        return day.to_dict()

    @app.get("/api/metrics/daily/{date}")
    async def get_daily_metrics(date: str):
        """Get metrics for a specific date"""
        day = _parse_date(date)
        try:
            return context.metrics.get_daily_metrics(day)
        except Exception as e:
            logger.error(f"Error getting daily metrics: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/api/metrics/range")
    async def get_metrics_range(start: str, end: str):
        """Get metrics for a date range"""
        start_date, end_date = _parse_date(start), _parse_date(end)
        if end_date < start_date:
            raise HTTPException(status_code=400, detail="End date precedes start date")
        try:
            return context.metrics.export_timeframe(start_date, end_date)
        except Exception as e:
            logger.error(f"Error getting metrics range: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.patch("/api/config")
    async def update_config(changes: Dict[str, Any] = Body(...)):
        try:
            config = context.set_config(changes)
        except ConfigError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return config.to_dict()

    @app.post("/api/selected-date/{date}")
    async def select_date(date: str):
        context.select_date(_parse_date(date))
        return {"selectedDate": date}

    @app.post("/api/onboarding/complete")
    async def complete_onboarding():
        context.complete_onboarding()
        return {"isFirstLaunch": False}

    @app.post("/api/reset")
    async def reset():
        context.clear_all_data()
        return {"status": "cleared"}

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=404,
            content={"detail": getattr(exc, "detail", "Not found")}
        )

    return app
