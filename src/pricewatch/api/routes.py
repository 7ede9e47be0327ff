"""JSON endpoints for hourly statistics, alert registration, swap quotes and status."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from pricewatch.logging import get_logger

log = get_logger(__name__)

router = APIRouter()


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_str(item) for item in obj]
    return obj


class AlertRequest(BaseModel):
    asset_symbol: str
    target_price: Decimal
    email: str


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    """Service banner."""
    return "Price Watch API"


@router.get("/price/hourly")
async def get_hourly_prices(
    request: Request,
    asset_symbol: str = Query(..., description="Asset symbol, e.g. ETH"),
) -> JSONResponse:
    """Hour-of-day average/min/max USD price over the trailing 24h."""
    buckets = await request.app.state.query_service.get_hourly_prices(asset_symbol)
    return JSONResponse(content=[
        {
            "hour": b.hour_label,
            "average_price": str(b.average_price),
            "min_price": str(b.min_price),
            "max_price": str(b.max_price),
        }
        for b in buckets
    ])


@router.post("/price/alert", status_code=201)
async def set_alert(request: Request, body: AlertRequest) -> JSONResponse:
    """Register a threshold alert; the email is notified once the price rises above target."""
    rule = await request.app.state.query_service.set_alert(
        body.asset_symbol, body.target_price, body.email
    )
    log.info("alert_registered_via_api", rule_id=rule.id, asset_symbol=rule.asset_symbol)
    return JSONResponse(status_code=201, content={"message": "success", "id": rule.id})


@router.get("/price/swap")
async def get_swap_rate(
    request: Request,
    source_amount: Decimal = Query(..., description="Amount of the source asset to swap"),
) -> JSONResponse:
    """Swap quote with the fee charged in the source asset."""
    quote = await request.app.state.query_service.get_swap_rate(source_amount)
    return JSONResponse(content=_decimal_to_str({
        "output_amount": quote.output_amount,
        "fee_in_source_asset": quote.fee_in_source_asset,
        "fee_in_usd": quote.fee_in_usd,
    }))


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Scheduler status and last cycle summary."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return JSONResponse(content={"running": False})
    return JSONResponse(content=scheduler.get_status())
