"""
Grid Bot Control API Server

FastAPI server exposing status, history and control of the running grid bot.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from strategies.control.strategy_controller import BaseStrategyController


API_VERSION = "0.1.0"


# Request Models
class ConfigUpdateRequest(BaseModel):
    """Partial grid config update; camelCase keys are accepted too."""

    model_config = ConfigDict(extra="forbid")

    lower_price: Optional[Decimal] = Field(None, validation_alias=AliasChoices("lower_price", "lowerPrice"))
    upper_price: Optional[Decimal] = Field(None, validation_alias=AliasChoices("upper_price", "upperPrice"))
    levels: Optional[int] = None
    amount_per_grid: Optional[Decimal] = Field(
        None, validation_alias=AliasChoices("amount_per_grid", "amountPerGrid")
    )
    slippage_bps: Optional[int] = Field(None, validation_alias=AliasChoices("slippage_bps", "slippageBps"))
    coin_type_a: Optional[str] = Field(None, validation_alias=AliasChoices("coin_type_a", "coinTypeA"))
    coin_type_b: Optional[str] = Field(None, validation_alias=AliasChoices("coin_type_b", "coinTypeB"))

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ControlRequest(BaseModel):
    command: str


ENDPOINTS = [
    {"method": "GET", "path": "/status", "description": "Get bot status"},
    {"method": "GET", "path": "/price", "description": "Get current market price"},
    {"method": "GET", "path": "/history", "description": "Get trade history"},
    {"method": "GET", "path": "/quotes", "description": "Get quote history"},
    {"method": "GET", "path": "/config", "description": "Get grid config"},
    {"method": "POST", "path": "/config", "description": "Update grid config"},
    {"method": "POST", "path": "/control", "description": "Control bot (start/stop/pause/resume/reset)"},
    {"method": "GET", "path": "/logs", "description": "Get logs"},
]


app = FastAPI(
    title="GridVault Bot API",
    description="REST API for monitoring and controlling the grid bot",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Populated by the launcher once the bot is built
_strategy_controller: Optional[BaseStrategyController] = None


def set_strategy_controller(controller: Optional[BaseStrategyController]) -> None:
    """Set the strategy controller (called by the launcher)."""
    global _strategy_controller
    _strategy_controller = controller


def require_strategy_controller() -> BaseStrategyController:
    """Get the strategy controller, raising 503 if no bot is attached."""
    if _strategy_controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bot not available",
        )
    return _strategy_controller


def _validation_detail(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" if err["loc"] else err["msg"]
        for err in exc.errors()
    )


@app.get("/")
async def root() -> Dict[str, Any]:
    return {"name": "GridVault Bot API", "version": API_VERSION, "endpoints": ENDPOINTS}


@app.get("/status")
async def get_status() -> Dict[str, Any]:
    controller = require_strategy_controller()
    return await controller.get_status()


@app.get("/price")
async def get_price() -> Dict[str, Any]:
    controller = require_strategy_controller()
    return await controller.get_market_price()


@app.get("/history")
async def get_history(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> Dict[str, Any]:
    controller = require_strategy_controller()
    return await controller.get_trades(limit=limit, offset=offset)


@app.get("/quotes")
async def get_quotes(
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    side: Optional[str] = Query(None),
) -> Dict[str, Any]:
    controller = require_strategy_controller()
    if side not in ("A2B", "B2A"):
        side = None
    return await controller.get_quotes(limit=limit, offset=offset, side=side)


@app.get("/config")
async def get_config() -> Dict[str, Any]:
    controller = require_strategy_controller()
    return {"config": controller.get_config()}


@app.post("/config")
async def update_config(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """
    Update the grid config.

    Invalid fields or an invalid resulting config (``levels`` outside
    [2, 100], ``lower_price >= upper_price`` ...) are rejected with 400 and
    leave the active config untouched.
    """
    controller = require_strategy_controller()
    try:
        changes = ConfigUpdateRequest.model_validate(payload).changes()
        config = await controller.update_config(changes)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_validation_detail(e))
    return {"success": True, "config": config}


@app.post("/control")
async def control(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    controller = require_strategy_controller()
    try:
        request = ControlRequest.model_validate(payload)
        return await controller.control(request.command)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_validation_detail(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@app.get("/logs")
async def get_logs(
    limit: int = Query(100, ge=1, le=1000),
    level: Optional[str] = Query(None),
) -> Dict[str, Any]:
    controller = require_strategy_controller()
    return await controller.get_logs(limit=limit, level=level)
