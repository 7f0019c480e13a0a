import logging
import uuid
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from tickerdeck.core.config import settings
from tickerdeck.hotkeys.interpreter import InterpreterConfig
from tickerdeck.hotkeys.scheduler import AsyncioScheduler
from tickerdeck.hotkeys.session import KeyEvent, KeyTarget
from tickerdeck.persistence.db import DB, utc_now_iso
from tickerdeck.persistence.logger import EventLogger
from tickerdeck.persistence.trade_log import SORT_COLUMNS, TradeLogStore, to_csv
from tickerdeck.trading.desk import TradingDesk
from tickerdeck.trading.executor import TradeExecutor
from tickerdeck.trading.models import TradingMessage

log = logging.getLogger("tickerdeck.api")

app = FastAPI(title="TickerDeck Hotkey Desk")
desk_instance: TradingDesk | None = None


class MessageIn(BaseModel):
    id: Optional[str] = None
    sender: str = ""
    name: str = ""
    tickers: List[str] = Field(default_factory=list)
    title: Optional[str] = None
    content: Optional[str] = None
    timestamp: Optional[str] = None


class KeyIn(BaseModel):
    key: str
    target: KeyTarget = KeyTarget.DOCUMENT


@app.on_event("startup")
async def _startup_validate_config():
    """Fail-fast config validation at startup."""
    try:
        warnings = settings.validate_runtime()
        logging.basicConfig(level=settings.LOG_LEVEL)
        for w in warnings:
            print(f"[CONFIG WARNING] {w}")
    except ValueError as e:
        # Fail-closed: refuse to start with a broken key map
        print(str(e))
        raise


@app.on_event("shutdown")
async def _shutdown_desk():
    if desk_instance is not None:
        desk_instance.session.reset()
        print("[DESK] timers cancelled")


def get_desk() -> TradingDesk:
    """Built lazily so the scheduler binds to the running event loop."""
    global desk_instance

    if desk_instance is None:
        db = DB(settings.DB_PATH)
        desk_instance = TradingDesk(
            executor=TradeExecutor(TradeLogStore(db)),
            scheduler=AsyncioScheduler(),
            user_id=settings.OPERATOR_ID,
            share_amount=settings.DEFAULT_SHARE_AMOUNT,
            config=InterpreterConfig.from_settings(settings),
            events=EventLogger(db),
        )
        print(f"[DESK] ready user={settings.OPERATOR_ID} db={settings.DB_PATH}")

    return desk_instance


@app.get("/")
def root():
    return {
        "status": "ok",
        "service": "tickerdeck",
        "desk_ready": desk_instance is not None,
    }


@app.get("/debug/settings")
def debug_settings():
    """
    Show loaded settings so we can confirm key bindings and debounce windows.
    """
    return {
        "KEY_BINDINGS": settings.key_bindings(),
        "TRADE_DEBOUNCE_MS": settings.TRADE_DEBOUNCE_MS,
        "TICKER_BUFFER_TIMEOUT_MS": settings.TICKER_BUFFER_TIMEOUT_MS,
        "DISABLE_WINDOW_MS": settings.DISABLE_WINDOW_MS,
        "DEFAULT_SHARE_AMOUNT": settings.DEFAULT_SHARE_AMOUNT,
        "OPERATOR_ID": settings.OPERATOR_ID,
        "DB_PATH": settings.DB_PATH,
    }


@app.post("/messages")
async def show_message(body: MessageIn):
    message = TradingMessage(
        id=body.id or str(uuid.uuid4()),
        sender=body.sender.strip(),
        name=body.name.strip(),
        tickers=[t.strip() for t in body.tickers if t.strip()],
        title=body.title,
        content=body.content,
        timestamp=body.timestamp,
    )
    missing = message.validate()
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid message format: missing {', '.join(missing)}",
        )

    desk = get_desk()
    shown = desk.show_message(message)
    return {"shown": shown, **desk.snapshot()}


@app.delete("/messages/current")
async def dismiss_message():
    desk = get_desk()
    if desk.message is None:
        raise HTTPException(status_code=404, detail="No active message")
    desk.dismiss()
    return desk.snapshot()


@app.post("/keys")
async def press_key(body: KeyIn):
    desk = get_desk()
    forwarded = desk.handle_event(KeyEvent(key=body.key, target=body.target))
    if not forwarded:
        log.debug("key %r from %s not forwarded", body.key, body.target.value)
    return {"forwarded": forwarded, **desk.snapshot()}


@app.get("/desk")
async def desk_state():
    return get_desk().snapshot()


@app.post("/desk/ticker/{index}")
async def desk_select_ticker(index: int):
    desk = get_desk()
    if not desk.select_ticker(index):
        raise HTTPException(status_code=400, detail=f"Ticker {index} not selectable")
    return desk.snapshot()


@app.post("/desk/shares/{amount}")
async def desk_set_shares(amount: int):
    desk = get_desk()
    if not desk.set_share_amount(amount):
        raise HTTPException(status_code=400, detail="Share amount must be > 0")
    return desk.snapshot()


SORT_PATTERN = "^(" + "|".join(SORT_COLUMNS) + ")$"


@app.get("/logs/trades")
async def logs_trades(
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    ticker: Optional[str] = None,
    action: Optional[str] = Query(default=None, pattern="^(buy|sell)$"),
    sort: str = Query(default="timestamp", pattern=SORT_PATTERN),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = 200,
):
    store = get_desk().executor.trade_log
    filters = dict(user_id=user_id, start=start, end=end, ticker=ticker, action=action)
    logs = store.query(sort=sort, order=order, limit=max(1, min(limit, 1000)), **filters)
    return {
        "count": len(logs),
        "stats": store.stats(**filters),
        "logs": [entry.__dict__ for entry in logs],
    }


@app.get("/logs/trades.csv")
async def logs_trades_csv(
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    ticker: Optional[str] = None,
    action: Optional[str] = Query(default=None, pattern="^(buy|sell)$"),
    sort: str = Query(default="timestamp", pattern=SORT_PATTERN),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
):
    logs = get_desk().executor.trade_log.query(
        user_id=user_id,
        start=start,
        end=end,
        ticker=ticker,
        action=action,
        sort=sort,
        order=order,
    )
    filename = f"trading-logs-{utc_now_iso()[:10]}.csv"
    return Response(
        content=to_csv(logs),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/logs/events/tail")
async def logs_events_tail(limit: int = 50):
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    desk = get_desk()
    if desk.events is None:
        return {"count": 0, "events": []}

    events = desk.events.tail(limit)[::-1]
    return {"count": len(events), "events": events}
