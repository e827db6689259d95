from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from payouts.batcher import next_payout_date, run_payouts
from payouts.clock import Clock, SystemClock
from payouts.config import setup_logging
from payouts.errors import (
    ConfigurationError,
    DoubleAssignmentError,
    IneligibleTransactionError,
    WithdrawalError,
)
from payouts.export import select_for_export
from payouts.fees import withdrawal_quote
from payouts.models import AccountDetails, PayoutConfiguration, PayoutStatus, TimeFilter, WithdrawalRequest
from payouts.projection import project
from payouts.ranking import rank_listings
from payouts.store import store
from payouts.summary import available_balance, summarize


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-seed on startup so the service is immediately usable
    from scripts.seed_data import seed
    setup_logging()
    seed(store)
    yield


app = FastAPI(
    title="Marketplace Payouts Service",
    version="1.0.0",
    description="Seller fee, summary and payout engine for the marketplace",
    lifespan=lifespan,
)


def get_clock() -> Clock:
    return SystemClock()


def _seller_transactions(seller_id: str):
    if seller_id not in store.list_sellers():
        raise HTTPException(404, f"Seller '{seller_id}' not found")
    return store.get_transactions_for_seller(seller_id)


# ── Sellers ──────────────────────────────────────────────────────────────────

@app.get("/api/v1/sellers", summary="List sellers with listings")
def list_sellers():
    return {"sellers": store.list_sellers()}


@app.get("/api/v1/sellers/{seller_id}/summary", summary="Financial summary for a time window")
def get_summary(
    seller_id: str,
    time_filter: TimeFilter = Query(TimeFilter.LAST_30D),
    clock: Clock = Depends(get_clock),
):
    txns = _seller_transactions(seller_id)
    result = summarize(txns, time_filter, clock.now(), store.schedule.monthly_target)
    return result.model_dump()


@app.get("/api/v1/sellers/{seller_id}/listings/top", summary="Listings ranked by net earnings")
def get_top_listings(seller_id: str, limit: Optional[int] = Query(None, ge=1)):
    txns = _seller_transactions(seller_id)
    ranked = rank_listings(txns, seller_id, store.owner_of, limit)
    return {"listings": [p.model_dump() for p in ranked]}


@app.get("/api/v1/sellers/{seller_id}/projection", summary="Projected earnings from confirmed bookings")
def get_projection(
    seller_id: str,
    listing_id: Optional[str] = None,
    clock: Clock = Depends(get_clock),
):
    _seller_transactions(seller_id)
    bookings = store.get_bookings_for_seller(seller_id)
    return project(bookings, clock.now(), listing_id, store.schedule).model_dump()


@app.get("/api/v1/sellers/{seller_id}/export", summary="Rows selected for a transaction export")
def get_export_rows(
    seller_id: str,
    period: str = Query("month", examples=["week", "month", "3months", "all"]),
    clock: Clock = Depends(get_clock),
):
    txns = _seller_transactions(seller_id)
    try:
        rows = select_for_export(txns, period, clock.now())
    except ConfigurationError as exc:
        raise HTTPException(400, str(exc))
    return {"rows": rows}


# ── Payouts ──────────────────────────────────────────────────────────────────

@app.put("/api/v1/sellers/{seller_id}/payout-account", summary="Set where a seller's payouts are sent")
def put_payout_account(seller_id: str, account: AccountDetails):
    _seller_transactions(seller_id)
    store.set_payout_account(seller_id, account)
    return account.model_dump()


@app.get("/api/v1/sellers/{seller_id}/payouts", summary="Payout history for a seller")
def list_payouts(seller_id: str, status: Optional[PayoutStatus] = None):
    _seller_transactions(seller_id)
    records = [p for p in store.payouts(seller_id) if status is None or p.status == status]
    records.sort(key=lambda p: p.initiated_date, reverse=True)
    return {"payouts": [p.model_dump() for p in records]}


@app.post("/api/v1/sellers/{seller_id}/payouts/run", summary="Batch a seller's settled transactions into payouts")
def post_payout_run(
    seller_id: str,
    config: PayoutConfiguration,
    flush_partial: bool = False,
    clock: Clock = Depends(get_clock),
):
    _seller_transactions(seller_id)
    try:
        records = run_payouts(store, seller_id, config, clock, flush_partial=flush_partial)
    except ConfigurationError as exc:
        raise HTTPException(400, str(exc))
    except (DoubleAssignmentError, IneligibleTransactionError) as exc:
        raise HTTPException(409, str(exc))
    return {"payouts": [p.model_dump() for p in records]}


@app.post("/api/v1/sellers/{seller_id}/withdrawals/quote", summary="Fee and net for a withdrawal")
def post_withdrawal_quote(
    seller_id: str,
    request: WithdrawalRequest,
    clock: Clock = Depends(get_clock),
):
    txns = _seller_transactions(seller_id)
    available = available_balance(txns, clock.now())
    try:
        quote = withdrawal_quote(request.amount, request.method, available, store.schedule)
    except (ConfigurationError, WithdrawalError) as exc:
        raise HTTPException(400, str(exc))
    return quote.model_dump()


@app.post("/api/v1/payouts/next-date", summary="Next scheduled payout date")
def post_next_payout_date(config: PayoutConfiguration, clock: Clock = Depends(get_clock)):
    try:
        at = next_payout_date(config, clock.now())
    except ConfigurationError as exc:
        raise HTTPException(400, str(exc))
    return {"next_payout_date": at}


# ── Admin ─────────────────────────────────────────────────────────────────────

@app.post("/api/v1/admin/seed", summary="Re-seed test data")
def reseed(clock: Clock = Depends(get_clock)):
    from scripts.seed_data import seed
    store.clear()
    seed(store, clock.now())
    return {
        "status": "seeded",
        "sellers": len(store.list_sellers()),
        "transactions": len(store.transactions),
    }
