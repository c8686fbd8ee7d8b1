"""
FastAPI application for the EPL Bet Simulator
Includes REST API, scheduled settlement, and upstream sync
"""

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import text
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import Optional
import logging
import os

import requests

from backend.models import get_db, Bet, Match, SessionLocal
from backend.auth import verify_api_key, verify_admin_api_key
from backend.core.pricing_config import PricingConfig
from backend.core.settlement import BetAlreadySettledError
from backend.services.bet_tracker import (
    BetError,
    BetNotFoundError,
    InsufficientBalanceError,
    MatchNotFoundError,
    MatchNotOpenError,
    MatchNotPriceableError,
    get_or_create_user,
    place_bet,
    settle_finished_matches,
    void_bet,
    void_match,
)
from backend.services.head_to_head import get_head_to_head
from backend.services.pricing import price_match
from backend.services.sync import SyncError, sync_matches, sync_standings
from backend.schemas import (
    BetCreate,
    BetListResponse,
    BetPlacedResponse,
    BetResponse,
    MatchOddsResponse,
    MatchResponse,
    SettlementResponse,
    SyncResponse,
    UserResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = BackgroundScheduler()

# Weights and draw share used for every price this process quotes
PRICING = PricingConfig.default()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("🚀 Starting EPL Bet Simulator")

    settle_interval = int(os.getenv("SETTLE_INTERVAL_MIN", "10"))

    # Refresh match results, then settle open bets on finished matches
    scheduler.add_job(
        _settle_job,
        IntervalTrigger(minutes=settle_interval),
        id="settle_bets",
        name="Settle Finished Matches",
        replace_existing=True,
    )

    # Keep the standings cache warm so prices track the table
    scheduler.add_job(
        _standings_job,
        IntervalTrigger(hours=1),
        id="sync_standings",
        name="Sync Standings",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started: settlement every %dmin, standings hourly", settle_interval)

    yield

    logger.info("👋 Shutting down EPL Bet Simulator")
    scheduler.shutdown()


app = FastAPI(
    title="EPL Bet Simulator",
    description="Virtual-currency betting on Premier League matches",
    version="1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
        if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# SCHEDULED JOBS
# ============================================================================

def _settle_job():
    """Sync match results and settle bets every SETTLE_INTERVAL_MIN minutes."""
    db = SessionLocal()
    try:
        sync_matches(db)
    except Exception as exc:
        logger.error("Match sync before settlement failed: %s", exc, exc_info=True)
    finally:
        db.close()

    try:
        results = settle_finished_matches()
        logger.info("Settlement: %s", results)
    except Exception as exc:
        logger.error("Settlement job failed: %s", exc, exc_info=True)


def _standings_job():
    """Refresh the standings cache every hour."""
    db = SessionLocal()
    try:
        sync_standings(db)
    except Exception as exc:
        logger.error("Standings job failed: %s", exc, exc_info=True)
    finally:
        db.close()


# ============================================================================
# HELPERS
# ============================================================================

def _bet_error_status(exc: Exception) -> int:
    if isinstance(exc, (MatchNotFoundError, BetNotFoundError)):
        return 404
    if isinstance(exc, (MatchNotOpenError, BetAlreadySettledError)):
        return 409
    if isinstance(exc, MatchNotPriceableError):
        return 422
    return 400


def _get_match_or_404(db: Session, match_id: int) -> Match:
    match = db.get(Match, match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def _bet_to_response(b: Bet) -> BetResponse:
    return BetResponse(
        id=b.id,
        match_id=b.match_id,
        user_selection=b.user_selection,
        user_team=b.user_team,
        amount=b.amount,
        odds=b.odds,
        is_settled=b.is_settled,
        result=b.result,
        won_amount=b.won_amount,
        created_at=b.created_at,
        settled_at=b.settled_at,
        match=MatchResponse.from_orm_match(b.match) if b.match else None,
    )


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "EPL Bet Simulator",
        "version": "1.0",
        "status": "operational",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected", "scheduler": "running"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    if not scheduler.running:
        health["status"] = "degraded"
        health["scheduler"] = "stopped"

    return health


# ============================================================================
# AUTHENTICATED ENDPOINTS - SYNC
# ============================================================================

@app.post("/api/sync-matches", response_model=SyncResponse)
async def sync_matches_route(
    force: bool = Query(default=False),
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Refresh cached Premier League fixtures unless the cache is fresh."""
    try:
        return sync_matches(db, force=force)
    except SyncError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except ValueError as exc:
        # Missing API key
        raise HTTPException(status_code=503, detail=str(exc))


@app.post("/api/sync-standings", response_model=SyncResponse)
async def sync_standings_route(
    force: bool = Query(default=False),
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Refresh the cached league table unless the cache is fresh."""
    try:
        return sync_standings(db, force=force)
    except SyncError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


# ============================================================================
# AUTHENTICATED ENDPOINTS - MATCHES
# ============================================================================

@app.get("/api/fetch-matches", response_model=list[MatchResponse])
async def fetch_matches(
    match_date: Optional[date] = Query(default=None, alias="date"),
    status: Optional[str] = Query(default=None, description="e.g. SCHEDULED, FINISHED"),
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Cached fixtures in kickoff order, optionally for one UTC day or status."""
    query = db.query(Match)
    if match_date is not None:
        day_start = datetime(match_date.year, match_date.month, match_date.day)
        query = query.filter(
            Match.utc_date >= day_start,
            Match.utc_date < day_start + timedelta(days=1),
        )
    if status:
        query = query.filter(Match.status == status.upper())

    matches = query.order_by(Match.utc_date.asc()).all()
    return [MatchResponse.from_orm_match(m) for m in matches]


@app.get("/api/matches/{match_id}/odds", response_model=MatchOddsResponse)
async def get_match_odds(
    match_id: int,
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Standings-derived home/draw/away decimal odds."""
    match = _get_match_or_404(db, match_id)
    priced = price_match(db, match, PRICING)
    if priced is None:
        raise HTTPException(
            status_code=422,
            detail="Insufficient data to price this match",
        )
    return priced


@app.get("/api/matches/{match_id}/head-to-head")
async def get_match_head_to_head(
    match_id: int,
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Previous meetings, summarised with this match's home side as 'home'."""
    match = _get_match_or_404(db, match_id)
    try:
        return get_head_to_head(match)
    except requests.exceptions.RequestException as exc:
        logger.error("Head-to-head fetch failed for match %d: %s", match_id, exc)
        raise HTTPException(status_code=502, detail="Upstream head-to-head request failed")
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


# ============================================================================
# AUTHENTICATED ENDPOINTS - BETS
# ============================================================================

@app.post("/api/place-bet", response_model=BetPlacedResponse)
async def place_bet_route(
    bet_data: BetCreate,
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Place a bet at the current price; the stake is debited immediately."""
    try:
        bet = place_bet(
            db,
            user_id=user,
            match_id=bet_data.match_id,
            selection=bet_data.selection,
            amount=bet_data.amount,
            team=bet_data.team,
            config=PRICING,
        )
    except BetError as exc:
        db.rollback()
        raise HTTPException(status_code=_bet_error_status(exc), detail=str(exc))

    return BetPlacedResponse(
        message="Bet placed successfully",
        bet_id=bet.id,
        match_id=bet.match_id,
        selection=bet.user_selection,
        odds=bet.odds,
        amount=bet.amount,
        potential_payout=round(bet.amount * bet.odds, 2),
        balance=bet.user.balance,
    )


@app.get("/api/fetch-bets", response_model=BetListResponse)
async def fetch_bets(
    status: str = Query(default="all", description="all | open | settled"),
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """The caller's bets, newest first, each with its match."""
    query = (
        db.query(Bet)
        .filter(Bet.user_id == user)
        .options(joinedload(Bet.match))
    )

    if status == "open":
        query = query.filter(Bet.is_settled.is_(False))
    elif status == "settled":
        query = query.filter(Bet.is_settled.is_(True))

    bets = query.order_by(Bet.created_at.desc()).all()
    return BetListResponse(total=len(bets), bets=[_bet_to_response(b) for b in bets])


@app.get("/api/users/me", response_model=UserResponse)
async def get_me(
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Balance and bet counts for the caller (row created on first visit)."""
    row = get_or_create_user(db, user)
    db.commit()

    open_bets = db.query(Bet).filter(Bet.user_id == user, Bet.is_settled.is_(False)).count()
    settled_bets = db.query(Bet).filter(Bet.user_id == user, Bet.is_settled.is_(True)).count()

    return UserResponse(
        id=row.id,
        balance=row.balance,
        open_bets=open_bets,
        settled_bets=settled_bets,
    )


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@app.post("/admin/force-settle")
async def force_settle(
    user: str = Depends(verify_admin_api_key),
    db: Session = Depends(get_db),
):
    """Run the settlement sweep now (admin only)."""
    logger.info("Manual settlement triggered by %s", user)
    try:
        results = settle_finished_matches(db)
        return {"message": "Settlement complete", **results}
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@app.post("/admin/bets/{bet_id}/void", response_model=SettlementResponse)
async def void_bet_route(
    bet_id: int,
    user: str = Depends(verify_admin_api_key),
    db: Session = Depends(get_db),
):
    """Void one open bet and refund its stake (admin only)."""
    logger.info("Void of bet %d requested by %s", bet_id, user)
    try:
        bet = void_bet(db, bet_id)
    except (BetError, BetAlreadySettledError) as exc:
        db.rollback()
        raise HTTPException(status_code=_bet_error_status(exc), detail=str(exc))

    return SettlementResponse(
        message="Bet voided",
        bet_id=bet.id,
        result=bet.result,
        won_amount=bet.won_amount,
    )


@app.post("/admin/matches/{match_id}/void")
async def void_match_route(
    match_id: int,
    user: str = Depends(verify_admin_api_key),
    db: Session = Depends(get_db),
):
    """Void every open bet on a postponed or abandoned match (admin only)."""
    logger.info("Void of match %d requested by %s", match_id, user)
    try:
        voided = void_match(db, match_id)
    except BetError as exc:
        db.rollback()
        raise HTTPException(status_code=_bet_error_status(exc), detail=str(exc))

    return {"message": "Open bets voided", "match_id": match_id, "bets_voided": voided}


@app.get("/admin/scheduler/status")
async def get_scheduler_status(user: str = Depends(verify_admin_api_key)):
    """Get scheduler job status"""
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
