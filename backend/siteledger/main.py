"""Site Ledger Service - Main Application

Back-office API for construction sites: masters, manpower and payroll,
BOQ billing, cashbooks, procurement and site stock.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from siteledger.config import settings
from siteledger.core.errors import setup_exception_handlers
from siteledger.database import async_session_maker, engine, init_db
from siteledger.services.access import ensure_admin_user, seed_access_control
from siteledger.api import (
    access_control,
    assets,
    attendances,
    auth,
    boq_bills,
    boqs,
    cashbook_budgets,
    cashbooks,
    employees,
    inward_challans,
    manpower,
    manpower_suppliers,
    manpower_transfers,
    masters,
    outward_challans,
    payroll,
    purchase_orders,
    reports,
    site_budgets,
    sites,
    stocks,
    users,
)
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Site Ledger Service...")
    await init_db()
    async with async_session_maker() as session:
        await seed_access_control(session)
        await ensure_admin_user(session)
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down Site Ledger Service...")
    await engine.dispose()
    logger.info("Database connection closed")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Construction site back-office API",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Register routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(access_control.router)
for master_router in masters.routers:
    app.include_router(master_router)
app.include_router(sites.router)
app.include_router(assets.router)
app.include_router(employees.router)
app.include_router(employees.assignment_router)
app.include_router(manpower_suppliers.router)
app.include_router(manpower.router)
app.include_router(manpower.assignment_router)
app.include_router(manpower_transfers.router)
app.include_router(attendances.router)
app.include_router(payroll.config_router)
app.include_router(payroll.router)
app.include_router(boqs.router)
app.include_router(boq_bills.router)
app.include_router(cashbooks.router)
app.include_router(cashbook_budgets.router)
app.include_router(site_budgets.router)
app.include_router(purchase_orders.router)
app.include_router(stocks.router)
app.include_router(inward_challans.router)
app.include_router(outward_challans.router)
app.include_router(reports.router)


@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "siteledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
