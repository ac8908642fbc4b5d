from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kpiboard.config import settings
from kpiboard.container import ServiceFactory
from kpiboard.middleware.exceptions import register_exception_handlers
from kpiboard.routers import dashboards, entries, health, kpis, share_links, users
from kpiboard.services.scheduler import lifespan

app = FastAPI(
    title="KPIBoard",
    description="KPI tracking, RAG reporting and dashboard sharing",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Services ─────────────────────────────────────────────────
# Built once; each request gets Services bound to its own session
app.state.service_factory = ServiceFactory()

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(dashboards.router, prefix="/api/dashboards", tags=["dashboards"])
app.include_router(share_links.router, prefix="/api/share-links", tags=["share-links"])
app.include_router(kpis.router, prefix="/api/kpis", tags=["kpis"])
app.include_router(entries.router, prefix="/api/entries", tags=["entries"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
