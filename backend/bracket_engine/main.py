import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bracket_engine.database import init_db
from bracket_engine.routes import brackets, matches, teams, tournaments

APP_NAME = "Padel Bracket Engine API"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(teams.router, prefix="/api", tags=["teams"])
app.include_router(brackets.router, prefix="/api", tags=["brackets"])
# Match results, status changes and manual advancement
app.include_router(matches.router, prefix="/api", tags=["matches"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("%s started with %s routes", APP_NAME, len(app.routes))


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint"""
    return {"app_name": APP_NAME, "status": "healthy"}
