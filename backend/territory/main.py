import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from territory.api.runs import router as runs_router
from territory.api.zones import router as zones_router
from territory.core.config import settings
from territory.db import Base, engine
from territory.models import run, run_hex, run_loop, run_zone_contribution, zone_ownership  # noqa: F401  (import ensures tables are registered)


def _configure_logging() -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


_configure_logging()

app = FastAPI(title="Territory")

# Allow CORS for the mobile/web clients
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create DB tables on startup
Base.metadata.create_all(bind=engine)

app.include_router(runs_router)
app.include_router(zones_router)


@app.get("/")
def root():
    return {"message": "Territory backend is running"}
