# feedlens/main.py
from fastapi import FastAPI

from .logging_setup import setup_logging, get_logger
from .middleware import RequestContextMiddleware
from .exception_handling import register_exception_handlers
from .lifespan import lifespan

from .routers import health, settings, feedback, patterns, rank, prefs

setup_logging()  # <-- set up logging ASAP
logger = get_logger("feedlens.main")

app = FastAPI(title="Feedlens", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(settings.router)
app.include_router(feedback.router)
app.include_router(patterns.router)
app.include_router(rank.router)
app.include_router(prefs.router)
