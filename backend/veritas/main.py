import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .settings import settings
from .routers import health, watch, quiz, profile

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Veritas Engagement API")
app.include_router(health.router)
app.include_router(watch.router)
app.include_router(quiz.router)
app.include_router(profile.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	ensure_schema()
	logger.info("Veritas engagement API ready")
