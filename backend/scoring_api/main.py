import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .db import Base, engine
from .errors import ScoringAPIError
from .settings import settings
from .routers import health
from .routers import auth
from .routers import reports
from .routers import attempts
from .routers import analytics

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Scoring Report API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(reports.router)
app.include_router(attempts.router)
app.include_router(analytics.router)


@app.exception_handler(ScoringAPIError)
async def scoring_error_handler(request: Request, exc: ScoringAPIError):
	return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
	errors = exc.errors()
	message = errors[0].get("msg", "Invalid parameter") if errors else "Invalid parameter"
	return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
	logger.exception(f"Unhandled error on {request.url.path}: {exc}")
	return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
