import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from expense_tracker.config import settings
from expense_tracker.database import init_db
from expense_tracker.errors import ApiError
from expense_tracker.routers import auth, health
from expense_tracker.services.users import SqlUserStore, user_store

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if isinstance(user_store, SqlUserStore):
        init_db()
    if settings.otp_debug:
        LOGGER.warning("OTP_DEBUG is enabled; one-time codes are returned in responses")
    yield


app = FastAPI(title="Expense Tracker API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _format_validation_error(error: dict) -> dict:
    location, *path = error.get("loc", ()) or ("body",)
    message = error.get("msg", "Invalid value")
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        message = str(error["ctx"]["error"])
    return {
        "type": "field",
        "msg": message,
        "path": ".".join(str(part) for part in path),
        "location": location,
    }


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Validation failed",
            "errors": [_format_validation_error(error) for error in exc.errors()],
        },
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


app.include_router(health.router)
app.include_router(auth.router)


@app.get("/")
def root():
    return {"status": "Backend running"}
