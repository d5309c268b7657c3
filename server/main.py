import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from nutramitra.core.config import settings, configure_logging
from nutramitra.auth.router import router as auth_router
from nutramitra.routers.contact import router as contact_router
from nutramitra.routers.fruits import router as fruits_router
from nutramitra.db.models import init_db

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Nutramitra Backend",
    description="Catalog of fruits and vegetables with nutritional metadata",
    version="0.1.0"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    await init_db()


def _validation_message(error: dict) -> str:
    kind = error.get("type", "")
    field = error.get("loc", ["body"])[-1]
    if kind == "missing":
        return f"{field} is required"
    if kind == "extra_forbidden":
        return f"Unknown field: {field}"
    if kind == "json_invalid":
        return "Invalid JSON body"
    msg = error.get("msg", "Invalid request")
    # ValueErrors raised by our validators carry the client-facing text
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    if field and field != "body":
        return f"{field}: {msg}"
    return msg


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = _validation_message(errors[0]) if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Include Routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(fruits_router, prefix="/fruits", tags=["fruits"])
app.include_router(contact_router, prefix="/contact", tags=["contact"])


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API", "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
