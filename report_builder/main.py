from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import report_builder.core.logging  # noqa: F401  configures the report_builder loggers
from report_builder.api.v1 import api_router
from report_builder.core.config import get_settings
from report_builder.core.exceptions import APIException

settings = get_settings()

app = FastAPI(
    title="Report Builder API",
    version="0.1.0",
    description="Constructor de reportes personalizados",
    docs_url="/docs",
    openapi_url="/openapi.json",
)

# CORS configuration
if settings.CORS_ORIGINS:
    origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
else:
    origins = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Render APIException (report builder errors included) as ``{"error", "data": null}``."""
    response_content = dict(exc.detail)
    response_content["data"] = None
    return JSONResponse(
        status_code=exc.status_code,
        content=response_content,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors as VALIDATION_ERROR with messages per field."""
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        # ["body", "config", "dateFrom"] -> "config.dateFrom"
        location = [str(part) for part in error["loc"]]
        field_name = ".".join(location[1:]) if len(location) > 1 else location[0]
        details.setdefault(field_name, []).append(error["msg"])

    response_content = {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Validation failed",
            "details": details,
        },
        "data": None,
    }
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=response_content,
    )


@app.get("/healthz", tags=["system"])
def healthz():
    """Health check endpoint."""
    return {
        "status": "ok",
        "env": settings.ENV,
        "debug": settings.DEBUG,
    }


# Include API routers
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "report_builder.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
