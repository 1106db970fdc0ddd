from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from contextlib import asynccontextmanager
from .core.config import settings
from .core.database import create_tables, close_db
from .core.exceptions import LearnHubError
from .api import auth, public, student, teacher
from .seed import run_seed
from .utils.uploads import ensure_upload_dirs, upload_root
import logging
import sys

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting LearnHub API...")
    try:
        await create_tables()
        if settings.seed_demo_data:
            await run_seed()
        logger.info("Application startup completed successfully")
        yield
    except Exception as e:
        logger.error(f"Error during application startup: {e}")
        raise
    finally:
        logger.info("Shutting down LearnHub API...")
        try:
            await close_db()
            logger.info("Application shutdown completed")
        except Exception as e:
            logger.error(f"Error during application shutdown: {e}")


app = FastAPI(
    title="LearnHub API",
    description="Courses, lessons, assignments, grading and analytics",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(LearnHubError)
async def learnhub_exception_handler(request: Request, exc: LearnHubError):
    logger.error(f"HTTP {exc.status_code} error on {request.url}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = str(errors[0]["loc"][-1]) if errors and errors[0].get("loc") else None
    logger.error(f"Validation error on {request.url}: {errors}")
    content = {"message": "Validation error"}
    if field is not None:
        content["field"] = field
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTP {exc.status_code} error on {request.url}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url}: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"}
    )


# Include API routers
app.include_router(auth.router, prefix="/api", tags=["Authentication"])
app.include_router(public.router, prefix="/api", tags=["Courses"])
app.include_router(student.router, prefix="/api", tags=["Student"])
app.include_router(teacher.router, prefix="/api", tags=["Instructor"])

ensure_upload_dirs()
app.mount("/uploads", StaticFiles(directory=upload_root()), name="uploads")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint - API health check"""
    return {
        "message": "LearnHub API is running",
        "version": "1.0.0",
        "status": "healthy"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "LearnHub API",
        "version": "1.0.0"
    }


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests"""
    logger.info(f"Incoming request: {request.method} {request.url}")

    try:
        response = await call_next(request)
        logger.info(f"Request completed: {request.method} {request.url} - Status: {response.status_code}")
        return response
    except Exception as e:
        logger.error(f"Request failed: {request.method} {request.url} - Error: {str(e)}")
        raise
