from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from utils.config import CORS_ORIGINS, PORT
from version import BUILD_VERSION

# Import modular routes
from routes.grading_routes import router as grading_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Application starting up...")
    yield
    logger.info("Application shutting down...")

app = FastAPI(lifespan=lifespan)
api_router = APIRouter(prefix="/api")

# Health check endpoint (required for deployment)
@app.get("/health")
async def health_check():
    """Health check endpoint for deployment system"""
    return {
        "status": "healthy",
        "service": "tutor-grading",
        "version": BUILD_VERSION
    }


# Include modular routes before adding api_router to app
api_router.include_router(grading_router)

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
