'''

'''
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .common.logger import log
from .common.config import settings
from .services.student_service import student_store
from .api import reconcile, students

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown, cancelling pending recalculations...")
    student_store.clear()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of testing frontend
    "http://0.0.0.0:8080",
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    # List of origins allowed (or "*" for all)
    allow_origins=origins,
    # Allow cookies to be included
    allow_credentials=True,
    # Allow all methods (GET, POST, etc.)
    allow_methods=["*"],
    # Allow all headers
    allow_headers=["*"],)
# --- End of CORS Middleware ---

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(reconcile.router)
app.include_router(students.router)
