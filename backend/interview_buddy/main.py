from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from contextlib import asynccontextmanager
from starlette.concurrency import run_in_threadpool
from interview_buddy.api import auth, generate, interviews, session, tts
from interview_buddy.core.config import settings
from interview_buddy.core import database

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 Starting InterviewBuddy...")
    await validate_connections()
    logger.info("✅ All systems validated - Application ready!")

    yield

    logger.info("🛑 Shutting down InterviewBuddy...")
    if database.client is not None:
        database.client.close()

app = FastAPI(title="InterviewBuddy", lifespan=lifespan)

origins = [
    "http://localhost:3000",  # Next.js dev server
    "http://localhost:5173",  # Vite dev server
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

async def validate_connections():
    logger.info("🔍 Validating connections...")

    if database.db is None:
        await run_in_threadpool(database.init_database)
    if not await run_in_threadpool(database.check_database_health):
        raise database.DatabaseUnavailableError("Database connection failed")
    logger.info("✅ Database connection validated")

    logger.info(f"✅ Gemini model: {settings.GEMINI_MODEL}")

    if not settings.RIME_API_KEY:
        logger.warning("⚠️ Rime API key missing - browsers will speak text locally")
    else:
        logger.info("✅ Rime API key present")

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(generate.router, prefix="/vapi", tags=["Question Generation"])
app.include_router(interviews.router, prefix="/interviews", tags=["Interviews"])
app.include_router(tts.router, prefix="/tts", tags=["Text-to-Speech"])
app.include_router(session.router, prefix="/session", tags=["Voice Sessions"])

@app.get("/")
async def root():
    return {"message": "InterviewBuddy API"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "interview_buddy"}
