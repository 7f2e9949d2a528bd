import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

load_dotenv()

from social_scheduler import __version__  # noqa: E402
from social_scheduler.core.config import get_settings  # noqa: E402
from social_scheduler.core.logging_config import setup_logging  # noqa: E402
from social_scheduler.lifespan import app_lifespan  # noqa: E402
from social_scheduler.middleware.proxy_headers import ProxyHeadersMiddleware  # noqa: E402
from social_scheduler.routers import ai, auth, calendar, media, posts, social_connections  # noqa: E402
from social_scheduler.utils.database import POSTS_TABLE, get_supabase_client  # noqa: E402

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

app = FastAPI(
    title=settings.APP_NAME,
    description="Schedule social media posts on a calendar and publish them to linked accounts",
    version=__version__,
    lifespan=app_lifespan,
)

app.add_middleware(ProxyHeadersMiddleware)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(calendar.router)
app.include_router(media.router)
app.include_router(ai.router)
app.include_router(social_connections.router)


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME} v{__version__}"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    health_status = {
        "status": "healthy",
        "version": __version__,
        "api": settings.APP_NAME,
        "database": "unknown"
    }

    try:
        db = get_supabase_client(admin_access=True)
        db.table(POSTS_TABLE).select('id').limit(1).execute()
        health_status["database"] = "connected"
    except Exception as e:
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "degraded"

    return health_status


def run():
    uvicorn.run("social_scheduler.main:app", host="0.0.0.0", port=8000)
