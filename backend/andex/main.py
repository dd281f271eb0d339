"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from andex.config import settings
from andex.database import Base, engine

# Import routers
from andex.routers import users, events, matches, friends

# Import all models so Base.metadata knows about them
from andex.models.user import User                         # noqa: F401
from andex.models.event import Event                       # noqa: F401
from andex.models.participant import Participant           # noqa: F401
from andex.models.match import Match                       # noqa: F401
from andex.models.friendship import FriendRequest, Friendship  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Andex",
    description="Location-based events, matching and friends backend",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(matches.router, prefix="/api/matches", tags=["Matches"])
app.include_router(friends.router, prefix="/api/friends", tags=["Friends"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
