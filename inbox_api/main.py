import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from inbox_api.config import settings
from inbox_api.database import dispose_engine, get_db
from inbox_api.logging_config import setup_logging
from inbox_api.models import Channel, Conversation, Lead, Message
from inbox_api.routers import meta_webhook

setup_logging(settings.log_level)

app = FastAPI(
    title="Inbox API",
    description="Meta webhook ingestion and auto-reply service for the CRM inbox",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(meta_webhook.router)


@app.on_event("shutdown")
async def close_database() -> None:
    dispose_engine()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "channels": db.query(Channel).count(),
        "conversations": db.query(Conversation).count(),
        "messages": db.query(Message).count(),
        "leads": db.query(Lead).count(),
    }
