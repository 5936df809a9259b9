import os
import logging
from typing import Optional

from flask import Flask
from dotenv import load_dotenv

from handler.subscription import register_subscription_routes
from utils.config import SubscriptionSettings

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger("facebook-webhook")

WEBHOOK_PATH = "/" + os.getenv("WEBHOOK_PATH", "webhook/facebook").lstrip("/")


def on_update(payload: dict):
    """Default realtime update consumer: log what changed."""
    if not isinstance(payload, dict):
        logger.info("Realtime update: %r", payload)
        return
    entries = payload.get("entry") or []
    logger.info("Realtime update object=%s entries=%d", payload.get("object"), len(entries))
    for entry in entries:
        fields = entry.get("changed_fields") or [c.get("field") for c in (entry.get("changes") or [])]
        logger.info("  id=%s time=%s fields=%s", entry.get("id"), entry.get("time"), fields)


def create_app(settings: Optional[SubscriptionSettings] = None, callback=on_update) -> Flask:
    app = Flask(__name__)
    settings = settings or SubscriptionSettings.from_env(load_dotenv_file=False)
    register_subscription_routes(app, WEBHOOK_PATH, settings, callback)
    return app


if __name__ == "__main__":
    create_app().run(port=int(os.getenv("PORT", "5000")))
