import os
import sys
import hmac, hashlib
_HERE = os.path.dirname(__file__)
_ROOT = os.path.abspath(os.path.join(_HERE, os.pardir))
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

import pytest
from flask import Flask

from utils.config import SubscriptionSettings

# ---------- Environment for tests ----------
@pytest.fixture(autouse=True)
def _env(monkeypatch):
    # Safe demo secrets for test runs
    monkeypatch.setenv("VERIFY_TOKEN", "TEST_VERIFY_TOKEN")
    monkeypatch.setenv("APP_SECRET", "test_app_secret")
    yield

@pytest.fixture()
def settings():
    return SubscriptionSettings(app_secret="test_app_secret", verify_token="TEST_VERIFY_TOKEN")

# ---------- Flask app with both subscription routes ----------
@pytest.fixture()
def received():
    return []

@pytest.fixture()
def client(settings, received):
    from handler.subscription import register_subscription_routes
    app = Flask(__name__)
    register_subscription_routes(app, "/webhook/facebook", settings, received.append)
    return app.test_client()

# ---------- Helper: sign body for webhook headers ----------
def sign_body(app_secret: str, raw: bytes) -> str:
    return "sha1=" + hmac.new(app_secret.encode("utf-8"), raw, hashlib.sha1).hexdigest()
