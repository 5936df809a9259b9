import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from utils.errors import ConfigError


@dataclass(frozen=True)
class SubscriptionSettings:
    """
    Secrets for the Facebook Realtime Subscription API.

    app_secret keys the HMAC over POST deliveries; verify_token is echoed
    by Facebook in the GET handshake.
    """
    app_secret: str = ""
    verify_token: str = ""

    def validate(self) -> "SubscriptionSettings":
        missing = [name for name in ("app_secret", "verify_token") if not getattr(self, name)]
        if missing:
            raise ConfigError(f"Missing subscription settings: {', '.join(missing)}")
        return self

    @classmethod
    def from_env(cls, app_secret_var: str = "APP_SECRET", verify_token_var: str = "VERIFY_TOKEN",
                 load_dotenv_file: bool = True, dotenv_path: Optional[str] = None) -> "SubscriptionSettings":
        if load_dotenv_file:
            load_dotenv(dotenv_path)
        return cls(
            app_secret=os.getenv(app_secret_var, ""),
            verify_token=os.getenv(verify_token_var, ""),
        )

    def __repr__(self):
        # keep secrets out of logs and tracebacks
        return "SubscriptionSettings(app_secret=***, verify_token=***)"
