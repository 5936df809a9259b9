import functools
import json
import logging
from typing import Any, Callable, Dict, Optional, Union

from flask import Flask, Request, Response, request

from utils.config import SubscriptionSettings
from utils.errors import ConfigError, VerificationError
from utils.verify import (
    HUB_CHALLENGE_KEY,
    HUB_MODE_KEY,
    HUB_VERIFY_TOKEN_KEY,
    X_HUB_SIGNATURE_HEADER,
    verify_notification,
    verify_subscribe,
)

logger = logging.getLogger("facebook-subscription")

Secret = Union[str, SubscriptionSettings]
SettingsSource = Union[SubscriptionSettings, Callable[[Dict[str, Any]], Optional[SubscriptionSettings]]]


def _status_for(err: VerificationError, failure_status: int) -> int:
    # a misconfigured host is not the client's fault
    return 500 if isinstance(err, ConfigError) else failure_status


def get_subscription_response(req: Request, verify_token: Secret, raise_errors: bool = False,
                              failure_status: int = 400) -> Response:
    """Answer Facebook's GET handshake: echo hub.challenge as text/plain, or fail."""
    if isinstance(verify_token, SubscriptionSettings):
        verify_token = verify_token.verify_token

    try:
        challenge = verify_subscribe(
            req.args.get(HUB_MODE_KEY),
            req.args.get(HUB_VERIFY_TOKEN_KEY),
            req.args.get(HUB_CHALLENGE_KEY),
            verify_token,
        )
    except VerificationError as e:
        logger.warning("Subscription verification failed: %s", e.kind)
        if raise_errors:
            raise
        return Response(status=_status_for(e, failure_status))

    logger.info("Subscription verified")
    return Response(challenge, status=200, mimetype="text/plain")


def post_subscription_response(req: Request, app_secret: Secret, callback: Callable[[Any], None],
                               raise_errors: bool = False,
                               deserialize: Callable[[str], Any] = json.loads,
                               failure_status: int = 400) -> Response:
    """
    Verify a POST notification and hand the deserialized payload to `callback`.

    Any failure, including one raised by the callback, becomes a response with
    `failure_status` (400 unless overridden) or is re-raised when
    `raise_errors` is set.
    """
    if callback is None:
        raise ValueError("callback is required")
    if isinstance(app_secret, SubscriptionSettings):
        app_secret = app_secret.app_secret

    # HMAC needs the whole body buffered
    raw = req.get_data(cache=True)
    try:
        payload = verify_notification(req.headers.get(X_HUB_SIGNATURE_HEADER), raw, app_secret, deserialize)
    except VerificationError as e:
        logger.warning("Notification rejected: %s", e.kind)
        if raise_errors:
            raise
        return Response(status=_status_for(e, failure_status))

    try:
        callback(payload)
    except Exception as e:
        logger.exception("Notification callback %s failed: %s",
                         getattr(callback, "__name__", repr(callback)), e)
        if raise_errors:
            raise
        return Response(status=failure_status)

    return Response(status=200)


def register_subscription_routes(app: Flask, rule: str, settings: SettingsSource,
                                 callback: Callable[..., None], endpoint: str = "facebook_subscription",
                                 raise_errors: bool = False,
                                 deserialize: Callable[[str], Any] = json.loads,
                                 failure_status: int = 400) -> None:
    """
    Wire both halves of the subscription protocol onto `rule`.

    `settings` is either fixed SubscriptionSettings, validated here so a
    missing secret fails loudly at startup, or a callable resolving settings
    per request from the route's view args (e.g. `/webhook/<app_id>` serving
    several apps). A resolver returning None answers 404. Route view args are
    passed to `callback` as keyword arguments after the payload.

    `failure_status` only applies to rejected POST deliveries; a rejected GET
    handshake is always 400.
    """
    if isinstance(settings, SubscriptionSettings):
        settings.validate()

        def get_settings(view_args):
            return settings
    elif callable(settings):
        get_settings = settings
    else:
        raise TypeError("settings must be SubscriptionSettings or a callable returning them")
    if callback is None:
        raise ValueError("callback is required")

    def subscription_verify(**view_args):
        resolved = get_settings(view_args)
        if resolved is None:
            logger.warning("No subscription settings for %s", view_args)
            return Response(status=404)
        return get_subscription_response(request, resolved, raise_errors)

    def subscription_notify(**view_args):
        resolved = get_settings(view_args)
        if resolved is None:
            logger.warning("No subscription settings for %s", view_args)
            return Response(status=404)
        notify = functools.partial(callback, **view_args) if view_args else callback
        return post_subscription_response(request, resolved, notify, raise_errors,
                                          deserialize, failure_status)

    app.add_url_rule(rule, f"{endpoint}_verify", subscription_verify, methods=["GET"])
    app.add_url_rule(rule, f"{endpoint}_notify", subscription_notify, methods=["POST"])
    logger.info("Registered Facebook subscription routes on %s", rule)
