import hmac
import hashlib
import json
from typing import Any, Callable, Optional, Tuple, TypeVar, Union

from flask import Request

from utils.errors import (
    ConfigError,
    DeserializationError,
    EmptyBody,
    InvalidMode,
    MissingChallenge,
    MissingSignature,
    SignatureMismatch,
    TokenMismatch,
    VerificationError,
)

HUB_MODE_KEY = "hub.mode"
HUB_VERIFY_TOKEN_KEY = "hub.verify_token"
HUB_CHALLENGE_KEY = "hub.challenge"
X_HUB_SIGNATURE_HEADER = "X-Hub-Signature"

SUBSCRIBE_MODE = "subscribe"
SIGNATURE_PREFIX = "sha1="

T = TypeVar("T")
Body = Union[bytes, str]


def _to_bytes(value: Body) -> bytes:
    # lone surrogates in str input must not escape as UnicodeEncodeError
    return value.encode("utf-8", "surrogatepass") if isinstance(value, str) else bytes(value)


def verify_subscribe(mode: Optional[str], request_token: Optional[str],
                     challenge: Optional[str], expected_token: str) -> str:
    """Check a GET handshake and return the challenge to echo back verbatim."""
    if not expected_token:
        raise ConfigError("verify_token must be configured")
    if mode != SUBSCRIBE_MODE:
        raise InvalidMode(f"Invalid {HUB_MODE_KEY}")
    if request_token is None or not hmac.compare_digest(_to_bytes(request_token), _to_bytes(expected_token)):
        raise TokenMismatch(f"Invalid {HUB_VERIFY_TOKEN_KEY}")
    if not challenge:
        raise MissingChallenge(f"Invalid {HUB_CHALLENGE_KEY}")
    return challenge


def compute_signature(body: Body, app_secret: str) -> str:
    """HMAC-SHA1 of body keyed by app_secret, as 40 lower-case hex chars."""
    return hmac.new(_to_bytes(app_secret), msg=_to_bytes(body), digestmod=hashlib.sha1).hexdigest()


def sign_body(app_secret: str, body: Body) -> str:
    """Build an X-Hub-Signature header value for body: 'sha1=<hexdigest>'"""
    return SIGNATURE_PREFIX + compute_signature(body, app_secret)


def verify_notification(signature_header: Optional[str], body: Optional[Body], app_secret: str,
                        deserialize: Callable[[str], T] = json.loads) -> T:
    """
    Check the X-Hub-Signature of a POST delivery and deserialize its body.

    The header looks like 'sha1=4594ae916543cece9de48e3289a5ab568f514b6a'.
    Failures raise a VerificationError subclass; an exception from
    `deserialize` surfaces as DeserializationError so callers can tell
    "not authentic" apart from "authentic but malformed".
    """
    if not app_secret:
        raise ConfigError("app_secret must be configured")
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        raise MissingSignature(f"Invalid {X_HUB_SIGNATURE_HEADER} request header")

    provided = signature_header[len(SIGNATURE_PREFIX):]
    if not provided:
        raise MissingSignature(f"Invalid {X_HUB_SIGNATURE_HEADER} request header")
    if not body:
        raise EmptyBody("Request body is empty")

    expected = compute_signature(body, app_secret)
    # constant-time compare
    if not hmac.compare_digest(expected.encode("ascii"), _to_bytes(provided)):
        raise SignatureMismatch(f"Invalid {X_HUB_SIGNATURE_HEADER} request header")

    try:
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        return deserialize(text)
    except Exception as e:
        raise DeserializationError(f"Could not deserialize notification: {type(e).__name__}") from e


def verify_challenge(req: Request, verify_token: str) -> Tuple[bool, Union[str, VerificationError]]:
    """Run the GET handshake on a Flask request; (True, challenge) or (False, error)."""
    try:
        challenge = verify_subscribe(
            req.args.get(HUB_MODE_KEY),
            req.args.get(HUB_VERIFY_TOKEN_KEY),
            req.args.get(HUB_CHALLENGE_KEY),
            verify_token,
        )
    except VerificationError as e:
        return False, e
    return True, challenge


def verify_x_hub_signature(app_secret: str, header_signature: Optional[str], raw_body: Body) -> bool:
    """Validate X-Hub-Signature without deserializing the body."""
    try:
        verify_notification(header_signature, raw_body, app_secret, deserialize=_identity)
    except VerificationError:
        return False
    return True


def _identity(value: Any) -> Any:
    return value
