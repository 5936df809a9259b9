class VerificationError(Exception):
    """Base class for every way a subscription request can fail verification."""
    kind = "verification_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ConfigError(VerificationError):
    """The host supplied an empty app secret or verify token."""
    kind = "config_error"


# --- GET handshake ---

class InvalidMode(VerificationError):
    kind = "invalid_mode"


class TokenMismatch(VerificationError):
    kind = "token_mismatch"


class MissingChallenge(VerificationError):
    kind = "missing_challenge"


# --- POST delivery ---

class MissingSignature(VerificationError):
    kind = "missing_signature"


class EmptyBody(VerificationError):
    kind = "empty_body"


class SignatureMismatch(VerificationError):
    # Never carries the computed or provided digest.
    kind = "signature_mismatch"


class DeserializationError(VerificationError):
    """The signature matched but the payload could not be deserialized."""
    kind = "deserialization_error"
