"""Verification failures returned to the forward-auth boundary."""


class VerificationError(Exception):
    """Base class for every verification failure."""

    status_code: int = 500


class UnauthorizedError(VerificationError):
    """The caller could not be verified (HTTP 401).

    Missing or malformed credential, inactive token, denied policy,
    empty identity field, unconfigured policy engine.
    """

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InternalError(VerificationError):
    """Verification could not be carried out (HTTP 500).

    Transport failure, malformed remote payload, missing downstream client.
    """

    status_code = 500

    def __init__(self, message: str = "Internal Server Error") -> None:
        super().__init__(message)
