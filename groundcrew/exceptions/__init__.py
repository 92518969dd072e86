from groundcrew.exceptions.custom_exceptions import (
    GroundCrewException,
    AuthorizationError,
    ValidationError,
    InvalidTransitionError,
    ConnectivityError,
    NotFoundError
)

__all__ = [
    "GroundCrewException",
    "AuthorizationError",
    "ValidationError",
    "InvalidTransitionError",
    "ConnectivityError",
    "NotFoundError"
]
