from typing import Optional


class GroundCrewException(Exception):
    """Base exception for all ground crew sync errors"""

    code = "GROUNDCREW_ERROR"
    default_user_message = "The operation could not be completed."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or self.default_user_message


class AuthorizationError(GroundCrewException):
    """Actor is not permitted to act on the task or turnaround"""

    code = "NOT_AUTHORIZED"
    default_user_message = "This task is not assigned to you. Contact your supervisor."


class ValidationError(GroundCrewException):
    """Malformed user input, e.g. an incomplete delay report"""

    code = "INVALID_INPUT"
    default_user_message = "Please correct the highlighted input and submit again."


class InvalidTransitionError(ValidationError):
    """Requested status change is not legal from the task's current status"""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, event: str):
        self.current = current
        self.event = event
        super().__init__(
            f"Cannot {event} a task in status {current}",
            user_message=f"This task is {current}; refresh the checklist and choose another action.",
        )


class ConnectivityError(GroundCrewException):
    """Backing store unreachable during read, write or subscribe"""

    code = "STORE_UNAVAILABLE"
    default_user_message = "Cannot reach the turnaround store. Check connectivity and try again."


class NotFoundError(GroundCrewException):
    """Referenced user, turnaround or task record is absent"""

    code = "NOT_FOUND"
    default_user_message = "This record no longer exists. Return to the dashboard."
