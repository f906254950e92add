class QuizMasterError(Exception):
    """Base error; `message` is safe to show to the person who triggered it."""

    status_code = 400
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(QuizMasterError):
    default_message = "Invalid input"


class InvalidPinError(QuizMasterError):
    status_code = 404
    default_message = "Invalid Game PIN or Quiz is not yet active"


class NotFoundError(QuizMasterError):
    status_code = 404
    default_message = "Quiz not found"


class ConflictError(QuizMasterError):
    status_code = 409
    default_message = "Conflict"


class UsernameTakenError(ConflictError):
    default_message = "That username is already taken"


class ResultAlreadySubmittedError(ConflictError):
    default_message = "A result for this quiz was already submitted"


class AuthenticationError(QuizMasterError):
    status_code = 401
    default_message = "Not authenticated"


class PermissionDeniedError(AuthenticationError):
    status_code = 403
    default_message = "Access Denied: Invalid administrator credentials"


class GatewayError(QuizMasterError):
    status_code = 503
    default_message = "Connection failed. Please try again."
