from typing import Optional


class LearnHubError(Exception):
    """Base error carrying the HTTP status the boundary layer should use"""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.field is not None:
            body["field"] = self.field
        return body


class ValidationError(LearnHubError):
    status_code = 400


class UnauthorizedError(LearnHubError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", field: Optional[str] = None):
        super().__init__(message, field)


class NotFoundError(LearnHubError):
    status_code = 404


class DuplicateSubmissionError(LearnHubError):
    status_code = 400

    def __init__(self, message: str = "You have already submitted this assignment", field: Optional[str] = None):
        super().__init__(message, field)


class InternalError(LearnHubError):
    status_code = 500
