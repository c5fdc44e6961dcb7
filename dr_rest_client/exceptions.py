from typing import Any, Optional


class ConfigNotInitializedError(Exception):
    """The properties file could not be found or read"""


class ConfigNotValidError(Exception):
    """A configuration value is missing, empty or malformed"""


class EnvironmentPrerequisiteError(Exception):
    """The remote environment is missing something the examples rely on"""

    CONSIDER_AND_RERUN = " Consider fulfilling the prerequisite and rerun."

    def __init__(self, message: str):
        super().__init__(message + self.CONSIDER_AND_RERUN if message else message)


class ApiError(Exception):
    """A DR REST gateway call failed, either in transport or with a non-2xx response"""

    def __init__(self, message: str, status: int = 0, body: Optional[Any] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class ExamplesExecutionError(Exception):
    """Wraps an ApiError with the name of the operation that failed"""

    def __init__(self, operation: str, error: ApiError):
        super().__init__(
            f"Request '{operation}' failed."
            f" Response error code is [{error.status}]. Response body is [{error.body}]."
        )
        self.operation = operation
        self.status = error.status
        self.body = error.body
