from ..models.options import ErrorInfo

CONNECTION_CLOSED = ErrorInfo("08003", None, "Connection is closed")


class DriverFailure(Exception):
    """A driver call failed; carries the translated diagnostic"""

    def __init__(self, error_info: ErrorInfo):
        self.error_info = error_info
        super().__init__(error_info.message)
