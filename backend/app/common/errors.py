# app/common/errors.py
# no Django imports here: the client SDK shares these


class PlatformError(Exception):
    code = "PLATFORM_ERROR"


class TransientDependencyError(PlatformError):
    """
    Storage / backend platform could not be reached.
    Never swallowed: a like that silently fails to persist is a match that never happens.
    """

    code = "DEPENDENCY_UNAVAILABLE"

    def __init__(self, message: str = "dependency unavailable", *, dependency: str = ""):
        super().__init__(message)
        self.dependency = dependency


class RequestRejected(PlatformError):
    """The server answered with a 4xx envelope."""

    def __init__(self, code: str, message: str = "", *, status: int = 400):
        super().__init__(message or code)
        self.code = code
        self.status = status
