"""Clear exceptions for pyrss-ladder: container, stream, address and profile errors."""


class PyRSSLadderError(Exception):
    """Base exception for pyrss-ladder."""

    pass


class NotACompoundDocumentError(PyRSSLadderError):
    """Raised when a buffer cannot be opened as an OLE compound document."""

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message or "Buffer is not an OLE compound document")


class NoLadderLogicFound(PyRSSLadderError):
    """Raised when no stream yields recognizable ladder markers after every locator strategy."""

    def __init__(self, message: str | None = None, *, tried: list[str] | None = None) -> None:
        self.tried = list(tried or [])
        self._msg = message or "No ladder logic found in any compound stream"
        super().__init__(self._msg)


class StreamDecompressionFailed(PyRSSLadderError):
    """Raised when one stream cannot be inflated; the locator skips to the next candidate."""

    def __init__(self, path: str, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        self._msg = message or f"Could not decompress stream {path!r}"
        super().__init__(self._msg)


class InvalidAddressToken(PyRSSLadderError):
    """Raised when a string is not a valid SLC 500 data-table address."""

    def __init__(self, token: str, message: str | None = None) -> None:
        self.token = token
        self._msg = message or f"Invalid address: {token!r}"
        super().__init__(self._msg)


class UnknownProfileError(PyRSSLadderError):
    """Raised when a format profile name has no packaged resource."""

    def __init__(self, profile: str, message: str | None = None) -> None:
        self.profile = profile
        self._msg = message or f"Unknown profile: {profile!r}"
        super().__init__(self._msg)
