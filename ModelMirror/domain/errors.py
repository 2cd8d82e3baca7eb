from __future__ import annotations


class MirrorError(RuntimeError):
    """Base class for every failure surfaced by a download session."""


class TransportError(MirrorError):
    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DecodeError(MirrorError):
    pass


class LocalWriteError(MirrorError):
    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InvalidDestinationError(MirrorError):
    pass
