"""The error type of the HTTP layer and the failures it can wrap."""

from __future__ import annotations

import enum


class InvalidHeaderName(ValueError):
    """A header name is not a valid HTTP token."""

    def __init__(self, message: str = "invalid HTTP header name") -> None:
        super().__init__(message)


class InvalidHeaderValue(ValueError):
    """A header value holds bytes that are not allowed."""

    def __init__(self, message: str = "failed to parse header value") -> None:
        super().__init__(message)


class InvalidMethod(ValueError):
    """A request method is not a valid HTTP token."""

    def __init__(self, message: str = "invalid HTTP method") -> None:
        super().__init__(message)


class HttpErrorCode(enum.Enum):
    """Why a request failed on its way to or back from the server."""

    DNS_TIMEOUT = "DNS timeout"
    DNS_ERROR = "DNS error"
    DESTINATION_NOT_FOUND = "destination not found"
    DESTINATION_UNAVAILABLE = "destination unavailable"
    CONNECTION_REFUSED = "connection refused"
    CONNECTION_TERMINATED = "connection terminated"
    CONNECTION_TIMEOUT = "connection timeout"
    CONNECTION_READ_TIMEOUT = "connection read timeout"
    CONNECTION_WRITE_TIMEOUT = "connection write timeout"
    TLS_PROTOCOL_ERROR = "TLS protocol error"
    TLS_CERTIFICATE_ERROR = "TLS certificate error"
    HTTP_REQUEST_URI_INVALID = "HTTP request URI invalid"
    HTTP_PROTOCOL_ERROR = "HTTP protocol error"
    HTTP_RESPONSE_INCOMPLETE = "HTTP response incomplete"
    INTERNAL_ERROR = "internal error"

    def __str__(self) -> str:
        return self.value


class HeaderError(enum.Enum):
    """Why a set of header fields refused a change."""

    INVALID_SYNTAX = "invalid syntax"
    FORBIDDEN = "forbidden"
    IMMUTABLE = "immutable"

    def __str__(self) -> str:
        return self.value


class ErrorVariant(enum.Enum):
    """The kind of failure an :class:`Error` carries."""

    HTTP = enum.auto()
    HEADER = enum.auto()
    HEADER_NAME = enum.auto()
    HEADER_VALUE = enum.auto()
    METHOD = enum.auto()
    OTHER = enum.auto()


_PREFIXES = {
    ErrorVariant.HTTP: "http error: ",
    ErrorVariant.HEADER: "header error: ",
    ErrorVariant.HEADER_NAME: "header name error: ",
    ErrorVariant.HEADER_VALUE: "header value error: ",
    ErrorVariant.METHOD: "method error: ",
    ErrorVariant.OTHER: "",
}

_DETAIL_TYPES = {
    ErrorVariant.HTTP: HttpErrorCode,
    ErrorVariant.HEADER: HeaderError,
    ErrorVariant.HEADER_NAME: InvalidHeaderName,
    ErrorVariant.HEADER_VALUE: InvalidHeaderValue,
    ErrorVariant.METHOD: InvalidMethod,
    ErrorVariant.OTHER: str,
}


class Error(Exception):
    """An HTTP failure: a variant, its detail and the contexts it passed through."""

    def __init__(self, variant: ErrorVariant, detail: object) -> None:
        if not isinstance(variant, ErrorVariant):
            raise TypeError(f"variant must be an ErrorVariant, got {variant!r}")
        expected = _DETAIL_TYPES[variant]
        if not isinstance(detail, expected):
            raise TypeError(
                f"detail of {variant.name} must be {expected.__name__}, "
                f"got {type(detail).__name__}"
            )
        super().__init__(variant, detail)
        self.variant = variant
        self.detail = detail
        self.context: tuple[str, ...] = ()

    @staticmethod
    def other(message: object) -> Error:
        """An error described only by a message."""
        return Error(ErrorVariant.OTHER, str(message))

    def with_context(self, context: object) -> Error:
        """A copy of this error with ``context`` added after the existing ones."""
        err = Error(self.variant, self.detail)
        err.context = (*self.context, str(context))
        return err

    def __str__(self) -> str:
        return f"{_PREFIXES[self.variant]}{self.detail}"

    def __repr__(self) -> str:
        lines = "".join(f"in {c}:\n" for c in self.context)
        detail = self.detail if self.variant is ErrorVariant.OTHER else repr(self.detail)
        return f"{lines}{_PREFIXES[self.variant]}{detail}"