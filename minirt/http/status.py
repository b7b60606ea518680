"""HTTP status codes."""

from __future__ import annotations

_U16_MAX = 0xFFFF

_KNOWN = (
    (100, "CONTINUE", "Continue"),
    (101, "SWITCHING_PROTOCOLS", "Switching Protocols"),
    (200, "OK", "Ok"),
    (201, "CREATED", "Created"),
    (202, "ACCEPTED", "Accepted"),
    (203, "NON_AUTHORITATIVE_INFORMATION", "NonAuthoritativeInformation"),
    (204, "NO_CONTENT", "NoContent"),
    (205, "RESET_CONTENT", "ResetContent"),
    (206, "PARTIAL_CONTENT", "PartialContent"),
    (300, "MULTIPLE_CHOICES", "MultipleChoices"),
    (301, "MOVED_PERMANENTLY", "MovedPermanently"),
    (302, "FOUND", "Found"),
    (303, "SEE_OTHER", "SeeOther"),
    (304, "NOT_MODIFIED", "NotModified"),
    (305, "USE_PROXY", "UseProxy"),
    (307, "TEMPORARY_REDIRECT", "TemporaryRedirect"),
    (308, "PERMANENT_REDIRECT", "PermanentRedirect"),
    (400, "BAD_REQUEST", "BadRequest"),
    (401, "UNAUTHORIZED", "Unauthorized"),
    (402, "PAYMENT_REQUIRED", "PaymentRequired"),
    (403, "FORBIDDEN", "Forbidden"),
    (404, "NOT_FOUND", "NotFound"),
    (405, "METHOD_NOT_ALLOWED", "MethodNotAllowed"),
    (406, "NOT_ACCEPTABLE", "NotAcceptable"),
    (407, "PROXY_AUTHENTICATION_REQUIRED", "ProxyAuthenticationRequired"),
    (408, "REQUEST_TIMEOUT", "RequestTimeout"),
    (409, "CONFLICT", "Conflict"),
    (410, "GONE", "Gone"),
    (411, "LENGTH_REQUIRED", "LengthRequired"),
    (412, "PRECONDITION_FAILED", "PreconditionFailed"),
    (413, "CONTENT_TOO_LARGE", "ContentTooLarge"),
    (414, "URI_TOO_LONG", "URITooLong"),
    (415, "UNSUPPORTED_MEDIA_TYPE", "UnsupportedMediaType"),
    (416, "RANGE_NOT_SATISFIABLE", "RangeNotSatisfiable"),
    (417, "EXPECTATION_FAILED", "ExpectationFailed"),
    (421, "MISDIRECTED_REQUEST", "MisdirectedRequest"),
    (422, "UNPROCESSABLE_CONTENT", "UnprocessableContent"),
    (426, "UPGRADE_REQUIRED", "UpgradeRequired"),
    (500, "INTERNAL_SERVER_ERROR", "InternalServerError"),
    (501, "NOT_IMPLEMENTED", "NotImplemented"),
    (502, "BAD_GATEWAY", "BadGateway"),
    (503, "SERVICE_UNAVAILABLE", "ServiceUnavailable"),
    (504, "GATEWAY_TIMEOUT", "GatewayTimeout"),
    (505, "HTTP_VERSION_NOT_SUPPORTED", "HTTPVersionNotSupported"),
)

_LABELS = {code: label for code, _, label in _KNOWN}


class StatusCode:
    """An HTTP status code in the unsigned 16-bit range.

    Registered codes carry a label; any other code is kept as a bare number.
    """

    __slots__ = ("_code",)

    def __init__(self, code: int) -> None:
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError(f"status code must be an int, got {type(code).__name__}")
        if not 0 <= code <= _U16_MAX:
            raise ValueError(f"status code out of range: {code}")
        self._code = code

    @property
    def code(self) -> int:
        return self._code

    @property
    def reason(self) -> str | None:
        """The label of a registered code, or None for any other code."""
        return _LABELS.get(self._code)

    def __int__(self) -> int:
        return self._code

    def __str__(self) -> str:
        label = _LABELS.get(self._code)
        if label is None:
            return str(self._code)
        return f"{self._code} {label}"

    def __repr__(self) -> str:
        return f"StatusCode({self._code})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatusCode):
            return NotImplemented
        return self._code == other._code

    def __hash__(self) -> int:
        return hash(self._code)


for _code, _attr, _label in _KNOWN:
    setattr(StatusCode, _attr, StatusCode(_code))
del _code, _attr, _label