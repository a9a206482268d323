"""
Error taxonomy for SkyTools.

Every failure raised by the parser, the directory client, the resolution engine
and the record access client is a subclass of SkyToolsException. Each kind
carries a stable error code so that log lines and HTTP responses can be matched
against the failure that produced them.

Errors that involve the network carry the name of the operation and the
identifier that was being resolved or fetched.
"""

from typing import Any, Dict, Optional


class SkyToolsException(Exception):
    """Base class for all SkyTools errors."""

    code: str = "error-skytools-1999"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        identifier: Optional[str] = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.identifier = identifier
        super().__init__(f"{self.code} {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "operation": self.operation,
            "identifier": self.identifier,
        }


class MalformedURI(SkyToolsException):
    """An AT URI did not match at://<authority>/<collection>/<rkey>."""

    code = "error-skytools-1000"


class MalformedDID(SkyToolsException):
    """A DID did not match did:<method>:<identifier>."""

    code = "error-skytools-1001"


class InvalidHandle(SkyToolsException):
    """A handle was empty, too long, or actually a DID."""

    code = "error-skytools-1002"


class DirectoryUnavailable(SkyToolsException):
    """The identity directory could not be reached or answered with an error."""

    code = "error-skytools-1100"


class DirectoryMiscontentError(SkyToolsException):
    """The identity directory answered with a document of the wrong shape."""

    code = "error-skytools-1101"


class NoHostingEndpoint(SkyToolsException):
    """The DID document does not declare a personal data server."""

    code = "error-skytools-1102"


class IdentityNotFound(SkyToolsException):
    """The directory does not know the identity."""

    code = "error-skytools-1103"


class NoAliasFound(IdentityNotFound):
    """The DID document carries no alsoKnownAs entry."""

    code = "error-skytools-1104"


class HandleResolutionFailed(SkyToolsException):
    """Every handle resolution strategy failed.

    The last underlying error is kept on ``last_error`` and chained as the
    exception cause.
    """

    code = "error-skytools-1200"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        identifier: Optional[str] = None,
        last_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, operation=operation, identifier=identifier)
        self.last_error = last_error


class RecordNotFound(SkyToolsException):
    code = "error-skytools-1300"


class BlobNotFound(SkyToolsException):
    code = "error-skytools-1301"


class InvalidProfileRecord(SkyToolsException):
    code = "error-skytools-1302"


class TransportError(SkyToolsException):
    """A request to a hosting endpoint failed."""

    code = "error-skytools-1400"
