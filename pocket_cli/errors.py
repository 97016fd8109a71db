"""Exception hierarchy for the Pocket command line client."""


class PocketError(Exception):
    """Base class for every error the client reports to the user."""


class ConfigError(PocketError):
    """Local configuration is missing or unreadable."""


class NotConfigured(ConfigError):
    """No consumer key is available."""


class NotAuthenticated(ConfigError):
    """No usable access credential has been persisted."""


class AuthError(PocketError):
    """A step of the authorization handshake failed."""


class AuthRequestFailed(AuthError):
    """Pocket refused to issue a request token."""


class AuthExchangeFailed(AuthError):
    """The approved request token could not be exchanged for an access token."""


class APIError(PocketError):
    """A call to the Pocket API failed.

    Attributes:
        status_code: HTTP status of the failed response, if one was received
        error_code: Pocket's ``X-Error-Code`` header, if present
    """

    def __init__(self, message, status_code=None, error_code=None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class RetrievalError(APIError):
    """Retrieving items failed."""


class RetrievalFailed(RetrievalError):
    """The retrieve call errored while building an ordered item list."""


class ModifyError(APIError):
    """A modify (send) action failed."""


class AddError(ModifyError):
    """Adding an item failed."""


class ExportIOError(PocketError):
    """A filesystem or external tool failure during a Spotlight export.

    Attributes:
        output: Combined stdout/stderr of the failing tool, if any
    """

    def __init__(self, message, output=""):
        super().__init__(message)
        self.output = output


class FormatError(PocketError, ValueError):
    """A ``list --format`` template cannot render items."""
