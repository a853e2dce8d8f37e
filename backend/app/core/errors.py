"""
PURPOSE: Error types raised by the Checkout Relay core.

Three kinds only:
    - InputValidationError:   malformed caller input (HTTP 400)
    - AuthenticationFailure:  webhook signature mismatch (HTTP 403)
    - ConfigurationError:     unusable configuration at boot (fatal)
"""


class RelayError(Exception):
    """
    PURPOSE: Base class for all errors raised by the gateway core.
    """
    pass


class InputValidationError(RelayError):
    """
    PURPOSE: Raised when caller input is missing or has the wrong shape.
    Answered with HTTP 400 and never logged as a fault.
    """
    pass


class AuthenticationFailure(RelayError):
    """
    PURPOSE: Raised when an inbound notification fails signature verification.
    The payload must not be processed; answered with HTTP 403.
    """
    pass


class ConfigurationError(RelayError):
    """
    PURPOSE: Raised at startup when the gateway cannot run safely,
    e.g. no webhook secret is configured.
    """
    pass
