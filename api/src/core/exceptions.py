"""
Core Exceptions

Custom exceptions for the Hookline webhook service.
"""


class MalformedPayloadError(Exception):
    """
    Raised when a verified inbound webhook body cannot be interpreted.

    Distinct from signature failures: the sender proved who it is, so an
    unparsable body is an internal error (500), not a security event (403).
    """

    def __init__(self, platform: str, message: str = "Malformed webhook payload"):
        self.platform = platform
        self.message = message
        super().__init__(f"{platform}: {message}")
