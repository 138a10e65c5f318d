class KleinanzeigenError(Exception):
    """Base class for failures talking to Kleinanzeigen."""


class TransportError(KleinanzeigenError):
    """The request could not be sent or timed out."""


class UpstreamStatusError(KleinanzeigenError):
    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        # 403 usually means the ip address was blocked
        self.likely_blocked = status_code == 403
        if message is None:
            message = f"unexpected status code {status_code}"
            if self.likely_blocked:
                message += " (ip address might be blocked)"
        super().__init__(message)


class DecodeError(KleinanzeigenError):
    """The response body could not be decoded."""


class NotFoundError(KleinanzeigenError):
    """The response was well formed but contained no usable entries."""
