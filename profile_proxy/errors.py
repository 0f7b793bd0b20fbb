# profile_proxy/errors.py


class ProxyError(Exception):
    """Base error rendered as {"success": false, "error": ...}."""

    status_code = 500

    def __init__(self, error, status_code=None):
        super().__init__(error if isinstance(error, str) else repr(error))
        self.error = error
        if status_code is not None:
            self.status_code = status_code

    @property
    def payload(self) -> dict:
        return {"success": False, "error": self.error}


class ValidationError(ProxyError):
    status_code = 400


class UpstreamUserError(ProxyError):
    """Platform-reported userErrors, passed through as received."""

    status_code = 400


class UpstreamTransportError(ProxyError):
    status_code = 500
