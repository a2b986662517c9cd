class AnalyzeError(Exception):
    """Base error for the /api/analyze pipeline. Rendered as {"error": message}."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(AnalyzeError):
    status_code = 400


class ConfigurationError(AnalyzeError):
    status_code = 500


class UpstreamError(AnalyzeError):
    """An upstream API call failed (transport, timeout or non-2xx status)."""
    status_code = 502
