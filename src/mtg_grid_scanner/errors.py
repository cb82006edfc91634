class ScannerError(Exception):
    """Base class for everything this package raises on purpose."""


class InvalidGridConfig(ScannerError, ValueError):
    pass


class ExtractionFailure(ScannerError):
    """Text recognition failed for a single region."""

    def __init__(self, message, region_index=None):
        super().__init__(message)
        self.region_index = region_index


class ParseMiss(ScannerError):
    pass


class ResolutionError(ScannerError):
    pass


class NotFound(ResolutionError):
    """The card database has no match. Not worth retrying."""


class TransientError(ResolutionError):
    """Network or service failure. Worth retrying."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class PipelineCancelled(ScannerError):
    pass


class PipelineFailed(ScannerError):
    pass
