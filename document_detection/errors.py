"""
Exceptions raised by the document detector
"""


class DetectionError(Exception):
    """Base class for all detection failures."""


class InvalidInput(DetectionError, ValueError):
    """
    The image or the configuration cannot be processed at all.

    Raised for None/empty images, zero dimensions, unsupported pixel
    formats, short buffers and malformed configuration values.
    """


class NoDocumentFound(DetectionError):
    """
    The pipeline ran to completion but nothing looked like a document.

    This is an expected outcome, not a defect. Callers wanting another
    attempt should loosen the configuration and detect again.
    """


class ProcessingFailure(DetectionError, RuntimeError):
    """An OpenCV or allocation fault aborted the pipeline."""
