"""Exception hierarchy for the document extraction pipeline.

Page-level failures (enhancement, recognition) are caught by the document
processor and turned into placeholder page results. Rasterization failures
abort the whole document and carry a message suitable for end users.
"""


class LumenExtractError(Exception):
    """Base class for all pipeline errors."""


class EnhancementError(LumenExtractError):
    """Raised when a page image cannot be enhanced."""


class ImageDecodeError(EnhancementError):
    """Raised when the source bytes cannot be decoded as a raster image."""


class SurfaceError(EnhancementError):
    """Raised when a pixel surface cannot be allocated for processing."""


class RecognitionError(LumenExtractError):
    """Raised when the text-recognition engine fails."""


class RasterizationError(LumenExtractError):
    """Raised when a document cannot be split into page images.

    Args:
        detail: Technical description of the underlying failure.
    """

    user_message = "An unknown error occurred while processing the PDF."

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.user_message} {detail}".strip())


class PasswordProtected(RasterizationError):
    user_message = (
        "The PDF appears to be password-protected. "
        "Please provide an unprotected PDF."
    )


class CorruptDocument(RasterizationError):
    user_message = (
        "The PDF file appears to be corrupted or invalid. "
        "Please try a different file."
    )


class DocumentNotFound(RasterizationError):
    user_message = (
        "The PDF file could not be found or read. "
        "Please check the file and try again."
    )


class UnknownRasterizationError(RasterizationError):
    pass
