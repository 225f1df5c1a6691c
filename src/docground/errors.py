"""Exception taxonomy for layout reconstruction runs.

Only :class:`DocumentLoadError` aborts a run. Channel and page failures are
recovered inside the page unit of work and surface as degraded or failed
pages in the assembled document.
"""


class DocGroundError(Exception):
    """Base class for all engine errors."""


class OCREngineError(DocGroundError):
    """The OCR collaborator failed for a page."""


class PageLoadError(DocGroundError):
    """A single page could not be rendered or read."""

    def __init__(self, page_number: int, message: str):
        self.page_number = page_number
        super().__init__(f"Page {page_number}: {message}")


class DocumentLoadError(DocGroundError):
    """The source document could not be opened at all."""


class RunCancelled(DocGroundError):
    """The run was cancelled before every page finished.

    ``committed_pages`` holds the pages that completed before cancellation,
    sorted by page number.
    """

    def __init__(self, committed_pages=None):
        self.committed_pages = list(committed_pages or [])
        super().__init__(
            f"Run cancelled after {len(self.committed_pages)} committed page(s)"
        )
