"""
Custom exceptions for the feedicons package.

Most failures inside the favicon pipeline are folded into negative results
(no image) and never raised to callers. The exceptions here mark the few
boundaries where a distinct error is meaningful: store I/O failures, which
callers may choose to treat as a cache miss, and calls made from the wrong
event loop.
"""

from __future__ import annotations


class FeediconsError(Exception):
    """Base exception for all feedicons errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize FeediconsError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        """
        self.message = message
        super().__init__(message)


class BinaryStoreError(FeediconsError):
    """
    Exception raised when the on-disk binary store cannot be read or written.

    Distinct from "not found", which the store reports by returning ``None``.

    Attributes
    ----------
    message : str
        Human-readable error message.
    key : str
        Store key involved in the failed operation.
    original_error : Exception | None
        The underlying ``OSError``.

    Examples
    --------
    >>> try:
    ...     data = store.get(key)
    ... except BinaryStoreError as e:
    ...     logger.warning("Treating %s as a miss: %s", e.key, e.message)
    """

    def __init__(
        self,
        message: str = "Binary store I/O failed",
        key: str = "",
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize BinaryStoreError.

        Parameters
        ----------
        message : str, optional
            Human-readable error message (default: "Binary store I/O failed").
        key : str, optional
            Store key involved in the failed operation (default: "").
        original_error : Exception | None, optional
            The underlying exception (default: None).
        """
        self.key = key
        self.original_error = original_error
        super().__init__(message)


class FaviconAffinityError(FeediconsError):
    """
    Exception raised when a downloader is used from a foreign event loop.

    A ``FaviconDownloader`` binds to the loop that first uses it; all public
    calls must be made from that loop's thread and all notifications are
    delivered there.
    """

    def __init__(
        self,
        message: str = "FaviconDownloader used from a different event loop",
    ) -> None:
        super().__init__(message)
