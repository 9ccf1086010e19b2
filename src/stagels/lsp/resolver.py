"""
Document resolution for stagels LSP.

Maps the filenames analyzers report to the document URIs the client knows.
"""

import logging
import os
from typing import Optional
from urllib.parse import unquote, urlparse

from pygls.uris import from_fs_path, to_fs_path

logger = logging.getLogger(__name__)

# Unsaved editor buffers are named "Untitled-1", "Untitled-2", ...
UNTITLED_PREFIX = "Untitled"
UNTITLED_SCHEME = "untitled"


def filename_to_uri(filename: str) -> str:
    """Build the URI of an unsaved buffer from its name."""
    return f"{UNTITLED_SCHEME}:{filename}"


def uri_to_filename(uri: str) -> Optional[str]:
    """
    Map a document URI back to the filename analyzers use for it.

    Returns:
        A filesystem path for ``file:`` URIs, the buffer name for
        ``untitled:`` URIs, and None for any other scheme
    """
    scheme = urlparse(uri).scheme
    if scheme == "file":
        return to_fs_path(uri)
    if scheme == UNTITLED_SCHEME:
        return unquote(uri[len(UNTITLED_SCHEME) + 1 :])
    return None


class DocumentResolver:
    """
    Resolves analyzer filenames to document URIs.

    Relative paths are anchored at the workspace root. Resolution never
    fails: reports that cannot be placed in a document resolve to None and
    are dropped by the caller.
    """

    def __init__(self, root_path: Optional[str] = None) -> None:
        self.root_path = root_path or os.getcwd()

    def to_full_path(self, filename: str) -> str:
        if os.path.isabs(filename):
            return os.path.normpath(filename)
        return os.path.normpath(os.path.join(self.root_path, filename))

    def resolve(self, filename: Optional[str]) -> Optional[str]:
        """
        Resolve a reported filename.

        Args:
            filename: The filename as reported, or None when the analyzer
                had no file for the report

        Returns:
            The document URI, or None if the report must be excluded
        """
        if filename is None:
            return None
        if filename.startswith(UNTITLED_PREFIX):
            return filename_to_uri(filename)
        uri = from_fs_path(self.to_full_path(filename))
        if uri is None:
            logger.debug("Could not build a URI for %s", filename)
        return uri
