from __future__ import annotations


class MplensError(Exception):
    """Error reported to the user as a message rather than a traceback."""


class EntryManifestError(MplensError):
    """No entry manifest could be located: neither a file nor inline content."""
