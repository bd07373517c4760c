"""Error taxonomy shared by the synchronization engine and the CLI."""

from __future__ import annotations


class ResxSyncError(Exception):
    """Base class for every error raised by resx-autotranslate."""


class MalformedDocument(ResxSyncError, ValueError):
    """A resource document could not be parsed."""


class TranslationFailure(ResxSyncError):
    """The translation backend failed for a single text."""


class MissingCredential(ResxSyncError):
    """No API key is configured for the translation backend."""


class PersistenceFailure(ResxSyncError, OSError):
    """A resource document could not be written back to disk."""


class GlossaryError(ResxSyncError, ValueError):
    """The persisted glossary exists but is not a string-to-string mapping."""


class NoResourceFiles(ResxSyncError):
    """Workspace discovery found no reference .resx files."""
