"""Keep .resx localization files in sync with a reference language."""

__version__ = "0.3.0"
