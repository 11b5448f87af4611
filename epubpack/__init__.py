"""epubpack: package static-site HTML output as an EPUB."""

__version__ = "0.1.0"
