"""
doclib: Processing-status flags for shared documents.

Records which processing stages have been queued, started, ended or errored
on a document, safely across many concurrent worker processes.
"""

__version__ = "0.1.0"
