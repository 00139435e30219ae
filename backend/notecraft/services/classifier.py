"""
NoteCraft Backend: File Classifier
====================================

Decides whether an uploaded file is text-like (read directly) or binary-like
(sent to the extraction collaborator).

Rules, in order:
    1. A declared MIME type wins: text/*, application/json, text/csv,
       text/markdown and text/x-log are text-like; anything else is binary-like.
    2. Without a declared type, the lower-cased file name's extension decides:
       .txt .md .csv .json .log are text-like; anything else is binary-like.

Pure function of (name, declared_type). Never fails, never cached.
"""

from notecraft.models.ingestion import Classification, InputFile

TEXT_MIME_TYPES = frozenset({
    "application/json",
    "text/csv",
    "text/markdown",
    "text/x-log",
})

TEXT_EXTENSIONS = (".txt", ".md", ".csv", ".json", ".log")


def is_text_like(name: str, declared_type: str) -> bool:
    if declared_type:
        return declared_type.startswith("text/") or declared_type in TEXT_MIME_TYPES
    return name.lower().endswith(TEXT_EXTENSIONS)


def classify(file: InputFile) -> Classification:
    if is_text_like(file.name, file.declared_type):
        return Classification.TEXT_LIKE
    return Classification.BINARY_LIKE
