# utils/common.py
"""Common utilities: hashing, whitespace normalization and path management"""
import hashlib
import os
import re

# ⚠️ DO NOT import settings here - causes circular import with config.py


# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'patentrag.log')


# ============= Text Utilities =============

def get_text_hash(text: str) -> str:
    """Calculates the SHA256 hex digest of the exact UTF-8 bytes of a string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_whitespace(text: str) -> str:
    """Collapse every run of whitespace into a single space."""
    return re.sub(r"\s+", " ", text or "").strip()


def preview(text: str, limit: int = 80) -> str:
    """Short single-line preview of a text for log messages."""
    flat = normalize_whitespace(text)
    return flat if len(flat) <= limit else flat[:limit] + "..."
