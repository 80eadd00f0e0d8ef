"""Common utilities: text cleanup, vector math, and path management"""
import os
import re
from typing import List, Sequence

import numpy as np

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
        os.makedirs(log_dir)

    return os.path.join(log_dir, 'webqa.log')


# ============= Text =============

_WHITESPACE_RE = re.compile(r'\s+')

def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""
    return _WHITESPACE_RE.sub(' ', text or '').strip()


def preview(text: str, limit: int = 80) -> str:
    """Short single-line excerpt for log messages and error context."""
    text = collapse_whitespace(text)
    return text if len(text) <= limit else text[:limit] + "..."


# ============= Vectors =============

def l2_normalize(vector: Sequence[float]) -> np.ndarray:
    """
    L2 normalize a vector to unit length (||v|| = 1).

    For unit vectors the inner product equals cosine similarity, so scores
    stay comparable across passages embedded at different times.

    Raises:
        ValueError: if the vector is empty or has zero magnitude
    """
    arr = np.asarray(vector, dtype="float32").reshape(-1)
    if arr.size == 0:
        raise ValueError("Cannot normalize an empty vector")
    norm = float(np.linalg.norm(arr))
    if norm == 0.0 or not np.isfinite(norm):
        raise ValueError("Cannot normalize a vector with zero or non-finite magnitude")
    return arr / norm


def to_float_list(vector: np.ndarray) -> List[float]:
    """Plain Python floats for JSON serialization."""
    return [float(x) for x in np.asarray(vector, dtype="float32").reshape(-1)]
