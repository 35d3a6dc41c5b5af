"""Student progress tracking module.

Provides:
- One progress record per (student, course), created at enrollment
- Lesson completion
- Completion percentage derived from the course structure
"""

from .models import PROGRESS_TABLES_CQL, ProgressRecord
from .service import ProgressTracker, compute_percentage


__all__ = [
    "PROGRESS_TABLES_CQL",
    "ProgressRecord",
    "ProgressTracker",
    "compute_percentage",
]
