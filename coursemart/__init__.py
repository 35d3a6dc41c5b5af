"""CourseMart - course marketplace enrollment and progress API."""

__version__ = "0.1.0"
