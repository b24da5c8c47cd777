"""Progress state, rate estimation, templates and line rendering for progress bars and spinners."""

__version__ = "0.1.0"