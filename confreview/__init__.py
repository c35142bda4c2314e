"""Conference review backend: submissions, reviewer assignment, review workflow."""

__version__ = "0.1.0"
