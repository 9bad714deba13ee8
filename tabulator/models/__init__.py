"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy.

Note: Feature models are imported lazily to avoid circular imports.
Use direct imports from features/ modules when possible.
"""

from tabulator.models.base import Base


def _get_score_models():
    """Lazy import of Score model."""
    from tabulator.features.scores.models import Score
    return Score


def _get_competition_models():
    """Lazy import of Competition model."""
    from tabulator.features.competitions.models import Competition
    return Competition


def __getattr__(name):
    if name == "Score":
        return _get_score_models()
    if name == "Competition":
        return _get_competition_models()

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Base",
    "Score",
    "Competition",
]
