"""Recommendation tracker API: books, movies, shows and more, recommended by people you know."""

__version__ = "0.3.0"
