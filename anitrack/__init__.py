"""Anime episode tracker: reconciles owned episodes and finds missing ones on Nyaa."""

__version__ = "0.1.0"
