"""Boat Vision: turn trailer-lot boat photos into on-water marketing renders."""

__version__ = "1.0.0"
