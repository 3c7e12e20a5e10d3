"""Shared helpers; currently the console logger used by every pipeline stage."""

from .logger import get_logger

__all__ = ["get_logger"]
