"""
Utility helpers for sheetrecords.
"""

from sheetrecords.utils.frames import records_to_frame

__all__ = ["records_to_frame"]
