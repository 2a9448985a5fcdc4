"""
Shared Constants for the Card Reading Pipeline

This module contains constants used across multiple modules to ensure
consistency and avoid duplication.
"""

# ============================================================================
# Serial Number Constants
# ============================================================================
# Shortest text that can plausibly be a card serial number
MIN_SERIAL_LENGTH = 10

# ============================================================================
# OCR Character Whitelists
# ============================================================================
LATIN_UPPERCASE_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ASCII_DIGITS = "0123456789"
ARABIC_INDIC_DIGITS = "٠١٢٣٤٥٦٧٨٩"  # U+0660..U+0669
EXTENDED_ARABIC_INDIC_DIGITS = "۰۱۲۳۴۵۶۷۸۹"  # U+06F0..U+06F9 (Persian)
PERSIAN_DIGITS_WHITELIST = ASCII_DIGITS + ARABIC_INDIC_DIGITS

# ============================================================================
# Homography Sanity Bounds
# ============================================================================
MIN_AXIS_NORM = 0.1  # N1/N2 lower bound (axis shrink)
MAX_AXIS_NORM = 4.0  # N1/N2 upper bound (axis stretch)
MAX_PERSPECTIVE_NORM = 0.002  # N3 upper bound (perspective row)

# ============================================================================
# Confidence Range
# ============================================================================
MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100
