"""Rebuilds Warhammer 40,000 faction documents from the Wahapedia data export."""

__version__ = "0.1.0"
