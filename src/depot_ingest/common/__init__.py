"""Constants shared across the package."""
