"""Configuration, logging and exceptions."""
