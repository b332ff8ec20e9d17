"""Configuration, errors, logging and per-user state shared by every engine."""
