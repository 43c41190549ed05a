"""CLI module for milobanana."""
