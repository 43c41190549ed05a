"""
Entry point for running milobanana as a module: python -m milobanana
"""

from milobanana.cli.commands import app

if __name__ == "__main__":
    app()
