"""
Entry point for running i18n-extract as a module.

Usage:
    python -m i18n_extract --help
    python -m i18n_extract extract --input src
    python -m i18n_extract info
"""
from .cli import app


if __name__ == "__main__":
    app()
