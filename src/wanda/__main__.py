"""Wanda CLI entry point."""

from wanda.cli import app

if __name__ == "__main__":
    app()
