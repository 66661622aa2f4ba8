"""CLI entry point for python -m ytstudio"""
from ytstudio.cli.commands import app

if __name__ == "__main__":
    app()
