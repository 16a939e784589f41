"""Allow running as ``python -m chatexporter``."""

from chatexporter.cli.main import app

if __name__ == "__main__":
    app()
