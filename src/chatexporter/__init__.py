"""chatexporter - export ChatGPT conversations to Markdown, HTML and JSON."""

__version__ = "0.3.0"
