"""Turn local audio recordings into summarized Notion pages."""

__version__ = "1.0.0"
