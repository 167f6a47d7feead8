"""Monthly mutual-fund snapshot ingestion."""

__version__ = "0.1.0"
