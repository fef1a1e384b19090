"""textsense — multi-provider text explanation and summarization service."""

__version__ = "0.1.0"
