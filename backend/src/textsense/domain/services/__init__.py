"""Pure domain services."""

from textsense.domain.services.text_analysis import (
    analyze_text,
    local_explanation,
    local_summary,
)

__all__ = ["analyze_text", "local_explanation", "local_summary"]
