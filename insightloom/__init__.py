"""insightloom — map-reduce consolidation of code summaries into architectural insights."""

__version__ = "0.1.0"
