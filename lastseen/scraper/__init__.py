"""Profile fetching, timestamp extraction and recency classification."""

from lastseen.scraper.classifier import classify, days_ago, render_result
from lastseen.scraper.extractor import extract_timestamps, iter_timestamps

__all__ = ["classify", "days_ago", "extract_timestamps", "iter_timestamps", "render_result"]
