"""
Monitoring for live event streams.
"""

from .stream_metrics import StreamMetrics, log_summary

__all__ = ["StreamMetrics", "log_summary"]
