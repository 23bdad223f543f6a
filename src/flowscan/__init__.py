"""Technical signal and institutional flow scanner for daily equity bars."""

from flowscan.exceptions import (ConfigError, DataSourceError,
                                 DataValidationError, FlowscanError)
from flowscan.flows import aggregate_flows, summarize
from flowscan.selection import select_candidates
from flowscan.signals import classify_series

__all__ = [
    "FlowscanError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
    "classify_series",
    "aggregate_flows",
    "summarize",
    "select_candidates",
]
