# coding: utf-8
"""Portfolio coordination: cube generation, aggregation protocol, reporting.

The worker and launcher modules pull in the engines and are imported
directly (parsat.portfolio.worker, parsat.portfolio.launcher).
"""
from .coordinator import Coordinator, PROTOCOL_TAG, decode_result, encode_result, resolve
from .diversifier import default_seed_variables, generate, generate_all
from .models import (
    AggregateVerdict,
    PortfolioConfig,
    Problem,
    WorkerResult,
)
from .reporter import format_result, report

__all__ = [
    "AggregateVerdict",
    "Coordinator",
    "PROTOCOL_TAG",
    "PortfolioConfig",
    "Problem",
    "WorkerResult",
    "decode_result",
    "default_seed_variables",
    "encode_result",
    "format_result",
    "generate",
    "generate_all",
    "report",
    "resolve",
]
