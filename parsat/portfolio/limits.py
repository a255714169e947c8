# coding: utf-8
"""Per-process CPU time and memory limits."""

import logging
import resource

logger = logging.getLogger(__name__)


def _lower_soft_limit(kind: int, value: int, label: str) -> bool:
    soft, hard = resource.getrlimit(kind)
    if soft != resource.RLIM_INFINITY and soft <= value:
        return True
    if hard != resource.RLIM_INFINITY and value > hard:
        logger.warning("could not set %s limit above the hard limit %d", label, hard)
        return False
    try:
        resource.setrlimit(kind, (value, hard))
    except (ValueError, OSError) as exc:
        logger.warning("could not set %s limit: %s", label, exc)
        return False
    return True


def limit_time(seconds: int) -> bool:
    """Set the CPU time soft limit; SIGXCPU is delivered when it is reached."""
    if seconds <= 0:
        return False
    return _lower_soft_limit(resource.RLIMIT_CPU, seconds, "CPU time")


def limit_memory(megabytes: int) -> bool:
    """Cap the address space; allocations beyond it surface as MemoryError."""
    if megabytes <= 0:
        return False
    return _lower_soft_limit(resource.RLIMIT_AS, megabytes * 1024 * 1024, "memory")
