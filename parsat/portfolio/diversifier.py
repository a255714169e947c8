# coding: utf-8
"""Split the search space into one sign cube per worker.

Each worker index is read as a k-bit word over the k seed variables, most
significant bit first. A clear bit keeps the seed variable positive, a set
bit negates it, so with seeds (1, 2) and four workers:

    worker 0 -> ( 1,  2)
    worker 1 -> ( 1, -2)
    worker 2 -> (-1,  2)
    worker 3 -> (-1, -2)
"""

from __future__ import annotations

from typing import List, Sequence

from parsat.utils.exceptions import ConfigurationError

from .models import AssumptionSet


def check_seed_capacity(seed_variables: Sequence[int], num_workers: int) -> None:
    """Raise ConfigurationError unless every worker can get its own cube."""
    if num_workers < 1:
        raise ConfigurationError(f"worker count must be positive, got {num_workers}")
    if any(not isinstance(v, int) or v <= 0 for v in seed_variables):
        raise ConfigurationError(
            f"seed variables must be positive integers, got {list(seed_variables)}"
        )
    if len(set(seed_variables)) != len(seed_variables):
        raise ConfigurationError(
            f"seed variables must be distinct, got {list(seed_variables)}"
        )
    capacity = 1 << len(seed_variables)
    if num_workers > capacity:
        raise ConfigurationError(
            f"{num_workers} workers exceed the {capacity} sign combinations "
            f"of {len(seed_variables)} seed variable(s)"
        )


def generate(
    worker_index: int, seed_variables: Sequence[int], num_workers: int
) -> AssumptionSet:
    """Return the assumption set of one worker."""
    check_seed_capacity(seed_variables, num_workers)
    if not 0 <= worker_index < num_workers:
        raise ConfigurationError(
            f"worker index {worker_index} outside 0..{num_workers - 1}"
        )
    k = len(seed_variables)
    assumps = []
    for i, v in enumerate(seed_variables):
        bit = (worker_index >> (k - 1 - i)) & 1
        assumps.append(-v if bit == 1 else v)
    return tuple(assumps)


def generate_all(
    seed_variables: Sequence[int], num_workers: int
) -> List[AssumptionSet]:
    """Assumption sets of workers 0..num_workers-1, validated once up front."""
    check_seed_capacity(seed_variables, num_workers)
    return [generate(i, seed_variables, num_workers) for i in range(num_workers)]


def default_seed_variables(num_workers: int) -> List[int]:
    """Variables 1..k for the smallest k >= 1 with 2**k >= num_workers."""
    if num_workers < 1:
        raise ConfigurationError(f"worker count must be positive, got {num_workers}")
    k = max(1, (num_workers - 1).bit_length())
    return list(range(1, k + 1))
