"""
parsat: portfolio coordination for parallel SAT solving.

Several workers solve the same CNF restricted to disjoint cubes over a few
seed variables; the last worker collects every verdict and reports one answer.
"""
import os

__version__ = "0.1.0"

# Debug flag - can be set via environment variable PARSAT_DEBUG
PARSAT_DEBUG = os.environ.get("PARSAT_DEBUG", "False").lower() in ("true", "1", "yes")
