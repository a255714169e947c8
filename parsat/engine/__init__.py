# coding: utf-8
from .base import Engine, load_engine
from .dimacs import load_dimacs, parse_dimacs

# Export
__all__ = ["Engine", "load_engine", "load_dimacs", "parse_dimacs"]
