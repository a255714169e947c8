# coding: utf-8
"""
DIMACS CNF reader for plain and gzip-compressed input.

Every worker calls this on its own source: either a path (opened
independently per worker) or bytes read once from standard input by the
launcher.
"""

import gzip
import os
from typing import List, Optional, Union

from parsat.portfolio.models import Problem
from parsat.utils.exceptions import ParseError

ProblemSource = Union[str, os.PathLike, bytes]

GZIP_MAGIC = b"\x1f\x8b"


def read_source(source: ProblemSource) -> bytes:
    """Return the raw bytes of the source, transparently gunzipped."""
    if isinstance(source, bytes):
        data = source
    else:
        try:
            with open(source, "rb") as f:
                data = f.read()
        except OSError as exc:
            raise ParseError(f"could not open file: {source}") from exc
    if data[:2] == GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError) as exc:
            raise ParseError(f"corrupt gzip input: {exc}") from exc
    return data


def parse_dimacs(text: str, strict: bool = False) -> Problem:
    """
    Parse DIMACS CNF text.
    :param text: the whole input
    :param strict: require a header and check it against the clauses
    :return: the parsed Problem
    """
    header_vars: Optional[int] = None
    header_clauses: Optional[int] = None
    clauses: List[tuple] = []
    current: List[int] = []
    max_var = 0

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line[0] == "c":
            continue
        if line[0] == "%":
            # SATLIB end marker
            break
        if line[0] == "p":
            if header_vars is not None:
                raise ParseError(f"line {lineno}: duplicate header")
            fields = line.split()
            if len(fields) != 4 or fields[1] != "cnf":
                raise ParseError(f"line {lineno}: malformed header {line!r}")
            try:
                header_vars, header_clauses = int(fields[2]), int(fields[3])
            except ValueError as exc:
                raise ParseError(f"line {lineno}: malformed header {line!r}") from exc
            if header_vars < 0 or header_clauses < 0:
                raise ParseError(f"line {lineno}: negative header counts")
            continue
        if strict and header_vars is None:
            raise ParseError(f"line {lineno}: clause before 'p cnf' header")
        for token in line.split():
            try:
                lit = int(token)
            except ValueError as exc:
                raise ParseError(f"line {lineno}: unexpected token {token!r}") from exc
            if lit == 0:
                clauses.append(tuple(current))
                current = []
            else:
                current.append(lit)
                max_var = max(max_var, abs(lit))

    if current:
        if strict:
            raise ParseError("last clause is not terminated by 0")
        clauses.append(tuple(current))

    if strict:
        if header_vars is None:
            raise ParseError("missing 'p cnf' header")
        if header_clauses != len(clauses):
            raise ParseError(
                f"DIMACS header mismatch: {header_clauses} clauses declared, "
                f"{len(clauses)} found"
            )
        if max_var > header_vars:
            raise ParseError(
                f"DIMACS header mismatch: variable {max_var} exceeds "
                f"declared {header_vars}"
            )

    num_vars = max(max_var, header_vars or 0)
    return Problem(num_vars=num_vars, clauses=tuple(clauses))


def load_dimacs(source: ProblemSource, strict: bool = False) -> Problem:
    """Read and parse a DIMACS problem from a path or in-memory bytes."""
    data = read_source(source)
    try:
        text = data.decode("ascii")
    except UnicodeDecodeError as exc:
        raise ParseError("input is not ASCII DIMACS") from exc
    return parse_dimacs(text, strict=strict)
