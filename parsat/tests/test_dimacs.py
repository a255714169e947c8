import gzip

import pytest

from parsat.engine.dimacs import load_dimacs, parse_dimacs
from parsat.tests import SCENARIO_CNF
from parsat.utils.exceptions import ParseError


def test_parse_plain_dimacs():
    problem = parse_dimacs(SCENARIO_CNF)
    assert problem.num_vars == 2
    assert problem.clauses == ((1, 2),)


def test_clauses_may_span_lines():
    problem = parse_dimacs("p cnf 3 2\n1 -2\n 3 0 -1 0\n")
    assert problem.clauses == ((1, -2, 3), (-1,))


def test_header_can_declare_unused_variables():
    problem = parse_dimacs("p cnf 10 1\n1 0\n")
    assert problem.num_vars == 10


def test_load_gzip_from_bytes_and_path(tmp_path):
    data = gzip.compress(SCENARIO_CNF.encode())
    assert load_dimacs(data).clauses == ((1, 2),)

    path = tmp_path / "scenario.cnf.gz"
    path.write_bytes(data)
    assert load_dimacs(str(path)).clauses == ((1, 2),)


def test_load_plain_file(tmp_path):
    path = tmp_path / "scenario.cnf"
    path.write_text(SCENARIO_CNF)
    assert load_dimacs(path).num_vars == 2


def test_missing_file_is_a_parse_error(tmp_path):
    with pytest.raises(ParseError):
        load_dimacs(str(tmp_path / "missing.cnf"))


@pytest.mark.parametrize(
    "text",
    [
        "p cnf 2 1\n1 x 0\n",
        "p cnf two 1\n1 0\n",
        "p dnf 2 1\n1 0\n",
        "p cnf 2 1\np cnf 2 1\n1 0\n",
    ],
)
def test_malformed_input(text):
    with pytest.raises(ParseError):
        parse_dimacs(text)


@pytest.mark.parametrize(
    "text",
    [
        "1 2 0\n",
        "p cnf 2 2\n1 2 0\n",
        "p cnf 1 1\n1 2 0\n",
        "p cnf 2 1\n1 2\n",
    ],
)
def test_strict_header_validation(text):
    parse_dimacs(text)
    with pytest.raises(ParseError):
        parse_dimacs(text, strict=True)


def test_corrupt_gzip():
    with pytest.raises(ParseError):
        load_dimacs(b"\x1f\x8bnot really gzip")
