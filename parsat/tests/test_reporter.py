import pytest

from parsat.portfolio.models import AggregateVerdict
from parsat.portfolio.reporter import format_result, report
from parsat.utils.exceptions import WriteError
from parsat.utils.types import Verdict


def test_sat_lists_assigned_variables_only():
    agg = AggregateVerdict(Verdict.SAT, (True, None, False, True), 0)
    assert format_result(agg) == "SAT\n1 -3 4 0\n"


def test_unsat_and_unknown_have_one_line():
    assert format_result(AggregateVerdict(Verdict.UNSAT)) == "UNSAT\n"
    assert format_result(AggregateVerdict(Verdict.UNKNOWN)) == "INDET\n"


def test_empty_model():
    assert format_result(AggregateVerdict(Verdict.SAT, (), 0)) == "SAT\n0\n"


def test_report_writes_file(tmp_path):
    path = tmp_path / "result.txt"
    report(AggregateVerdict(Verdict.SAT, (False, True), 1), str(path))
    assert path.read_text() == "SAT\n-1 2 0\n"


def test_report_without_path_is_a_no_op():
    report(AggregateVerdict(Verdict.UNSAT), None)


def test_unwritable_path_raises_write_error(tmp_path):
    with pytest.raises(WriteError):
        report(AggregateVerdict(Verdict.UNSAT), str(tmp_path / "missing" / "out.txt"))
