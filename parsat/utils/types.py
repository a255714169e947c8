# coding: utf-8
"""
Shared value types.
"""

from enum import Enum


class Verdict(Enum):
    """Outcome of one solving attempt (local or aggregated).

    The value doubles as the process exit code and as the verdict code sent
    over the channel.
    """

    SAT = 10
    UNSAT = 20
    UNKNOWN = 0

    @property
    def exit_code(self) -> int:
        return self.value

    @property
    def token(self) -> str:
        """First line of the result artifact."""
        return _TOKENS[self]

    @property
    def banner(self) -> str:
        """Human-readable verdict line printed on stdout."""
        return _BANNERS[self]

    @classmethod
    def from_code(cls, code: int) -> "Verdict":
        """Map a wire verdict code back to a Verdict (ValueError if unknown)."""
        return cls(code)


_TOKENS = {
    Verdict.SAT: "SAT",
    Verdict.UNSAT: "UNSAT",
    Verdict.UNKNOWN: "INDET",
}

_BANNERS = {
    Verdict.SAT: "SATISFIABLE",
    Verdict.UNSAT: "UNSATISFIABLE",
    Verdict.UNKNOWN: "INDETERMINATE",
}
