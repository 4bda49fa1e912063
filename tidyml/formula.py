from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

_TERM_SPLIT = re.compile(r"\s*\+\s*|\s+(?=-)")


@dataclass(frozen=True)
class Formula:
    """Outcome column plus an explicit, ordered tuple of predictor columns.

    Example:
        >>> Formula.parse("y ~ .", ["y", "a", "b"])
        Formula(outcome='y', predictors=('a', 'b'))
        >>> Formula.parse("y ~ b + a", ["y", "a", "b"]).predictors
        ('b', 'a')
    """

    outcome: str
    predictors: Tuple[str, ...]

    def __post_init__(self):
        if not self.outcome:
            raise ValueError("Formula needs an outcome column")
        if not self.predictors:
            raise ValueError("Formula needs at least one predictor")
        if self.outcome in self.predictors:
            raise ValueError(f"Outcome '{self.outcome}' cannot also be a predictor")
        if len(set(self.predictors)) != len(self.predictors):
            raise ValueError(f"Duplicate predictors in formula: {list(self.predictors)}")

    @classmethod
    def parse(cls, text: str, columns: Iterable[str]) -> "Formula":
        """Parse ``"outcome ~ a + b"`` or ``"outcome ~ ."`` against known columns.

        ``-col`` terms remove columns, so ``"y ~ . - id"`` keeps everything but ``id``.
        """
        columns = list(columns)
        if "~" not in text:
            raise ValueError(f"Formula must contain '~': {text!r}")
        lhs, rhs = (part.strip() for part in text.split("~", 1))
        if not lhs or lhs not in columns:
            raise ValueError(f"Outcome '{lhs}' is not a column")

        included: list[str] = []
        excluded: set[str] = set()
        # '-' removes a column only at the start of a term, so 'sq-ft' stays one name
        for term in _TERM_SPLIT.split(rhs.strip()):
            if not term:
                continue
            if term.startswith("-"):
                excluded.add(term[1:].strip())
                continue
            if term == ".":
                included.extend(c for c in columns if c != lhs)
                continue
            if term not in columns:
                raise ValueError(f"Predictor '{term}' is not a column")
            included.append(term)

        unknown = excluded - set(columns)
        if unknown:
            raise ValueError(f"Cannot remove unknown columns: {sorted(unknown)}")
        predictors: list[str] = []
        for col in included:
            if col not in excluded and col not in predictors:
                predictors.append(col)
        return cls(outcome=lhs, predictors=tuple(predictors))

    @classmethod
    def from_columns(cls, outcome: str, predictors: Sequence[str]) -> "Formula":
        return cls(outcome=outcome, predictors=tuple(predictors))

    @property
    def columns(self) -> list[str]:
        return [*self.predictors, self.outcome]

    def __str__(self) -> str:
        return f"{self.outcome} ~ {' + '.join(self.predictors)}"


__all__ = ["Formula"]
