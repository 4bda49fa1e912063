# tidyml/models/spec.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..errors import ModelSpecError

MODES = ("regression", "classification")


class TuneMarker:
    """Placeholder for an argument whose value comes from a tuning grid."""

    __slots__ = ("id",)

    def __init__(self, id: Optional[str] = None):
        self.id = id

    def __repr__(self) -> str:
        return f"tune({self.id!r})" if self.id else "tune()"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, TuneMarker) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("tune", self.id))


def tune(id: Optional[str] = None) -> TuneMarker:
    return TuneMarker(id)


def is_tune(value: Any) -> bool:
    return isinstance(value, TuneMarker)


# family -> main arguments, supported modes, engines (first one is the default)
FAMILIES: Dict[str, Dict[str, Any]] = {
    "linear_reg": {
        "args": ["penalty", "mixture"],
        "modes": ["regression"],
        "engines": ["sklearn"],
    },
    "logistic_reg": {
        "args": ["penalty", "mixture"],
        "modes": ["classification"],
        "engines": ["sklearn"],
    },
    "rand_forest": {
        "args": ["mtry", "trees", "min_n"],
        "modes": ["regression", "classification"],
        "engines": ["sklearn"],
    },
    "boost_tree": {
        "args": ["mtry", "trees", "min_n", "tree_depth", "learn_rate", "loss_reduction", "sample_size"],
        "modes": ["regression", "classification"],
        "engines": ["xgboost", "lightgbm", "catboost", "sklearn"],
    },
    "decision_tree": {
        "args": ["cost_complexity", "tree_depth", "min_n"],
        "modes": ["regression", "classification"],
        "engines": ["sklearn"],
    },
}

LINEAR_FAMILIES = {"linear_reg", "logistic_reg"}


@dataclass(frozen=True)
class ModelSpec:
    """
    Описание модели в стиле parsnip: семейство, режим, движок и аргументы.

    Объект неизменяемый: ``set_engine`` / ``set_mode`` / ``update`` возвращают
    новую спецификацию. Аргументы со значением ``tune()`` подставляются из
    сетки перебора (``tidyml.tune``), до этого модель обучить нельзя.
    """

    family: str
    mode: str = "unknown"
    engine: Optional[str] = None
    args: Dict[str, Any] = field(default_factory=dict)
    engine_args: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        info = FAMILIES.get(self.family)
        if info is None:
            raise ModelSpecError(f"Unknown model family: {self.family!r} (known: {sorted(FAMILIES)})")
        if self.mode == "unknown" and len(info["modes"]) == 1:
            object.__setattr__(self, "mode", info["modes"][0])
        if self.mode != "unknown" and self.mode not in info["modes"]:
            raise ModelSpecError(f"{self.family} does not support mode {self.mode!r}; use one of {info['modes']}")
        if self.engine is None:
            object.__setattr__(self, "engine", info["engines"][0])
        if self.engine not in info["engines"]:
            raise ModelSpecError(f"{self.family} does not support engine {self.engine!r}; use one of {info['engines']}")
        unknown = set(self.args) - set(info["args"])
        if unknown:
            raise ModelSpecError(f"{self.family} has no arguments {sorted(unknown)}; expected {info['args']}")

    def set_engine(self, engine: str, **engine_args: Any) -> "ModelSpec":
        return replace(self, engine=engine, engine_args=dict(engine_args))

    def set_mode(self, mode: str) -> "ModelSpec":
        if mode not in MODES:
            raise ModelSpecError(f"Unknown mode {mode!r}; expected one of {MODES}")
        return replace(self, mode=mode)

    def update(self, **args: Any) -> "ModelSpec":
        """Replace main (or, if not main, engine) arguments."""
        main = set(FAMILIES[self.family]["args"])
        new_args = dict(self.args)
        new_engine = dict(self.engine_args)
        for k, v in args.items():
            if k in main:
                new_args[k] = v
            elif k in new_engine:
                new_engine[k] = v
            else:
                raise ModelSpecError(f"{self.family} has no argument {k!r}")
        return replace(self, args=new_args, engine_args=new_engine)

    def tunable(self) -> List[str]:
        """Names (or tune ids) of arguments marked with ``tune()``, in declaration order."""
        out = []
        for k, v in {**self.args, **self.engine_args}.items():
            if is_tune(v):
                out.append(v.id or k)
        return out

    def tune_args(self) -> Dict[str, str]:
        """Map parameter id -> argument name for every ``tune()`` marker."""
        return {(v.id or k): k for k, v in {**self.args, **self.engine_args}.items() if is_tune(v)}

    def check_ready(self) -> None:
        if self.mode == "unknown":
            raise ModelSpecError(f"{self.family}: mode is not set; call set_mode('regression'|'classification')")
        pending = self.tunable()
        if pending:
            raise ModelSpecError(f"{self.family}: unresolved tune() arguments {pending}; finalize the workflow first")

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.args.items() if v is not None)
        return f"{self.family}({args}) mode={self.mode} engine={self.engine}"


def _spec(family: str, mode: str, engine: Optional[str], **args: Any) -> ModelSpec:
    return ModelSpec(family=family, mode=mode, engine=engine, args={k: v for k, v in args.items() if v is not None})


def linear_reg(penalty=None, mixture=None, mode: str = "regression", engine: Optional[str] = None) -> ModelSpec:
    return _spec("linear_reg", mode, engine, penalty=penalty, mixture=mixture)


def logistic_reg(penalty=None, mixture=None, mode: str = "classification", engine: Optional[str] = None) -> ModelSpec:
    return _spec("logistic_reg", mode, engine, penalty=penalty, mixture=mixture)


def rand_forest(mtry=None, trees=None, min_n=None, mode: str = "unknown", engine: Optional[str] = None) -> ModelSpec:
    return _spec("rand_forest", mode, engine, mtry=mtry, trees=trees, min_n=min_n)


def boost_tree(
    mtry=None,
    trees=None,
    min_n=None,
    tree_depth=None,
    learn_rate=None,
    loss_reduction=None,
    sample_size=None,
    mode: str = "unknown",
    engine: Optional[str] = None,
) -> ModelSpec:
    return _spec(
        "boost_tree", mode, engine,
        mtry=mtry, trees=trees, min_n=min_n, tree_depth=tree_depth,
        learn_rate=learn_rate, loss_reduction=loss_reduction, sample_size=sample_size,
    )


def decision_tree(cost_complexity=None, tree_depth=None, min_n=None, mode: str = "unknown", engine: Optional[str] = None) -> ModelSpec:
    return _spec("decision_tree", mode, engine, cost_complexity=cost_complexity, tree_depth=tree_depth, min_n=min_n)


CONSTRUCTORS = {
    "linear_reg": linear_reg,
    "logistic_reg": logistic_reg,
    "rand_forest": rand_forest,
    "boost_tree": boost_tree,
    "decision_tree": decision_tree,
}


def spec_from_config(section: Dict[str, Any]) -> ModelSpec:
    """Build a spec from ``{"family", "mode", "engine", "args", "engine_args"}``; ``"tune"`` strings become markers."""
    family = section["family"]
    if family not in CONSTRUCTORS:
        raise ModelSpecError(f"Unknown model family: {family!r}")
    args = {k: (tune() if v == "tune" else v) for k, v in (section.get("args") or {}).items()}
    default_mode = "unknown" if len(FAMILIES[family]["modes"]) > 1 else FAMILIES[family]["modes"][0]
    spec = _spec(family, section.get("mode", default_mode), section.get("engine"), **args)
    engine_args = {k: (tune() if v == "tune" else v) for k, v in (section.get("engine_args") or {}).items()}
    if engine_args:
        spec = spec.set_engine(spec.engine, **engine_args)
    return spec


__all__ = [
    "ModelSpec",
    "TuneMarker",
    "tune",
    "is_tune",
    "FAMILIES",
    "LINEAR_FAMILIES",
    "linear_reg",
    "logistic_reg",
    "rand_forest",
    "boost_tree",
    "decision_tree",
    "spec_from_config",
]
