from importlib import import_module

__all__ = [
    "artifacts",
    "configs",
    "io",
    "read_dataset",
    "set_global_seed",
    "setup_logging",
    "StageTimer",
    "validators",
]

_ALIASES = {
    "read_dataset": ("shared.io", "read_dataset"),
    "set_global_seed": ("shared.seed", "set_global_seed"),
    "setup_logging": ("shared.logs", "setup_logging"),
    "StageTimer": ("shared.timer", "StageTimer"),
}


def __getattr__(name: str):
    if name in {"artifacts", "configs", "io", "validators"}:
        return import_module(f"shared.{name}")
    if name in _ALIASES:
        module_name, attr_name = _ALIASES[name]
        return getattr(import_module(module_name), attr_name)
    raise AttributeError(f"module 'shared' has no attribute {name}")
