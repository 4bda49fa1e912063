from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, Mapping

# keys that never change what a run computes
IGNORED_KEYS = frozenset({"paths", "logging", "output", "run_tag"})
WORKFLOW_SECTIONS = ("formula", "dataset", "split", "resamples", "recipe", "model", "tune")


def _prune(obj: Any, ignored: Iterable[str] = IGNORED_KEYS) -> Any:
    if isinstance(obj, Mapping):
        return {str(k): _prune(v, ignored) for k, v in obj.items() if k not in ignored}
    if isinstance(obj, (list, tuple)):
        return [_prune(v, ignored) for v in obj]
    return obj


def _digest(payload: Any, length: int) -> str:
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(serialized.encode("utf-8")).hexdigest()[:length]


def compute_fingerprint(config: Mapping[str, Any], length: int = 10) -> str:
    """Stable hash of everything that influences results (paths, logging and output are ignored)."""
    return _digest(_prune(config), length)


def section_fingerprints(config: Mapping[str, Any], length: int = 8) -> Dict[str, str]:
    """Per-section hashes, so two manifests show which part of the workflow differs."""
    return {key: _digest(_prune(config[key]), length) for key in WORKFLOW_SECTIONS if key in config}
