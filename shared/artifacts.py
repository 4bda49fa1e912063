from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

ROOT = Path("artifacts/runs")


def make_run_id(name: str, mode: str, fingerprint: str, seed: int | None) -> str:
    ts = time.strftime("%Y%m%d-%H%M%S")
    return f"{ts}-{name}-{mode}-{fingerprint}-{seed if seed is not None else 'noseed'}"


def path(run_id: str, root: Path | str | None = None) -> Path:
    p = Path(root or ROOT) / run_id
    p.mkdir(parents=True, exist_ok=True)
    return p


def _to_jsonable(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(v) for v in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return obj.as_posix()
    return obj


def save_json(run_dir: Path, name: str, payload: Any) -> Path:
    p = run_dir / name
    p.write_text(json.dumps(_to_jsonable(payload), ensure_ascii=False, indent=2))
    return p


def save_manifest(run_dir: Path, manifest: Dict[str, Any]) -> Path:
    return save_json(run_dir, "manifest.json", manifest)


def load_manifest(run_dir: Path) -> Dict[str, Any]:
    return json.loads((run_dir / "manifest.json").read_text()) if (run_dir / "manifest.json").exists() else {}


def save_frame(run_dir: Path, name: str, df: pd.DataFrame) -> Path:
    p = run_dir / name
    df.to_csv(p, index=False)
    return p
