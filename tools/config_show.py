"""CLI to display the resolved configuration of a workflow."""
from __future__ import annotations

import argparse
import json
from pathlib import Path

import yaml

from shared.configs import load_config, parse_set_args


def main() -> None:
    parser = argparse.ArgumentParser(description="Show resolved config")
    parser.add_argument("workflow", help="name under configs/workflows or a path to a .yaml file")
    parser.add_argument("--section", default=None, help="e.g. tune.grid")
    parser.add_argument("--as", dest="fmt", choices=["json", "yaml"], default="yaml")
    parser.add_argument("--override", action="append", dest="overrides", default=[], help="extra YAML layer")
    parser.add_argument("--set", dest="sets", action="append", default=[], help="key.path=value")
    parser.add_argument("--fingerprint", action="store_true", help="print only the config fingerprint")
    args = parser.parse_args()

    cfg = load_config(
        args.workflow,
        overrides_paths=[Path(p) for p in args.overrides],
        cli_overrides=parse_set_args(args.sets),
    )
    if args.fingerprint:
        print(cfg.fingerprint)
        return
    resolved = cfg.resolved
    if args.section:
        for part in args.section.split("."):
            resolved = resolved.get(part, {}) if isinstance(resolved, dict) else {}
    if args.fmt == "json":
        print(json.dumps(resolved, indent=2, ensure_ascii=False))
    else:
        print(yaml.safe_dump(resolved, allow_unicode=True, sort_keys=False))


if __name__ == "__main__":
    main()
