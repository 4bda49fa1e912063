#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
tools/run_workflow.py

Прогон эксперимента по YAML-конфигу:
- загрузка датасета, train/test split, v-fold CV,
- рецепт предобработки и спецификация модели,
- перебор сетки (или fit_resamples без tune()), выбор лучшего кандидата,
- финальное обучение на train и оценка на test,
- артефакты в artifacts/runs/<run_id>/ (метрики, параметры, графики, manifest.json).

CLI примеры:
    python tools/run_workflow.py cells_rf
    python tools/run_workflow.py housing_lm --set tune.n_jobs=2 --set resamples.v=5
    python tools/run_workflow.py configs/workflows/cells_rf.yaml --dry-run
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from shared.configs import load_config, parse_set_args
from shared.logs import setup_from_config

LOG = logging.getLogger("run_workflow")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Split / tune / select / last fit from a workflow config")
    p.add_argument("workflow", help="name under configs/workflows or a path to a .yaml file")
    p.add_argument("--override", action="append", dest="overrides", default=[], help="extra YAML layer")
    p.add_argument("--set", dest="sets", action="append", default=[], help="key.path=value")
    p.add_argument("--out", default=None, help="root for run folders (default: output.dir)")
    p.add_argument("--log-file", default=None)
    p.add_argument("--dry-run", action="store_true", help="resolve and print the config, do not run")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    cfg = load_config(
        args.workflow,
        overrides_paths=[Path(p) for p in args.overrides],
        cli_overrides=parse_set_args(args.sets),
    )
    setup_from_config(cfg.resolved.get("logging"), log_file=args.log_file)
    LOG.info("config %s (fingerprint %s) from %d layers", args.workflow, cfg.fingerprint, len(cfg.sources))

    if args.dry_run:
        LOG.info("=== DRY-RUN ===")
        print(json.dumps(cfg.resolved, indent=2, ensure_ascii=False, default=str))
        return 0

    # imported here so --dry-run does not pay for matplotlib / engines
    from tidyml.runner import run_workflow

    result = run_workflow(cfg, root=args.out)
    LOG.info("best params: %s", result.best_params)
    for row in result.final_metrics.itertuples():
        LOG.info("test %-12s %.4f", row.metric, row.estimate)
    print(result.run_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
