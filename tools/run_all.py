#!/usr/bin/env python3
"""Run *complete* conicsim validations.

This script executes:
- Python unit tests (pytest)
- Simulation scenarios (capture, escape)

It writes full logs + data + images into build/reports/.

Usage:
  python3 tools/run_all.py
  python3 tools/run_all.py --out build/reports
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import shutil
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

# Force headless plotting
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np


REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_OUT_ROOT = REPO_ROOT / "build" / "reports"

logger = logging.getLogger("run_all")


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")


def _run_cmd(
    cmd: list[str],
    *,
    cwd: Path,
    log_path: Path,
    env: Optional[dict[str, str]] = None,
) -> int:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("w", encoding="utf-8") as f:
        f.write(f"$ {' '.join(cmd)}\n")
        f.write(f"cwd={cwd}\n\n")
        f.flush()
        proc = subprocess.Popen(
            cmd,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=env,
        )
        assert proc.stdout is not None
        for line in proc.stdout:
            f.write(line)
        return proc.wait()


def _write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    def _default(o: Any):
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.generic):
            return o.item()
        return str(o)

    path.write_text(json.dumps(obj, indent=2, sort_keys=True, default=_default) + "\n", encoding="utf-8")


def _history_to_rows(history: Iterable[Any], craft_id: str, reference: Optional[str] = None) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for s in history:
        c = s.crafts[craft_id]
        pos = c.position if reference is None else c.position - s.body_positions[reference]
        rows.append(
            {
                "tick": int(s.tick),
                "elapsed_days": float(s.elapsed_days),
                "x_km": float(pos[0]),
                "y_km": float(pos[1]),
                "z_km": float(pos[2]),
                "speed_km_day": float(np.linalg.norm(c.velocity)),
                "mode": c.mode.name,
                "host": c.host or "",
                "main_influencer": c.main_influencer or "",
            }
        )
    return rows


def _write_csv(path: Path, rows: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not rows:
        path.write_text("", encoding="utf-8")
        return
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)


def _plot_trajectory(rows: list[dict[str, Any]], out_png: Path, title: str) -> None:
    out_png.parent.mkdir(parents=True, exist_ok=True)
    if not rows:
        return

    x = np.array([r["x_km"] for r in rows])
    y = np.array([r["y_km"] for r in rows])
    days = np.array([r["elapsed_days"] for r in rows])
    orbiting = np.array([1.0 if r["mode"] == "ORBITING" else 0.0 for r in rows])

    fig, axs = plt.subplots(2, 1, figsize=(10, 10), gridspec_kw={"height_ratios": [3, 1]})
    fig.suptitle(title)

    axs[0].plot(x, y, marker=".")
    axs[0].plot([0.0], [0.0], "o", color="tab:orange")
    axs[0].set_xlabel("x relative to reference body (km)")
    axs[0].set_ylabel("y (km)")
    axs[0].set_aspect("equal", adjustable="datalim")
    axs[0].grid(True)

    axs[1].step(days, orbiting, where="post")
    axs[1].set_ylabel("Orbiting")
    axs[1].set_yticks([0, 1])
    axs[1].set_xlabel("Time (days)")
    axs[1].grid(True)

    fig.tight_layout(rect=(0, 0, 1, 0.96))
    fig.savefig(out_png, dpi=160)
    plt.close(fig)


def _run_simulation_bundle(out_dir: Path) -> dict[str, Any]:
    # Import here so repo root is on sys.path
    sys.path.insert(0, str(REPO_ROOT))

    from conicsim.scenarios.capture import CaptureScenario
    from conicsim.scenarios.escape import EscapeScenario

    results: dict[str, Any] = {}

    scenarios = {
        "capture": CaptureScenario(),
        "escape": EscapeScenario(),
    }

    for name, scenario in scenarios.items():
        log_path = out_dir / "logs" / f"simulation_{name}.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s"))
        logging.getLogger("conicsim").addHandler(handler)
        try:
            res = scenario.run()
        finally:
            logging.getLogger("conicsim").removeHandler(handler)
            handler.close()

        results[name] = res
        _write_json(out_dir / "data" / f"{name}_results.json", res)

        history = scenario.history
        if history:
            craft_id = scenario.config.craft_id
            rows = _history_to_rows(history, craft_id)
            _write_csv(out_dir / "data" / f"{name}_timeseries.csv", rows)

            rel_rows = _history_to_rows(history, craft_id, scenario.config.body_id)
            _plot_trajectory(rel_rows, out_dir / "images" / f"{name}_trajectory.png", f"Scenario: {name}")

    return results


def main() -> int:
    parser = argparse.ArgumentParser(description="Run complete tests + simulations and write artifacts into build/")
    parser.add_argument("--out", default=str(DEFAULT_OUT_ROOT), help="Output root (default: build/reports)")
    parser.add_argument("--skip-pytests", action="store_true", help="Skip pytest")
    parser.add_argument("--skip-sim", action="store_true", help="Skip simulations")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    out_root = Path(args.out)
    stamp = _utc_stamp()
    run_dir = out_root / stamp
    latest_dir = out_root / "latest"

    run_dir.mkdir(parents=True, exist_ok=True)
    (run_dir / "logs").mkdir(exist_ok=True)
    (run_dir / "data").mkdir(exist_ok=True)
    (run_dir / "images").mkdir(exist_ok=True)

    meta = {
        "timestamp_utc": stamp,
        "python": sys.version,
        "repo": str(REPO_ROOT),
    }

    summary: dict[str, Any] = {"meta": meta, "steps": {}}

    # Pytests
    if not args.skip_pytests:
        code = _run_cmd(
            [
                sys.executable,
                "-m",
                "pytest",
                "-q",
                "--disable-warnings",
                "--maxfail=1",
                f"--junitxml={str(run_dir / 'data' / 'pytest-junit.xml')}",
                "tests",
            ],
            cwd=REPO_ROOT,
            log_path=run_dir / "logs" / "pytest.log",
            env={**os.environ, "PYTHONPATH": str(REPO_ROOT)},
        )
        summary["steps"]["pytest"] = {"exit_code": code}
        logger.info("pytest exit code %d", code)

    # Simulations
    if not args.skip_sim:
        try:
            sim_results = _run_simulation_bundle(run_dir)
            _write_json(run_dir / "data" / "simulation_summary.json", sim_results)
            summary["steps"]["simulations"] = {"ok": True, "scenarios": list(sim_results.keys())}
        except Exception as e:
            logger.exception("Simulation bundle failed")
            summary["steps"]["simulations"] = {"ok": False, "error": str(e)}

    _write_json(run_dir / "summary.json", summary)

    # Human-readable summary
    lines = [
        f"conicsim Validation Report ({stamp})",
        f"Output: {run_dir}",
        "",
        "Steps:",
    ]
    for k, v in summary["steps"].items():
        lines.append(f"- {k}: {v}")
    (run_dir / "summary.txt").write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Refresh latest/
    if latest_dir.exists():
        shutil.rmtree(latest_dir)
    shutil.copytree(run_dir, latest_dir)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
