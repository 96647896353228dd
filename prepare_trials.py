#!/usr/bin/env -S uv run

from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path

from knee_sim.env import env_output_dir
from knee_sim.errors import TrialError
from knee_sim.output import write_batch_summary, write_trial_outputs
from knee_sim.plotting import plot_trial_signals
from knee_sim.settings import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_OUTPUT_DIR,
    apply_env_overrides,
    config_from_dict,
    opt_str,
    read_config,
    read_study_settings,
    resolve_path,
    validate_config,
)
from knee_sim.trial import build_trials
from knee_sim.trial_names import build_trial_names


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Prepare prescribed-coordinate and external-load signals for knee laxity / flexion trials."
    )
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config.json (default: repo root).")
    parser.add_argument(
        "--trial",
        action="append",
        default=None,
        help="Trial name, e.g. flex_passive_0_90 or lax_ant-comp_frc150-3000_30. Repeatable. Default: expand config 'study'.",
    )
    parser.add_argument("--out", type=Path, default=None, help="Output directory (default: config output_dir).")
    parser.add_argument("--time-step", type=float, default=None, help="Override timeline.time_step_s (s).")
    parser.add_argument("--plot", action="store_true", help="Write a PNG of the signals for each trial.")
    parser.add_argument("--dry-run", action="store_true", help="Build and validate trials without writing files.")
    args = parser.parse_args(argv)

    try:
        cfg = read_config(args.config)
        config = apply_env_overrides(config_from_dict(cfg))
        if args.time_step is not None:
            config = replace(config, time_step_s=args.time_step)
            validate_config(config)

        if args.trial:
            names = list(args.trial)
        else:
            study = read_study_settings(cfg)
            names = build_trial_names(study.test_dofs, study.knee_flex_angles, study.external_loads)

        print(f"Preparing {len(names)} trial(s), dt={config.time_step_s:g} s")
        records = build_trials(names, config)
    except (OSError, json.JSONDecodeError, TrialError, KeyError, ValueError) as e:
        raise SystemExit(f"ERROR: {e}") from e

    if args.dry_run:
        return

    out_env = env_output_dir()
    if args.out is not None:
        out_dir = args.out
    elif out_env is not None:
        out_dir = out_env
    else:
        out_dir = resolve_path(opt_str(cfg, ["output_dir"], str(DEFAULT_OUTPUT_DIR)))

    for rec in records:
        write_trial_outputs(rec, out_dir)
        if args.plot:
            plot_trial_signals(rec, out_dir / f"{rec.name}.png")

    summary_path = write_batch_summary(records, out_dir)
    print(f"\nSummary written to {summary_path}")
    print(f"Results written to {out_dir}/")


if __name__ == "__main__":
    main()
