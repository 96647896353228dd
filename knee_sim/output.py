"""Plain CSV/JSON dumps of trial records for inspection and hand-off."""

from __future__ import annotations

import csv
import json
from pathlib import Path

import numpy as np

from knee_sim.trial import TrialRecord


def write_columns_csv(path: Path, columns: dict[str, np.ndarray]) -> None:
    headers = list(columns.keys())
    data = np.column_stack([np.asarray(columns[h], dtype=float) for h in headers])

    with path.open('w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(headers)
        for i in range(data.shape[0]):
            w.writerow([f'{data[i, j]:.6f}' for j in range(data.shape[1])])


def trial_summary(record: TrialRecord) -> dict:
    d = record.descriptor
    summary = {
        'trial': record.name,
        'kind': d.kind,
        'dof_codes': list(d.dof_codes),
        'magnitudes': list(d.magnitudes),
        'flexion_angle_deg': d.flexion_angle_deg,
        'phases': list(record.plan.phase_names),
        'phase_durations_s': list(record.plan.durations),
        'breakpoints_s': record.plan.breakpoints.tolist(),
        'total_duration_s': record.plan.total_duration,
        'n_samples': record.n_samples,
    }
    if record.loads is not None:
        summary['active_load_channels'] = list(record.loads.active_channels)
        summary['final_load_values'] = {
            name: float(record.loads.channel(name)[-1]) for name in record.loads.active_channels
        }
    return summary


def write_trial_outputs(record: TrialRecord, out_dir: Path) -> list[Path]:
    """Write coordinates (and loads, if any) for one trial; return written paths."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    coords_path = out_dir / f'prescribed_coordinates_{record.name}.csv'
    write_columns_csv(coords_path, record.coordinate_columns())
    written.append(coords_path)

    load_cols = record.load_columns()
    if load_cols is not None:
        loads_path = out_dir / f'external_loads_{record.name}.csv'
        write_columns_csv(loads_path, load_cols)
        written.append(loads_path)

        definition_path = out_dir / f'external_loads_{record.name}.json'
        definition = record.load_definition(loads_path.name)
        definition_path.write_text(json.dumps(definition, indent=2) + '\n', encoding='utf-8')
        written.append(definition_path)

    return written


def write_batch_summary(records: list[TrialRecord], out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / 'summary.json'
    doc = {'trials': [trial_summary(r) for r in records]}
    path.write_text(json.dumps(doc, indent=2) + '\n', encoding='utf-8')
    return path
