"""Study configuration from YAML.

A study file declares the design (column names and arm levels), the
time-window table of each biological matrix, the compounds measured in
each matrix, per-compound detection limits and the ranking time range::

    design:
      control_arm: Placebo
      arms: [Placebo, LowDose, HighDose]
      pre_exposure_label: pre-smoking
      columns: {subject: id, arm: treatment, time: time_from_start}
    windows:
      blood:
        - {start: -400, stop: 0, label: pre-smoking}
        - {start: 0, stop: 30, label: "0-30"}
        - {start: 30, stop: null, label: "31+"}
    compounds:
      blood: [thc, cbn]
    cutoffs:
      thc: [0, 0.5, 1, 2, 5]
    ranking:
      time_range: [0, 180]

Compounds without an entry under ``cutoffs`` are swept over their
observed values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

import yaml

from pybiomarker.timepoints import StudyDesign, WindowTable

_COLUMN_KEYS = ("subject", "arm", "group", "time", "window")


@dataclass(frozen=True)
class StudyConfig:
    """Immutable study configuration."""

    design: StudyDesign
    windows: Mapping[str, WindowTable]  # matrix -> windows
    compounds: Mapping[str, tuple[str, ...]]  # matrix -> compounds
    cutoffs: Mapping[str, tuple[float, ...]] = field(default_factory=dict)
    time_range: tuple[float, float] = (0.0, 180.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "windows", MappingProxyType(dict(self.windows)))
        object.__setattr__(self, "compounds", MappingProxyType(
            {m: tuple(c) for m, c in self.compounds.items()}
        ))
        object.__setattr__(self, "cutoffs", MappingProxyType(
            {c: tuple(float(v) for v in vals) for c, vals in self.cutoffs.items()}
        ))

        unknown = sorted(set(self.compounds) - set(self.windows))
        if unknown:
            raise ValueError(f"compounds listed for matrices without windows: {unknown}")
        lacking = sorted(set(self.windows) - set(self.compounds))
        if lacking:
            raise ValueError(f"no compounds listed for matrices: {lacking}")

    @property
    def matrices(self) -> tuple[str, ...]:
        return tuple(self.windows)


def load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at top-level of {path}, got {type(data)}")
    return data


def _parse_design(raw: Mapping | None) -> StudyDesign:
    if raw is None:
        return StudyDesign()
    if not isinstance(raw, Mapping):
        raise ValueError("design must be a mapping")

    kwargs: dict = {}
    columns = raw.get("columns") or {}
    if not isinstance(columns, Mapping):
        raise ValueError("design.columns must be a mapping")
    stray = sorted(set(columns) - set(_COLUMN_KEYS))
    if stray:
        raise ValueError(f"design.columns has unknown keys {stray}; allowed {_COLUMN_KEYS}")
    kwargs.update({k: str(v) for k, v in columns.items()})

    if "arms" in raw:
        kwargs["arms"] = tuple(str(a) for a in raw["arms"])
    if "control_arm" in raw:
        kwargs["control_arm"] = str(raw["control_arm"])
    if "pre_exposure_label" in raw:
        kwargs["pre_exposure_label"] = str(raw["pre_exposure_label"])
    return StudyDesign(**kwargs)


def _parse_windows(raw: Mapping | None) -> dict[str, WindowTable]:
    if not isinstance(raw, Mapping) or len(raw) == 0:
        raise ValueError("windows must map each matrix to a list of windows")

    tables = {}
    for matrix, entries in raw.items():
        if not isinstance(entries, list):
            raise ValueError(f"windows.{matrix} must be a list")
        records = []
        for i, entry in enumerate(entries):
            try:
                records.append((entry["start"], entry.get("stop"), entry["label"]))
            except (KeyError, TypeError, AttributeError) as exc:
                raise ValueError(
                    f"windows.{matrix}[{i}] needs start, stop and label"
                ) from exc
        tables[str(matrix)] = WindowTable.from_records(records)
    return tables


def parse_study_config(raw: Mapping) -> StudyConfig:
    """Build a :class:`StudyConfig` from a parsed YAML mapping."""
    compounds = raw.get("compounds")
    if not isinstance(compounds, Mapping):
        raise ValueError("compounds must map each matrix to a list of compound columns")
    for matrix, names in compounds.items():
        if not isinstance(names, list) or len(names) == 0:
            raise ValueError(f"compounds.{matrix} must be a non-empty list")

    cutoffs = raw.get("cutoffs") or {}
    if not isinstance(cutoffs, Mapping):
        raise ValueError("cutoffs must map compounds to lists of detection limits")
    for compound, values in cutoffs.items():
        if not isinstance(values, list) or len(values) == 0:
            raise ValueError(f"cutoffs.{compound} must be a non-empty list")
        if any(float(v) < 0 for v in values):
            raise ValueError(f"cutoffs.{compound} must be non-negative")

    ranking = raw.get("ranking") or {}
    if not isinstance(ranking, Mapping):
        raise ValueError("ranking must be a mapping with a time_range entry")
    time_range = ranking.get("time_range", [0, 180])
    if not isinstance(time_range, list) or len(time_range) != 2:
        raise ValueError("ranking.time_range must be [min, max]")

    return StudyConfig(
        design=_parse_design(raw.get("design")),
        windows=_parse_windows(raw.get("windows")),
        compounds={str(m): tuple(str(c) for c in cs) for m, cs in compounds.items()},
        cutoffs={str(c): tuple(v) for c, v in cutoffs.items()},
        time_range=(float(time_range[0]), float(time_range[1])),
    )


def load_study_config(path: Path | str) -> StudyConfig:
    """Read and validate a study YAML file."""
    return parse_study_config(load_yaml(Path(path)))
