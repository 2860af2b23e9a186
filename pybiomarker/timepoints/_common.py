"""Shared types for time-window handling: study design and window tables."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True)
class StudyDesign:
    """Column names and categorical levels of a study, declared once.

    Every component receives the design explicitly; nothing relies on a
    global "current level order".

    Attributes
    ----------
    subject, arm, group, time, window : str
        Column names of the subject identifier, treatment arm, experience
        group, elapsed time since exposure start and time-window label.
    arms : tuple of str
        Treatment arms in reporting order.
    control_arm : str
        The arm whose subjects are truly unexposed after exposure start.
    pre_exposure_label : str
        Window label of baseline (pre-exposure) samples.
    """

    subject: str = "id"
    arm: str = "treatment"
    group: str = "group"
    time: str = "time_from_start"
    window: str = "timepoint_use"
    arms: tuple[str, ...] = ("Placebo", "LowDose", "HighDose")
    control_arm: str = "Placebo"
    pre_exposure_label: str = "pre-smoking"

    def __post_init__(self) -> None:
        if isinstance(self.arms, str) or len(self.arms) == 0:
            raise ValueError("arms must be a non-empty sequence of labels")
        object.__setattr__(self, "arms", tuple(self.arms))
        if self.control_arm not in self.arms:
            raise ValueError(
                f"control_arm {self.control_arm!r} is not one of arms {self.arms}"
            )


@dataclass(frozen=True)
class TimeWindow:
    """One elapsed-time window.

    ``stop`` is ``math.inf`` for an open-ended final window.
    """

    start: float
    stop: float
    label: str

    @property
    def is_pre_exposure(self) -> bool:
        """Window lies entirely at or before exposure start."""
        return self.stop <= 0

    @property
    def is_open_ended(self) -> bool:
        return math.isinf(self.stop)


@dataclass(frozen=True)
class WindowTable:
    """Ordered, contiguous, non-overlapping sequence of time windows.

    Membership rules (see :func:`~pybiomarker.timepoints.assign_timepoint`):

    - first window: ``t <= stop`` (values below its start fall into it);
    - interior windows: ``start <= t < stop``;
    - last window: ``start <= t <= stop`` (no upper bound if open-ended).

    Raises
    ------
    ValueError
        If the table is empty, a window has ``start >= stop``, neighbours
        are not contiguous, labels repeat, or an open-ended window is not
        the last one.
    """

    windows: tuple[TimeWindow, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        windows = tuple(self.windows)
        object.__setattr__(self, "windows", windows)

        if len(windows) == 0:
            raise ValueError("window table must contain at least one window")

        seen: set[str] = set()
        for i, w in enumerate(windows):
            if not isinstance(w, TimeWindow):
                raise ValueError(
                    f"window table entries must be TimeWindow, got {type(w).__name__}"
                )
            if math.isnan(w.start) or math.isnan(w.stop):
                raise ValueError(f"window {w.label!r} has a NaN boundary")
            if w.start >= w.stop:
                raise ValueError(
                    f"window {w.label!r}: start ({w.start}) must be < stop ({w.stop})"
                )
            if w.label in seen:
                raise ValueError(f"duplicate window label {w.label!r}")
            seen.add(w.label)
            if w.is_open_ended and i != len(windows) - 1:
                raise ValueError(
                    f"only the last window may be open-ended, got {w.label!r} at position {i}"
                )
            if i > 0 and windows[i - 1].stop != w.start:
                raise ValueError(
                    f"windows are not contiguous: {windows[i - 1].label!r} stops at "
                    f"{windows[i - 1].stop} but {w.label!r} starts at {w.start}"
                )

    # -- construction -----------------------------------------------------

    @classmethod
    def from_breaks(
        cls,
        breaks: Sequence[float],
        labels: Sequence[str],
    ) -> WindowTable:
        """Build a table from ``len(labels) + 1`` break points.

        A final break of ``math.inf`` makes the last window open-ended.
        """
        if len(breaks) != len(labels) + 1:
            raise ValueError(
                f"need len(labels) + 1 breaks, got {len(breaks)} breaks "
                f"and {len(labels)} labels"
            )
        return cls(tuple(
            TimeWindow(float(breaks[i]), float(breaks[i + 1]), str(labels[i]))
            for i in range(len(labels))
        ))

    @classmethod
    def from_records(cls, records: Iterable[tuple[float, float | None, str]]) -> WindowTable:
        """Build a table from ``(start, stop, label)`` triples; ``stop=None`` is open-ended."""
        return cls(tuple(
            TimeWindow(
                float(start),
                math.inf if stop is None else float(stop),
                str(label),
            )
            for start, stop, label in records
        ))

    # -- access -----------------------------------------------------------

    def __iter__(self):
        return iter(self.windows)

    def __len__(self) -> int:
        return len(self.windows)

    def __getitem__(self, index: int) -> TimeWindow:
        return self.windows[index]

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(w.label for w in self.windows)

    def window(self, label: str) -> TimeWindow:
        """Look up a window by label."""
        for w in self.windows:
            if w.label == label:
                return w
        raise ValueError(f"unknown window label {label!r}; known: {self.labels}")

    @property
    def pre_exposure_labels(self) -> tuple[str, ...]:
        return tuple(w.label for w in self.windows if w.is_pre_exposure)

    def summary(self) -> str:
        """Human-readable listing of the windows."""
        lines = ["Time windows", "=" * 40]
        for w in self.windows:
            stop = "open" if w.is_open_ended else f"{w.stop:g}"
            tag = "  (pre-exposure)" if w.is_pre_exposure else ""
            lines.append(f"{w.label:<14s}: {w.start:g} .. {stop}{tag}")
        return "\n".join(lines)
