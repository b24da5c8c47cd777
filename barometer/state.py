"""The state of a progress bar at a moment in time."""

from __future__ import annotations

import enum
import math
import time
from dataclasses import dataclass

from barometer.estimator import AtomicPosition, Estimator

DEFAULT_TAB_WIDTH = 8


class Status(enum.Enum):
    """Whether a bar is running or finished, and if finished whether it stays visible."""

    IN_PROGRESS = "in_progress"
    DONE_VISIBLE = "done_visible"
    DONE_HIDDEN = "done_hidden"


class Reset(enum.Enum):
    """How much of a bar's state a reset clears."""

    ETA = "eta"
    ELAPSED = "elapsed"
    ALL = "all"


class FinishMode(enum.Enum):
    """The kinds of finishing behaviour."""

    AND_LEAVE = "and_leave"
    WITH_MESSAGE = "with_message"
    AND_CLEAR = "and_clear"
    ABANDON = "abandon"
    ABANDON_WITH_MESSAGE = "abandon_with_message"


@dataclass(frozen=True)
class ProgressFinish:
    """Behaviour of a progress bar when it is finished."""

    mode: FinishMode
    message: str | None = None

    @classmethod
    def and_leave(cls) -> ProgressFinish:
        """Finish and leave the current message."""
        return cls(FinishMode.AND_LEAVE)

    @classmethod
    def with_message(cls, message: str) -> ProgressFinish:
        """Finish and set a message."""
        return cls(FinishMode.WITH_MESSAGE, message)

    @classmethod
    def and_clear(cls) -> ProgressFinish:
        """Finish and clear the bar completely (the default)."""
        return cls(FinishMode.AND_CLEAR)

    @classmethod
    def abandon(cls) -> ProgressFinish:
        """Finish, leaving the current message and progress."""
        return cls(FinishMode.ABANDON)

    @classmethod
    def abandon_with_message(cls, message: str) -> ProgressFinish:
        """Finish, set a message and leave the current progress."""
        return cls(FinishMode.ABANDON_WITH_MESSAGE, message)


class TabExpandedString:
    """A string together with its tab-expanded form."""

    __slots__ = ("original", "tab_width", "_expanded")

    def __init__(self, original: str = "", tab_width: int = DEFAULT_TAB_WIDTH) -> None:
        self.original = original
        self.tab_width = tab_width
        self._expanded = original.replace("\t", " " * tab_width)

    def expanded(self) -> str:
        """The string with every tab replaced by ``tab_width`` spaces."""
        return self._expanded

    def set_tab_width(self, tab_width: int) -> None:
        """Re-expand the original with a new tab width."""
        if tab_width != self.tab_width:
            self.tab_width = tab_width
            self._expanded = self.original.replace("\t", " " * tab_width)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TabExpandedString):
            return NotImplemented
        return self.original == other.original and self._expanded == other._expanded

    def __repr__(self) -> str:
        return f"TabExpandedString({self.original!r}, {self.tab_width})"


class ProgressState:
    """Position, length, timing and text of a progress bar."""

    def __init__(self, length: int | None, position: AtomicPosition | None = None) -> None:
        now = time.monotonic()
        self.position = position if position is not None else AtomicPosition(now)
        self._len = length
        self.tick = 0
        self.started = now
        self.status = Status.IN_PROGRESS
        self.est = Estimator(now)
        self.message = TabExpandedString("", DEFAULT_TAB_WIDTH)
        self.prefix = TabExpandedString("", DEFAULT_TAB_WIDTH)

    def is_finished(self) -> bool:
        """Whether the bar has finished."""
        return self.status is not Status.IN_PROGRESS

    def fraction(self) -> float:
        """Completion as a number between 0 and 1."""
        pos = self.position.pos
        if self._len is None:
            pct = 0.0
        elif self._len == 0:
            pct = 1.0
        elif pos == 0:
            pct = 0.0
        else:
            pct = pos / self._len
        return min(max(pct, 0.0), 1.0)

    def eta(self) -> float:
        """Expected remaining time in seconds."""
        if self.is_finished() or self._len is None:
            return 0.0
        pos = self.position.pos
        sps = self.est.steps_per_second(time.monotonic())
        # No rate yet (only at the very beginning): report zero.
        if sps == 0.0 or math.isnan(sps):
            return 0.0
        return max(self._len - pos, 0) / sps

    def duration(self) -> float:
        """Expected total time in seconds: elapsed plus ETA."""
        if self._len is None or self.is_finished():
            return 0.0
        return self.elapsed() + self.eta()

    def per_sec(self) -> float:
        """Steps per second."""
        if self.status is Status.IN_PROGRESS:
            return self.est.steps_per_second(time.monotonic())
        length = self._len if self._len is not None else self.pos()
        elapsed = self.elapsed()
        if elapsed <= 0.0:
            return math.inf if length else math.nan
        return length / elapsed

    def elapsed(self) -> float:
        """Seconds since the bar started."""
        return max(0.0, time.monotonic() - self.started)

    def pos(self) -> int:
        """Current position."""
        return self.position.pos

    def set_pos(self, pos: int) -> None:
        """Set the current position."""
        self.position.set(pos)

    def length(self) -> int | None:
        """Current length, or None when unknown."""
        return self._len

    def set_len(self, length: int) -> None:
        """Set the length."""
        self._len = length