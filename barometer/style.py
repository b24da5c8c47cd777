"""Progress bar styles: tick strings, bar characters, templates and rendering."""

from __future__ import annotations

import abc
import copy
import math
import struct
from typing import Callable

from barometer.state import DEFAULT_TAB_WIDTH, ProgressState
from barometer.template import (
    Literal,
    NewLine,
    Placeholder,
    Style,
    Template,
    measure_text_width,
    pad_string,
)

_DEFAULT_TICKS = "⠁⠁⠉⠙⠚⠒⠂⠂⠒⠲⠴⠤⠄⠄⠤⠠⠠⠤⠦⠖⠒⠐⠐⠒⠓⠋⠉⠈⠈ "
_DEFAULT_PROGRESS_CHARS = "█░"
_WIDE_MARK = "\x00"

_MINUTE = 60.0
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_DURATION_UNITS = (
    (365 * _DAY, "y"),
    (7 * _DAY, "w"),
    (_DAY, "d"),
    (_HOUR, "h"),
    (_MINUTE, "m"),
    (1.0, "s"),
)
_BINARY_PREFIXES = ("Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi")
_DECIMAL_PREFIXES = ("k", "M", "G", "T", "P", "E", "Z", "Y")
_U64_MAX = 2**64 - 1


def _f32(x: float) -> float:
    """Round a float to single precision."""
    try:
        return struct.unpack("f", struct.pack("f", x))[0]
    except OverflowError:
        return math.copysign(math.inf, x)


def _as_u64(x: float) -> int:
    """Saturating float-to-unsigned conversion."""
    if math.isnan(x) or x <= 0:
        return 0
    if math.isinf(x) or x >= _U64_MAX:
        return _U64_MAX
    return int(x)


def _group_thousands(digits: str) -> str:
    out = []
    length = len(digits)
    for idx, c in enumerate(digits):
        out.append(c)
        remaining = length - idx - 1
        if remaining > 0 and remaining % 3 == 0:
            out.append(",")
    return "".join(out)


def _human_count(n: int) -> str:
    return _group_thousands(str(n))


def _human_float_count(x: float) -> str:
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    int_part, _, frac_part = f"{x:.4f}".partition(".")
    frac = frac_part.rstrip("0")
    text = _group_thousands(int_part)
    return f"{text}.{frac}" if frac else text


def _prefixed_bytes(n: int, base: int, prefixes: tuple) -> str:
    if n < base:
        return f"{n}B"
    value = float(n)
    prefix = prefixes[0]
    for prefix in prefixes:
        value /= base
        if value < base:
            break
    return f"{value:.2f} {prefix}B"


def _binary_bytes(n: int) -> str:
    return _prefixed_bytes(n, 1024, _BINARY_PREFIXES)


def _decimal_bytes(n: int) -> str:
    return _prefixed_bytes(n, 1000, _DECIMAL_PREFIXES)


def _formatted_duration(seconds: float) -> str:
    t = int(max(seconds, 0.0))
    secs = t % 60
    t //= 60
    minutes = t % 60
    t //= 60
    prefix = ""
    if t > 23:
        prefix = f"{t // 24}d:"
        t %= 24
    return f"{prefix}{t:02}:{minutes:02}:{secs:02}"


def _human_duration(seconds: float) -> str:
    t = max(seconds, 0.0)
    idx = len(_DURATION_UNITS) - 1
    for i, (unit, _) in enumerate(_DURATION_UNITS[:-1]):
        following = _DURATION_UNITS[i + 1][0]
        if t + following / 2 >= unit + unit / 2:
            idx = i
            break
    unit, alt = _DURATION_UNITS[idx]
    count = round(t / unit)
    if idx < len(_DURATION_UNITS) - 1:
        count = max(count, 2)
    return f"{count}{alt}"


class ProgressTracker(abc.ABC):
    """A custom template key that can keep state across ticks and resets."""

    def tick(self, state: ProgressState, now: float) -> None:
        """Called whenever the bar ticks."""

    def reset(self, state: ProgressState, now: float) -> None:
        """Called whenever the bar is fully reset."""

    @abc.abstractmethod
    def write(self, state: ProgressState) -> str:
        """Text to show in place of the key."""


class _FunctionTracker(ProgressTracker):
    """A stateless tracker backed by a function of the progress state."""

    def __init__(self, func: Callable[[ProgressState], str]) -> None:
        self.func = func

    def write(self, state: ProgressState) -> str:
        return self.func(state)


def _segment(s: str) -> list[str]:
    return list(s)


def _char_width(chars: list[str]) -> int:
    widths = {measure_text_width(c) for c in chars}
    if len(widths) != 1:
        raise ValueError("got passed un-equal width progress characters")
    return widths.pop()


class ProgressStyle:
    """How a progress bar or spinner is drawn."""

    def __init__(self, template: Template) -> None:
        self._template = template
        self._tick_strings = list(_DEFAULT_TICKS)
        self._progress_chars = _segment(_DEFAULT_PROGRESS_CHARS)
        self._char_width = _char_width(self._progress_chars)
        self.tab_width = DEFAULT_TAB_WIDTH
        self.format_map: dict[str, ProgressTracker] = {}

    def __copy__(self) -> ProgressStyle:
        clone = ProgressStyle.__new__(ProgressStyle)
        clone._template = copy.deepcopy(self._template)
        clone._tick_strings = list(self._tick_strings)
        clone._progress_chars = list(self._progress_chars)
        clone._char_width = self._char_width
        clone.tab_width = self.tab_width
        clone.format_map = {key: copy.copy(t) for key, t in self.format_map.items()}
        return clone

    @classmethod
    def default_bar(cls) -> ProgressStyle:
        """The default style for bars."""
        return cls(Template.parse("{wide_bar} {pos}/{len}"))

    @classmethod
    def default_spinner(cls) -> ProgressStyle:
        """The default style for spinners."""
        return cls(Template.parse("{spinner} {msg}"))

    @classmethod
    def with_template(cls, template: str) -> ProgressStyle:
        """A style using the given template; raises TemplateError on bad input."""
        return cls(Template.parse(template))

    def template(self, s: str) -> ProgressStyle:
        """Replace the template; raises TemplateError on bad input."""
        self._template = Template.parse(s)
        return self

    def tick_chars(self, s: str) -> ProgressStyle:
        """Set the spinner ticks, one per character; the last one is the final tick."""
        ticks = list(s)
        if len(ticks) < 2:
            raise ValueError("at least 2 tick chars required")
        self._tick_strings = ticks
        return self

    def tick_strings(self, strings) -> ProgressStyle:
        """Set the spinner ticks; the last one is the final tick."""
        ticks = [str(s) for s in strings]
        if len(ticks) < 2:
            raise ValueError("at least 2 tick strings required")
        self._tick_strings = ticks
        return self

    def progress_chars(self, s: str) -> ProgressStyle:
        """Set the bar characters: filled, any fine-grained steps, then to-do."""
        chars = _segment(s)
        if len(chars) < 2:
            raise ValueError("at least 2 progress chars required")
        self._char_width = _char_width(chars)
        self._progress_chars = chars
        return self

    def with_key(self, key: str, tracker) -> ProgressStyle:
        """Add a custom key, backed by a tracker or by a function of the state."""
        if isinstance(tracker, ProgressTracker):
            self.format_map[key] = tracker
        elif callable(tracker):
            self.format_map[key] = _FunctionTracker(tracker)
        else:
            raise TypeError("tracker must be a ProgressTracker or a callable")
        return self

    def get_tick_str(self, idx: int) -> str:
        """The tick string for tick number ``idx``."""
        return self._tick_strings[idx % (len(self._tick_strings) - 1)]

    def get_final_tick_str(self) -> str:
        """The tick string shown once finished."""
        return self._tick_strings[-1]

    def _current_tick_str(self, state: ProgressState) -> str:
        if state.is_finished():
            return self.get_final_tick_str()
        return self.get_tick_str(state.tick)

    def set_tab_width(self, tab_width: int) -> None:
        """Expand tabs in template literals to ``tab_width`` spaces."""
        self.tab_width = tab_width
        self._template.set_tab_width(tab_width)

    def format_bar(self, fraction: float, width: int, alt_style: Style | None = None) -> str:
        """Render a bar ``width`` columns wide, filled to ``fraction``."""
        chars = self._progress_chars
        cols = width // self._char_width
        fill = _f32(_f32(fraction) * cols)
        entirely_filled = int(fill)
        head = 1 if fill > 0.0 and entirely_filled < cols else 0

        current = ""
        if head:
            n = max(0, len(chars) - 2)
            if n <= 1:
                index = 1
            else:
                index = max(0, n - int(_f32((fill - math.trunc(fill)) * n)))
            current = chars[index]

        rest = chars[-1] * max(0, cols - entirely_filled - head)
        if alt_style is not None:
            rest = alt_style.apply(rest)
        return chars[0] * entirely_filled + current + rest

    def _render_key(self, part: Placeholder, state: ProgressState, pos: int, length: int) -> str:
        match part.key:
            case "bar":
                width = part.width if part.width is not None else 20
                return self.format_bar(state.fraction(), width, part.alt_style)
            case "spinner":
                return self._current_tick_str(state)
            case "msg":
                return state.message.expanded()
            case "prefix":
                return state.prefix.expanded()
            case "pos":
                return str(pos)
            case "human_pos":
                return _human_count(pos)
            case "len":
                return str(length)
            case "human_len":
                return _human_count(length)
            case "percent":
                return f"{_f32(_f32(state.fraction()) * 100.0):.0f}"
            case "bytes" | "binary_bytes":
                return _binary_bytes(pos)
            case "total_bytes" | "binary_total_bytes":
                return _binary_bytes(length)
            case "decimal_bytes":
                return _decimal_bytes(pos)
            case "decimal_total_bytes":
                return _decimal_bytes(length)
            case "elapsed_precise":
                return _formatted_duration(state.elapsed())
            case "elapsed":
                return _human_duration(state.elapsed())
            case "per_sec":
                return f"{_human_float_count(state.per_sec())}/s"
            case "bytes_per_sec" | "binary_bytes_per_sec":
                return f"{_binary_bytes(_as_u64(state.per_sec()))}/s"
            case "eta_precise":
                return _formatted_duration(state.eta())
            case "eta":
                return _human_duration(state.eta())
            case "duration_precise":
                return _formatted_duration(state.duration())
            case "duration":
                return _human_duration(state.duration())
            case _:
                return ""

    def format_state(self, state: ProgressState, width: int) -> list[str]:
        """Render ``state`` into lines for a terminal ``width`` columns wide."""
        lines: list[str] = []
        cur = ""
        wide: Placeholder | None = None

        pos = state.pos()
        length = state.length()
        if length is None:
            length = pos

        for part in self._template.parts:
            if isinstance(part, Placeholder):
                tracker = self.format_map.get(part.key)
                if tracker is not None:
                    buf = tracker.write(state).replace("\t", " " * self.tab_width)
                elif part.key in ("wide_bar", "wide_msg"):
                    wide = part
                    buf = _WIDE_MARK
                else:
                    buf = self._render_key(part, state, pos, length)

                if part.width is not None:
                    buf = pad_string(buf, part.width, part.align, part.truncate)
                cur += part.style.apply(buf) if part.style is not None else buf
            elif isinstance(part, Literal):
                cur += part.text.expanded()
            elif isinstance(part, NewLine):
                lines.extend(self._expand_line(cur, state, width, wide))
                cur = ""

        if cur:
            lines.extend(self._expand_line(cur, state, width, wide))
        return lines

    def _expand_line(
        self, cur: str, state: ProgressState, width: int, wide: Placeholder | None
    ) -> list[str]:
        if wide is not None:
            cur = self._expand_wide(cur, state, width, wide)
        return cur.split("\n")

    def _expand_wide(self, cur: str, state: ProgressState, width: int, wide: Placeholder) -> str:
        left = max(0, width - measure_text_width(cur.replace(_WIDE_MARK, "")))
        if wide.key == "wide_bar":
            return cur.replace(_WIDE_MARK, self.format_bar(state.fraction(), left, wide.alt_style))
        padded = pad_string(state.message.expanded(), left, wide.align, True)
        if cur.endswith(_WIDE_MARK):
            padded = padded.rstrip()
        return cur.replace(_WIDE_MARK, padded)