"""Progress bar templates: parsing, text styling and padding."""

from __future__ import annotations

import enum
import os
import re
import sys
from dataclasses import dataclass, field
from typing import NamedTuple, Union

from wcwidth import wcswidth, wcwidth

from barometer.state import DEFAULT_TAB_WIDTH, TabExpandedString

_ANSI_RE = re.compile(
    r"[\x1b\x9b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]"
)
_COLOR_NAMES = ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white")
_DIGITS = "0123456789"
_ASCII_WHITESPACE = " \t\n\x0c\r"
_RESET = "\x1b[0m"


class Alignment(enum.Enum):
    """Horizontal alignment of a padded or truncated placeholder."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class _State(enum.Enum):
    LITERAL = "Literal"
    MAYBE_OPEN = "MaybeOpen"
    DOUBLE_CLOSE = "DoubleClose"
    KEY = "Key"
    ALIGN = "Align"
    WIDTH = "Width"
    FIRST_STYLE = "FirstStyle"
    ALT_STYLE = "AltStyle"


class TemplateError(ValueError):
    """A template string could not be parsed."""

    def __init__(self, next_char: str, state: _State) -> None:
        self.next = next_char
        self.state = state
        super().__init__(
            f"TemplateError: unexpected character {next_char!r} in state {state.value}"
        )


class _Attribute(enum.IntEnum):
    BOLD = 1
    DIM = 2
    ITALIC = 3
    UNDERLINED = 4
    BLINK = 5
    REVERSE = 7
    HIDDEN = 8
    STRIKETHROUGH = 9


_ATTRIBUTE_NAMES = {
    "bold": _Attribute.BOLD,
    "dim": _Attribute.DIM,
    "italic": _Attribute.ITALIC,
    "underlined": _Attribute.UNDERLINED,
    "blink": _Attribute.BLINK,
    "reverse": _Attribute.REVERSE,
    "hidden": _Attribute.HIDDEN,
    "strikethrough": _Attribute.STRIKETHROUGH,
}


class _Color(NamedTuple):
    index: int
    is_256: bool = False


def _parse_u8(s: str) -> int | None:
    if s and all(c in _DIGITS for c in s):
        value = int(s)
        if value <= 255:
            return value
    return None


def _colors_enabled() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    force = os.environ.get("CLICOLOR_FORCE")
    if force and force != "0":
        return True
    if os.environ.get("CLICOLOR") == "0":
        return False
    stream = sys.stdout
    return bool(stream is not None and hasattr(stream, "isatty") and stream.isatty())


@dataclass(frozen=True)
class Style:
    """Terminal colours and attributes applied to a piece of text.

    ``force`` overrides the automatic detection of colour support.
    """

    fg: _Color | None = None
    bg: _Color | None = None
    fg_bright: bool = False
    bg_bright: bool = False
    attrs: frozenset = field(default_factory=frozenset)
    force: bool | None = None

    @classmethod
    def from_dotted(cls, s: str) -> Style:
        """Build a style from a dotted description such as ``red.on_blue.bold``."""
        fg: _Color | None = None
        bg: _Color | None = None
        fg_bright = bg_bright = False
        attrs: set[_Attribute] = set()
        for part in s.split("."):
            if part in _COLOR_NAMES:
                fg = _Color(_COLOR_NAMES.index(part))
            elif part.startswith("on_") and part[3:] in _COLOR_NAMES:
                bg = _Color(_COLOR_NAMES.index(part[3:]))
            elif part in _ATTRIBUTE_NAMES:
                attrs.add(_ATTRIBUTE_NAMES[part])
            elif part == "bright":
                fg_bright = True
            elif part == "on_bright":
                bg_bright = True
            elif part.startswith("on_"):
                number = _parse_u8(part[3:])
                if number is not None:
                    bg = _Color(number, True)
            else:
                number = _parse_u8(part)
                if number is not None:
                    fg = _Color(number, True)
        return cls(fg=fg, bg=bg, fg_bright=fg_bright, bg_bright=bg_bright,
                   attrs=frozenset(attrs))

    @staticmethod
    def _color_code(color: _Color, bright: bool, base: int, extended: int) -> str:
        if color.is_256:
            return f"\x1b[{extended};5;{color.index}m"
        if bright:
            return f"\x1b[{extended};5;{color.index + 8}m"
        return f"\x1b[{base + color.index}m"

    def apply(self, text: str) -> str:
        """Wrap ``text`` in the escape sequences of this style."""
        enabled = self.force if self.force is not None else _colors_enabled()
        if not enabled:
            return text
        codes = []
        if self.fg is not None:
            codes.append(self._color_code(self.fg, self.fg_bright, 30, 38))
        if self.bg is not None:
            codes.append(self._color_code(self.bg, self.bg_bright, 40, 48))
        codes.extend(f"\x1b[{int(attr)}m" for attr in sorted(self.attrs))
        if not codes:
            return text
        return "".join(codes) + text + _RESET


def measure_text_width(s: str) -> int:
    """Display width of ``s`` in terminal columns, ignoring escape sequences."""
    stripped = _ANSI_RE.sub("", s)
    width = wcswidth(stripped)
    if width >= 0:
        return width
    return sum(max(wcwidth(c), 0) for c in stripped)


def pad_string(s: str, width: int, align: Alignment, truncate: bool) -> str:
    """Pad ``s`` to ``width`` columns, or cut it down when ``truncate`` is set."""
    cols = measure_text_width(s)
    excess = max(0, cols - width)
    if excess > 0:
        if not truncate:
            return s
        length = len(s)
        if align is Alignment.LEFT:
            start, end = 0, length - excess
        elif align is Alignment.RIGHT:
            start, end = excess, length
        else:
            start, end = excess // 2, length - (excess - excess // 2)
        if 0 <= start <= end <= length:
            return s[start:end]
        return s

    diff = width - cols
    if align is Alignment.LEFT:
        left, right = 0, diff
    elif align is Alignment.RIGHT:
        left, right = diff, 0
    else:
        left, right = diff // 2, diff - diff // 2
    return " " * left + s + " " * right


@dataclass
class Literal:
    """Literal text in a template."""

    text: TabExpandedString


@dataclass
class Placeholder:
    """A ``{key:...}`` placeholder in a template."""

    key: str
    align: Alignment = Alignment.LEFT
    width: int | None = None
    truncate: bool = False
    style: Style | None = None
    alt_style: Style | None = None


@dataclass
class NewLine:
    """A line break in a template."""


TemplatePart = Union[Literal, Placeholder, NewLine]


@dataclass
class Template:
    """A parsed progress bar template."""

    parts: list = field(default_factory=list)

    @classmethod
    def parse(cls, s: str, tab_width: int = DEFAULT_TAB_WIDTH) -> Template:
        """Parse a template string; raises :class:`TemplateError` on bad input."""
        S = _State
        state = S.LITERAL
        parts: list[TemplatePart] = []
        buf = ""

        def last_placeholder() -> Placeholder | None:
            if parts and isinstance(parts[-1], Placeholder):
                return parts[-1]
            return None

        for c in s:
            push: str | None = None
            if state is S.LITERAL and c == "{":
                new = S.MAYBE_OPEN
            elif state is S.LITERAL and c == "\n":
                if buf:
                    parts.append(Literal(TabExpandedString(buf, tab_width)))
                    buf = ""
                parts.append(NewLine())
                new = S.LITERAL
            elif state is S.LITERAL and c == "}":
                new, push = S.DOUBLE_CLOSE, "}"
            elif state is S.LITERAL:
                new, push = S.LITERAL, c
            elif state is S.DOUBLE_CLOSE and c == "}":
                new = S.LITERAL
            elif state is S.MAYBE_OPEN and c == "{":
                new, push = S.LITERAL, "{"
            elif state in (S.MAYBE_OPEN, S.KEY) and c in _ASCII_WHITESPACE:
                # Whitespace where a key should be: the brace was literal text.
                parts.append(Literal(TabExpandedString("{" + buf + c, tab_width)))
                buf = ""
                new = S.LITERAL
            elif state in (S.MAYBE_OPEN, S.KEY) and c not in "}:":
                new, push = S.KEY, c
            elif state is S.KEY and c == ":":
                new = S.ALIGN
            elif state is S.KEY and c == "}":
                new = S.LITERAL
            elif state is S.ALIGN and c in "<^>":
                placeholder = last_placeholder()
                if placeholder is not None:
                    placeholder.align = {
                        "<": Alignment.LEFT,
                        "^": Alignment.CENTER,
                        ">": Alignment.RIGHT,
                    }[c]
                new = S.WIDTH
            elif state is S.ALIGN and c in _DIGITS:
                new, push = S.WIDTH, c
            elif state in (S.ALIGN, S.WIDTH) and c == "!":
                placeholder = last_placeholder()
                if placeholder is not None:
                    placeholder.truncate = True
                new = S.WIDTH
            elif state in (S.ALIGN, S.WIDTH) and c == ".":
                new = S.FIRST_STYLE
            elif state in (S.ALIGN, S.WIDTH, S.FIRST_STYLE, S.ALT_STYLE) and c == "}":
                new = S.LITERAL
            elif state is S.WIDTH and c in _DIGITS:
                new, push = S.WIDTH, c
            elif state is S.FIRST_STYLE and c == "/":
                new = S.ALT_STYLE
            elif state in (S.FIRST_STYLE, S.ALT_STYLE):
                new, push = state, c
            else:
                raise TemplateError(c, state)

            if buf:
                if state is S.MAYBE_OPEN and new is S.KEY:
                    parts.append(Literal(TabExpandedString(buf, tab_width)))
                    buf = ""
                elif state is S.KEY and new in (S.ALIGN, S.LITERAL):
                    parts.append(Placeholder(key=buf))
                    buf = ""
                elif state is S.WIDTH and new in (S.FIRST_STYLE, S.LITERAL):
                    placeholder = last_placeholder()
                    if placeholder is not None:
                        placeholder.width = int(buf)
                        buf = ""
                elif state is S.FIRST_STYLE and new in (S.ALT_STYLE, S.LITERAL):
                    placeholder = last_placeholder()
                    if placeholder is not None:
                        placeholder.style = Style.from_dotted(buf)
                        buf = ""
                elif state is S.ALT_STYLE and new is S.LITERAL:
                    placeholder = last_placeholder()
                    if placeholder is not None:
                        placeholder.alt_style = Style.from_dotted(buf)
                        buf = ""

            state = new
            if push is not None:
                buf += push

        if state in (S.LITERAL, S.DOUBLE_CLOSE) and buf:
            parts.append(Literal(TabExpandedString(buf, tab_width)))

        return cls(parts)

    def set_tab_width(self, tab_width: int) -> None:
        """Re-expand tabs in every literal part."""
        for part in self.parts:
            if isinstance(part, Literal):
                part.text.set_tab_width(tab_width)