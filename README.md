# barometer

Building blocks for terminal progress bars and spinners: the state of a bar
(position, length, timing, message and prefix), a double-smoothed,
time-weighted rate estimator, a small template language, and a renderer
that turns a state and a template into lines of text.

## Installation

```
pip install barometer
```

## Rendering a state

```python
from barometer.state import ProgressState
from barometer.style import ProgressStyle

state = ProgressState(4)          # length 4; None for an unknown length
state.set_pos(2)

style = ProgressStyle.with_template("{wide_bar}").progress_chars("=>-")
print(style.format_state(state, 8))   # ['====>---']
```

`ProgressStyle.format_state(state, width)` returns a list of lines for a
terminal `width` columns wide. Newlines in the template or in the message
and prefix give separate lines. `ProgressStyle.default_bar()` uses the
template `{wide_bar} {pos}/{len}`, `ProgressStyle.default_spinner()` uses
`{spinner} {msg}`.

Other settings on a style:

- `template(s)` replaces the template.
- `progress_chars(s)`: filled, any fine-grained steps, then to-do; at least
  two characters of equal display width, otherwise `ValueError`.
- `tick_chars(s)` / `tick_strings(strings)`: spinner frames, at least two;
  the last one is shown once the bar is finished.
- `set_tab_width(n)`: tabs in template literals become `n` spaces (default 8).
- `format_bar(fraction, width, alt_style=None)` renders just a bar.

The message and prefix of a state are `TabExpandedString` objects:

```python
from barometer.state import TabExpandedString

state.message = TabExpandedString("copying\tfiles", 4)
```

## Templates

Placeholders are written `{key}` or `{key:<align><width>!.style/alt_style}`:
`<`, `^` or `>` aligns, a number pads to that width, `!` truncates text that
is too long, and the dotted style (for example `red.on_blue.bold`) colours
the text; the alternative style colours the unfilled part of a bar.
`{{` and `}}` give literal braces. A bad template raises
`barometer.template.TemplateError`, a subclass of `ValueError`.

Built-in keys: `wide_bar`, `bar`, `spinner`, `wide_msg`, `msg`, `prefix`,
`pos`, `human_pos`, `len`, `human_len`, `percent`, `bytes`, `total_bytes`,
`decimal_bytes`, `decimal_total_bytes`, `binary_bytes`,
`binary_total_bytes`, `elapsed_precise`, `elapsed`, `per_sec`,
`bytes_per_sec`, `binary_bytes_per_sec`, `eta_precise`, `eta`,
`duration_precise`, `duration`. `wide_bar` and `wide_msg` take up whatever
width the rest of the line leaves.

Custom keys are added with `ProgressStyle.with_key(key, tracker)`. The
tracker is a `barometer.style.ProgressTracker` subclass, whose `write(state)`
returns the text, or a plain callable taking the state and returning text.

`barometer.template` also offers `Template.parse`, `Style.from_dotted` and
`Style.apply`, `measure_text_width` (display width, ignoring escape
sequences) and `pad_string`. Colours are emitted when standard output is a
terminal, unless `NO_COLOR` is set; `CLICOLOR_FORCE` forces them on and
`CLICOLOR=0` turns them off. A `Style` built with `force=True` or
`force=False` ignores that detection.

## Rates and timing

`ProgressState` reports `fraction()`, `eta()`, `duration()`, `per_sec()` and
`elapsed()` (times in seconds). The rate comes from
`barometer.estimator.Estimator`, which weights data by age so that anything
older than 15 seconds keeps a combined weight of 0.1:

```python
from barometer.estimator import Estimator

est = Estimator(0.0)
for second in range(1, 21):
    est.record(second * 5, float(second))
est.steps_per_second(20.0)   # about 5.0
```

Recording a smaller step count than before restarts the estimate.
`AtomicPosition` is a thread-safe position counter whose `allow(now)`
permits bursts of ten redraws and then one per millisecond.

`barometer.state` also defines `Status`, `Reset`, `FinishMode` and
`ProgressFinish` (`and_leave()`, `with_message()`, `and_clear()`,
`abandon()`, `abandon_with_message()`) to describe a bar's lifecycle.

## What this package does not do

There is no bar object that draws itself to a terminal, no background
ticking thread, no wrappers that advance a bar while iterating or reading,
and no terminal output layer: the package computes state and rendered lines,
and writing them to a terminal is left to the caller.