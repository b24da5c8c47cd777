import copy

import pytest

from barometer.estimator import AtomicPosition
from barometer.state import ProgressState, Status, TabExpandedString
from barometer.style import ProgressStyle, ProgressTracker
from barometer.template import TemplateError


@pytest.fixture
def plain(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("CLICOLOR_FORCE", raising=False)


@pytest.fixture
def colors(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("CLICOLOR_FORCE", "1")


class _Recorder(ProgressTracker):
    def __init__(self):
        self.text = ""

    def tick(self, state, now):
        self.text = f"{state.length()} {state.pos()}"

    def reset(self, state, now):
        self.text = ""

    def write(self, state):
        return self.text


def test_stateful_tracker(plain):
    style = (
        ProgressStyle.with_template("{{ {foo} }}")
        .with_key("foo", _Recorder())
        .progress_chars("#>-")
    )
    state = ProgressState(1)
    assert style.format_state(state, 16)[0] == "{  }"
    state.position.inc(1)
    for tracker in style.format_map.values():
        tracker.tick(state, 0.0)
    assert style.format_state(state, 16)[0] == "{ 1 1 }"
    for tracker in style.format_map.values():
        tracker.reset(state, 0.0)
    assert style.format_state(state, 16)[0] == "{  }"


def test_expand_template(plain):
    state = ProgressState(10)
    style = (
        ProgressStyle.default_bar()
        .with_key("foo", lambda s: "FOO")
        .with_key("bar", lambda s: "BAR")
    )
    style.template("{{ {foo} {bar} }}")
    assert style.format_state(state, 80)[0] == "{ FOO BAR }"
    style.template('{ "foo": "{foo}", "bar": {bar} }')
    assert style.format_state(state, 80)[0] == '{ "foo": "FOO", "bar": BAR }'


def test_expand_template_flags(colors):
    state = ProgressState(10)
    style = ProgressStyle.default_bar().with_key("foo", lambda s: "XXX")

    style.template("{foo:5}")
    assert style.format_state(state, 80)[0] == "XXX  "

    style.template("{foo:.red.on_blue}")
    assert style.format_state(state, 80)[0] == "\x1b[31m\x1b[44mXXX\x1b[0m"

    style.template("{foo:^5.red.on_blue}")
    assert style.format_state(state, 80)[0] == "\x1b[31m\x1b[44m XXX \x1b[0m"

    style.template("{foo:^5.red.on_blue/green.on_cyan}")
    assert style.format_state(state, 80)[0] == "\x1b[31m\x1b[44m XXX \x1b[0m"


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{wide_msg}", "abcdefghij"),
        ("{wide_msg:>}", "klmnopqrst"),
        ("{wide_msg:^}", "fghijklmno"),
    ],
)
def test_align_truncation(plain, template, expected):
    state = ProgressState(10)
    state.message = TabExpandedString("abcdefghijklmnopqrst")
    style = ProgressStyle.with_template(template)
    assert style.format_state(state, 10)[0] == expected


def test_wide_element_style(colors):
    pos = AtomicPosition()
    pos.set(2)
    state = ProgressState(4, pos)

    style = ProgressStyle.with_template("{wide_bar}").progress_chars("=>-")
    assert style.format_state(state, 8)[0] == "====>---"

    style = ProgressStyle.with_template(
        "{wide_bar:.red.on_blue/green.on_cyan}"
    ).progress_chars("=>-")
    assert (
        style.format_state(state, 8)[0]
        == "\x1b[31m\x1b[44m====>\x1b[32m\x1b[46m---\x1b[0m\x1b[0m"
    )

    style = ProgressStyle.with_template("{wide_msg:^.red.on_blue}")
    state.message = TabExpandedString("foobar")
    assert style.format_state(state, 8)[0] == "\x1b[31m\x1b[44m foobar \x1b[0m"


def test_multiline_handling(plain):
    state = ProgressState(10)
    state.message = TabExpandedString("foo\nbar\nbaz", 2)

    style = ProgressStyle.with_template("{msg}")
    assert style.format_state(state, 80) == ["foo", "bar", "baz"]

    style = ProgressStyle.with_template("{wide_msg}")
    assert style.format_state(state, 80) == ["foo", "bar", "baz"]

    state.prefix = TabExpandedString("prefix\nprefix", 2)
    style = ProgressStyle.with_template("{prefix} {wide_msg}")
    assert style.format_state(state, 80) == ["prefix", "prefix foo", "bar", "baz"]


def test_default_bar_rendering(plain):
    style = ProgressStyle.default_bar()
    state = ProgressState(10)
    assert style.format_state(state, 80) == ["░" * 75 + " 0/10"]
    state.set_pos(1)
    assert style.format_state(state, 80) == ["█" * 7 + "░" * 68 + " 1/10"]
    state.set_pos(10)
    assert style.format_state(state, 80) == ["█" * 74 + " 10/10"]


def test_builder_template_with_prefix(plain):
    state = ProgressState(10)
    state.message = TabExpandedString("crate")
    state.prefix = TabExpandedString("Downloading")
    style = ProgressStyle.with_template(
        "{prefix:>12.cyan.bold} {msg}: {wide_bar} {pos}/{len}"
    )
    line = style.format_state(state, 80)[0]
    assert line == " Downloading crate: " + "░" * 55 + " 0/10"
    assert len(line) == 80


def test_percent_without_and_with_length(plain):
    style = ProgressStyle.with_template("{wide_bar} {percent}%")
    state = ProgressState(None)
    assert style.format_state(state, 80) == ["░" * 77 + " 0%"]
    state.set_len(10)
    state.set_pos(1)
    assert style.format_state(state, 80) == ["█" * 7 + "░" * 69 + " 10%"]
    state.set_pos(10)
    assert style.format_state(state, 80) == ["█" * 75 + " 100%"]


def test_byte_keys_and_terminal_template(plain):
    style = ProgressStyle.default_bar().template(
        "{msg:>12.cyan.bold} {spinner:.green} [{elapsed_precise}] "
        "[{bar:40.cyan/blue}] {bytes}/{total_bytes}"
    ).progress_chars("#>-")
    state = ProgressState(None)
    state.message = TabExpandedString("Downloading")
    assert style.format_state(state, 20) == [
        " Downloading ⠁ [00:00:00] [" + "-" * 40 + "] 0B/0B"
    ]
    state.set_pos(223211)
    assert style.format_state(state, 20)[0].endswith("] 217.98 KiB/217.98 KiB")


def test_total_bytes_and_elapsed(plain):
    style = ProgressStyle.default_bar().template(
        "{msg:>12.green.bold} downloading {total_bytes:.green} in {elapsed:.green}"
    )
    state = ProgressState(None)
    state.set_pos(446422)
    state.message = TabExpandedString("Finished")
    assert style.format_state(state, 20) == ["    Finished downloading 435.96 KiB in 0s"]


def test_tab_expansion_in_template(plain):
    style = ProgressStyle.with_template("{spinner}{prefix}\t{msg}")
    state = ProgressState(None)
    state.tick = 1
    state.message = TabExpandedString("Test\t:)", 8)
    state.prefix = TabExpandedString("Pre\tfix!", 8)
    assert style.format_state(state, 80) == ["⠁Pre        fix!        Test        :)"]

    style.set_tab_width(4)
    state.message.set_tab_width(4)
    state.prefix.set_tab_width(4)
    assert style.format_state(state, 80) == ["⠁Pre    fix!    Test    :)"]

    style.set_tab_width(2)
    state.message.set_tab_width(2)
    state.prefix.set_tab_width(2)
    assert style.format_state(state, 80) == ["⠁Pre  fix!  Test  :)"]


def test_tracker_output_tabs_are_expanded(plain):
    style = ProgressStyle.with_template("{foo}").with_key("foo", lambda s: "a\tb")
    style.set_tab_width(3)
    assert style.format_state(ProgressState(None), 80) == ["a   b"]


def test_spinner_ticks_and_final(plain):
    style = ProgressStyle.default_spinner()
    state = ProgressState(None)
    state.message = TabExpandedString("msg")
    state.tick = 1
    assert style.format_state(state, 80) == ["⠁ msg"]
    state.tick = 2
    assert style.format_state(state, 80) == ["⠉ msg"]
    state.status = Status.DONE_VISIBLE
    assert style.format_state(state, 80) == ["  msg"]


def test_get_tick_str_wraps_before_final():
    style = ProgressStyle.default_spinner().tick_chars("abc")
    assert [style.get_tick_str(i) for i in range(5)] == ["a", "b", "a", "b", "a"]
    assert style.get_final_tick_str() == "c"
    style.tick_strings(["one", "two", "done"])
    assert style.get_tick_str(3) == "two"
    assert style.get_final_tick_str() == "done"


def test_too_few_ticks_rejected():
    with pytest.raises(ValueError):
        ProgressStyle.default_spinner().tick_chars("x")
    with pytest.raises(ValueError):
        ProgressStyle.default_spinner().tick_strings(["x"])


def test_progress_chars_validation():
    with pytest.raises(ValueError):
        ProgressStyle.default_bar().progress_chars("#")
    with pytest.raises(ValueError):
        ProgressStyle.default_bar().progress_chars("#あ")


def test_format_bar_values():
    style = ProgressStyle.default_bar()
    assert style.format_bar(0.5, 10, None) == "█" * 5 + "░" * 5
    assert style.format_bar(0.0, 4, None) == "░░░░"
    assert style.format_bar(1.0, 4, None) == "████"
    fine = ProgressStyle.default_bar().progress_chars("#abc-")
    assert fine.format_bar(0.5, 3, None) == "#b-"


def test_invalid_template_raises():
    with pytest.raises(TemplateError):
        ProgressStyle.with_template("{:}")
    with pytest.raises(TemplateError):
        ProgressStyle.default_bar().template("{:}")


def test_with_key_rejects_non_callable():
    with pytest.raises(TypeError):
        ProgressStyle.default_bar().with_key("foo", 42)


def test_copy_is_independent():
    style = ProgressStyle.default_bar()
    clone = copy.copy(style)
    clone.progress_chars("#-")
    assert style.format_bar(1.0, 3, None) == "███"
    assert clone.format_bar(1.0, 3, None) == "###"


def test_count_and_duration_keys(plain):
    state = ProgressState(None)
    state.set_pos(1234567)
    style = ProgressStyle.with_template(
        "{human_pos}|{decimal_bytes}|{eta_precise}|{duration}"
    )
    assert style.format_state(state, 80) == ["1,234,567|1.23 MB|00:00:00|0s"]


def test_newlines_in_template(plain):
    state = ProgressState(None)
    state.message = TabExpandedString("hi")
    assert ProgressStyle.with_template("{msg}\n{pos}").format_state(state, 80) == ["hi", "0"]
    assert ProgressStyle.with_template("a\n").format_state(state, 80) == ["a"]