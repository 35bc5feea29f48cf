import pytest

from nanoboy.log import FatalError, Level, check, log


def test_info_is_plain(capsys):
    log(Level.INFO, "detected mixer @ 0x{:08X}", 0x0800ABCD)
    assert capsys.readouterr().out == "[I] detected mixer @ 0x0800ABCD\n"


def test_warn_is_coloured(capsys):
    log(Level.WARN, "careful {}", "now")
    out = capsys.readouterr().out
    assert out.startswith("\x1b[33m")
    assert "[W] careful now" in out


@pytest.mark.parametrize(
    "level, prefix",
    [(Level.TRACE, "[T]"), (Level.DEBUG, "[D]"), (Level.ERROR, "[E]"), (Level.FATAL, "[F]")],
)
def test_prefixes(capsys, level, prefix):
    log(level, "msg")
    assert f"{prefix} msg" in capsys.readouterr().out


@pytest.mark.parametrize(
    "level", [Level.TRACE, Level.DEBUG, Level.INFO, Level.WARN, Level.ERROR, Level.FATAL]
)
def test_every_level_formats_arguments(capsys, level):
    log(level, "value={} name={}", 42, "bus")
    out = capsys.readouterr().out
    assert "value=42 name=bus" in out
    assert out.count("\n") == 1


def test_check_passes_silently(capsys):
    check(True, "never shown")
    assert capsys.readouterr().out == ""


def test_check_raises_and_logs(capsys):
    with pytest.raises(FatalError, match="unhandled event class: 7"):
        check(False, "unhandled event class: {}", 7)
    assert "[F] unhandled event class: 7" in capsys.readouterr().out