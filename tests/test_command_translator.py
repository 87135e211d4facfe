import itertools
import shlex

import pytest

from print_server.command_translator import (
    LpTranslator,
    SumatraTranslator,
    get_translator,
    quote_windows_arg,
)
from print_server.errors import UnsupportedPlatformError
from print_server.models import PrintSettings

LP_SIDES = {
    "simplex": "one-sided",
    "short-edge": "two-sided-short-edge",
    "long-edge": "two-sided-long-edge",
}
LP_ORIENTATION = {"portrait": "3", "landscape": "4"}
SUMATRA_DUPLEX = {"simplex": "simplex", "short-edge": "duplexshort", "long-edge": "duplexlong"}

GRID = list(itertools.product(
    [None, "simplex", "short-edge", "long-edge"],
    [1, 2, 5],
    [None, "portrait", "landscape"],
))


@pytest.mark.parametrize("duplex,copies,orientation", GRID)
def test_lp_tokens(duplex, copies, orientation):
    settings = PrintSettings(duplex=duplex, copies=copies, orientation=orientation)

    expected = []
    if duplex:
        expected += ["-o", f"sides={LP_SIDES[duplex]}"]
    if copies > 1:
        expected += ["-n", str(copies)]
    if orientation:
        expected += ["-o", orientation, "-o", f"orientation-requested={LP_ORIENTATION[orientation]}"]

    translator = LpTranslator()
    assert translator.settings_tokens(settings) == expected
    assert translator.format_settings(settings) == " ".join(expected)


@pytest.mark.parametrize("duplex,copies,orientation", GRID)
def test_sumatra_tokens(duplex, copies, orientation):
    settings = PrintSettings(duplex=duplex, copies=copies, orientation=orientation)

    expected = []
    if duplex:
        expected.append(SUMATRA_DUPLEX[duplex])
    if copies > 1:
        expected.append(f"{copies}x")
    if orientation:
        expected.append(orientation)

    assert SumatraTranslator().format_settings(settings) == ",".join(expected)


@pytest.mark.parametrize("translator", [LpTranslator(), SumatraTranslator()])
def test_absent_settings_emit_nothing(translator):
    assert translator.format_settings(None) == ""
    assert translator.format_settings(PrintSettings()) == ""


def test_wire_aliases_for_duplex():
    assert PrintSettings(duplex="short").duplex.value == "short-edge"
    assert PrintSettings(duplex="long").duplex.value == "long-edge"
    assert LpTranslator().format_settings(PrintSettings(duplex="long")) == "-o sides=two-sided-long-edge"


def test_lp_command():
    cmd = LpTranslator().build_command("lp", "Office", "/tmp/print_1.pdf", PrintSettings(copies=2))
    assert cmd == ["lp", "-n", "2", "-d", "Office", "/tmp/print_1.pdf"]


def test_sumatra_command():
    settings = PrintSettings(duplex="long-edge", copies=3, orientation="landscape")
    cmd = SumatraTranslator().build_command("C:\\Sumatra.exe", "Office", "C:\\tmp\\print_1.pdf", settings)
    assert cmd == [
        "C:\\Sumatra.exe",
        "-print-to", "Office",
        "-print-settings", "duplexlong,3x,landscape",
        "-silent", "C:\\tmp\\print_1.pdf",
    ]


def test_sumatra_command_without_settings_omits_flag():
    cmd = SumatraTranslator().build_command("Sumatra.exe", "Office", "a.pdf", PrintSettings())
    assert "-print-settings" not in cmd


@pytest.mark.parametrize("printer", [
    'Office "Main"',
    'Evil"; rm -rf ~; echo "',
    "it's $(whoami)",
])
def test_lp_command_line_keeps_printer_as_one_argument(printer):
    translator = LpTranslator()
    argv = translator.build_command("lp", printer, "/tmp/my file.pdf", PrintSettings(copies=2))

    line = translator.command_line(argv)

    assert shlex.split(line) == argv


def test_windows_quoting_escapes_embedded_quotes():
    assert quote_windows_arg('Office "Main"') == '"Office \\"Main\\""'
    assert quote_windows_arg('Evil" & calc & "') == '"Evil\\" & calc & \\""'


def test_windows_quoting_always_wraps():
    assert quote_windows_arg("Office") == '"Office"'
    assert quote_windows_arg("") == '""'


def test_windows_quoting_doubles_backslashes_before_quotes():
    # trailing backslash must not escape the closing quote
    assert quote_windows_arg("C:\\dir\\") == '"C:\\dir\\\\"'
    assert quote_windows_arg('a\\"b') == '"a\\\\\\"b"'


def test_sumatra_command_line():
    translator = SumatraTranslator()
    argv = translator.build_command("C:\\Sumatra.exe", 'P"1', "C:\\t.pdf", PrintSettings(copies=2))
    assert translator.command_line(argv) == (
        '"C:\\Sumatra.exe" "-print-to" "P\\"1" "-print-settings" "2x" "-silent" "C:\\t.pdf"'
    )


@pytest.mark.parametrize("platform,expected", [
    ("linux", LpTranslator),
    ("linux2", LpTranslator),
    ("darwin", LpTranslator),
    ("win32", SumatraTranslator),
])
def test_platform_lookup(platform, expected):
    assert isinstance(get_translator(platform), expected)


def test_unknown_platform_is_an_error():
    with pytest.raises(UnsupportedPlatformError):
        get_translator("sunos5")
