"""
Command Translator
Maps print settings to the argument syntax of the platform's print mechanism
"""

import shlex
import sys
from typing import Dict, List, Optional, Type

from .errors import UnsupportedPlatformError
from .models import Duplex, Orientation, PrintSettings

LP_SIDES = {
    Duplex.SIMPLEX: "one-sided",
    Duplex.SHORT_EDGE: "two-sided-short-edge",
    Duplex.LONG_EDGE: "two-sided-long-edge",
}

# IPP orientation-requested enum values
LP_ORIENTATION_CODES = {
    Orientation.PORTRAIT: 3,
    Orientation.LANDSCAPE: 4,
}

SUMATRA_DUPLEX = {
    Duplex.SIMPLEX: "simplex",
    Duplex.SHORT_EDGE: "duplexshort",
    Duplex.LONG_EDGE: "duplexlong",
}


def quote_windows_arg(arg: str) -> str:
    """Quote one argument as a whole for CommandLineToArgvW parsing.

    The result is always wrapped in double quotes. Embedded quotes are
    backslash-escaped and any backslashes preceding them (or the closing
    quote) are doubled, so no character of ``arg`` can end the argument.
    """
    parts = ['"']
    backslashes = 0
    for ch in arg:
        if ch == "\\":
            backslashes += 1
            continue
        if ch == '"':
            parts.append("\\" * (backslashes * 2 + 1))
        else:
            parts.append("\\" * backslashes)
        backslashes = 0
        parts.append(ch)
    parts.append("\\" * (backslashes * 2))
    parts.append('"')
    return "".join(parts)


class CommandTranslator:
    """Base translator: settings tokens plus a full print command"""

    name = ""
    separator = " "

    def settings_tokens(self, settings: Optional[PrintSettings]) -> List[str]:
        raise NotImplementedError

    def format_settings(self, settings: Optional[PrintSettings]) -> str:
        return self.separator.join(self.settings_tokens(settings))

    def build_command(self, executable: str, printer: str, file_path: str,
                      settings: Optional[PrintSettings]) -> List[str]:
        raise NotImplementedError

    def quote(self, arg: str) -> str:
        raise NotImplementedError

    def command_line(self, argv: List[str]) -> str:
        """Render an argument vector as a single, fully quoted command line"""
        return " ".join(self.quote(arg) for arg in argv)


class LpTranslator(CommandTranslator):
    """CUPS ``lp`` syntax used on Linux and macOS"""

    name = "lp"
    separator = " "

    def settings_tokens(self, settings: Optional[PrintSettings]) -> List[str]:
        if not settings:
            return []

        tokens = []
        if settings.duplex:
            tokens += ["-o", f"sides={LP_SIDES[settings.duplex]}"]

        if settings.copies and settings.copies > 1:
            tokens += ["-n", str(settings.copies)]

        if settings.orientation:
            tokens += ["-o", settings.orientation.value]
            tokens += ["-o", f"orientation-requested={LP_ORIENTATION_CODES[settings.orientation]}"]

        return tokens

    def build_command(self, executable: str, printer: str, file_path: str,
                      settings: Optional[PrintSettings]) -> List[str]:
        return [executable, *self.settings_tokens(settings), "-d", printer, file_path]

    def quote(self, arg: str) -> str:
        return shlex.quote(arg)


class SumatraTranslator(CommandTranslator):
    """SumatraPDF ``-print-settings`` syntax used on Windows"""

    name = "sumatra"
    separator = ","

    def settings_tokens(self, settings: Optional[PrintSettings]) -> List[str]:
        if not settings:
            return []

        tokens = []
        if settings.duplex:
            tokens.append(SUMATRA_DUPLEX[settings.duplex])

        if settings.copies and settings.copies > 1:
            tokens.append(f"{settings.copies}x")

        if settings.orientation:
            tokens.append(settings.orientation.value)

        return tokens

    def build_command(self, executable: str, printer: str, file_path: str,
                      settings: Optional[PrintSettings]) -> List[str]:
        cmd = [executable, "-print-to", printer]
        print_settings = self.format_settings(settings)
        if print_settings:
            cmd.extend(["-print-settings", print_settings])
        cmd.extend(["-silent", file_path])
        return cmd

    def quote(self, arg: str) -> str:
        return quote_windows_arg(arg)


PLATFORM_TRANSLATORS: Dict[str, Type[CommandTranslator]] = {
    "linux": LpTranslator,
    "darwin": LpTranslator,
    "win32": SumatraTranslator,
}


def normalize_platform(platform: Optional[str] = None) -> str:
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return "linux"
    return platform


def get_translator(platform: Optional[str] = None) -> CommandTranslator:
    """Look up the translator for ``platform`` (defaults to the host)"""
    key = normalize_platform(platform)
    try:
        return PLATFORM_TRANSLATORS[key]()
    except KeyError:
        raise UnsupportedPlatformError(f"Printing is not supported on platform '{key}'") from None
