"""
Scriptor faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
- ScriptException / ScriptWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface a fault (respecting shell/fancy/colorful).

Hierarchy
- ScriptException
  • DiscoveryError → NotExecutableError, UnreadableDirectoryError
  • SpawnError
- ScriptWarning
  • DuplicateScriptWarning

Integration
- The dispatch engine raises exceptions directly; run() is the single place
  that renders them on the stderr console and exits with status 1.
- Warnings go through trigger(): in shell mode they are printed, otherwise they
  are emitted via warnings.warn.
- Hosts may define __styles__ (palette) and __codes__ (code labels) in __main__.
"""
import copy
import inspect
import os.path
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the dispatcher (stable identifiers).

    grouping (by high-level domain)
    - discovery (211xx)
      • NOT_EXECUTABLE, UNREADABLE_DIRECTORY
    - process (212xx)
      • SPAWN_FAILED
    - warnings (22xxx)
      • DUPLICATE_SCRIPT
    """
    # --- discovery errors (211xx) ---
    NOT_EXECUTABLE              = 21101
    UNREADABLE_DIRECTORY        = 21102

    # --- process errors (212xx) ---
    SPAWN_FAILED                = 21201

    # --- warnings (22xxx) ---
    DUPLICATE_SCRIPT            = 22101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, kind):
    main = __import__("__main__")
    options = fault.options

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", console.color_system is not None)
    fancy = options.get("fancy", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prog = text(
        options.get("prog", getattr(main, "__prog__", os.path.basename(sys.argv[0]) or "scriptor")),
        styler("prog-name")
    )

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(fault.code.normalize() if isinstance(fault.code, FaultCode) else "-", styler("code")),
        " | ",
        text(fault.title.title(), styler(f"{kind}-title")),
        " ]"
    )
    message = text(fault.message, styler(f"{kind}-message"))
    hint = Text.assemble(text(" → ", styler("hint-arrow")), text(fault.hint, styler("hint")))

    if fancy:
        return Panel(Group(message, hint), title=header, title_align="left", width=console.width - 4)

    return Group(header, message, hint)


class _Fault:
    """
    Shared behavior of exceptions and warnings: code/title/hint resolution and replacement.

    Class-level __code__, __title__ and __hint__ provide defaults; identically named
    options passed at construction or through trigger() win over them.
    """
    __code__ = Unset
    __title__ = ""
    __hint__ = ""

    @property
    def code(self):
        return self.options.get("code", self.__code__)

    @property
    def title(self):
        return self.options.get("title", self.__title__)

    @property
    def hint(self):
        return self.options.get("hint", self.__hint__.format_map(defaultdict(str, self.options)))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ScriptException(_Fault, Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        }, "error")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)


class DiscoveryError(ScriptException):
    """A problem in the scripts tree, surfaced before any child process exists."""


class NotExecutableError(DiscoveryError):
    __code__ = FaultCode.NOT_EXECUTABLE
    __title__ = "script is not executable"
    __hint__ = "run 'chmod +x {path}' or prefix its name with '_' to make it private"

    def __init__(self, message=Unset, /, **options):
        if message is Unset:
            message = f"expected path to be executable: {options['path']!r}"
        super().__init__(message, **options)

    @property
    def path(self):
        return self.options["path"]


class UnreadableDirectoryError(DiscoveryError):
    __code__ = FaultCode.UNREADABLE_DIRECTORY
    __title__ = "unreadable scripts directory"
    __hint__ = "check that {path} exists and can be listed"

    @property
    def path(self):
        return self.options["path"]


class SpawnError(ScriptException):
    __code__ = FaultCode.SPAWN_FAILED
    __title__ = "unable to start script"
    __hint__ = "check that the shell can run {path}"

    @property
    def path(self):
        return self.options.get("path")


class ScriptWarning(_Fault, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        }, "warning")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)


class DuplicateScriptWarning(ScriptWarning):
    __code__ = FaultCode.DUPLICATE_SCRIPT
    __title__ = "duplicate script name"
    __hint__ = "only {path} is reachable as {name!r}; rename one of the files"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via the stderr rich console; otherwise,
      exceptions are raised and warnings are emitted through the warnings module.

    typical options
    - prog, shell, fancy, colorful, title, code, hint, and any context the
      renderer may want to show (e.g., path, name).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "ScriptException",
    "DiscoveryError",
    "NotExecutableError",
    "UnreadableDirectoryError",
    "SpawnError",
    "ScriptWarning",
    "DuplicateScriptWarning",
    "trigger",
)
