"""
Scriptor dispatch layer: discover, resolve, and run scripts as commands.

What this module provides
- Dispatcher: owns the configuration of one scripts directory and turns a
  token stream into exactly one of:
  • help output (no command given, or no command matched),
  • version output (-v/--version),
  • one child process running the matched script.
- Outcome: the result of a dispatch, carrying the exit code to apply.
- dispatch(directory, argv): coroutine returning an Outcome (faults are raised).
- run(directory): process entry point; renders faults and exits exactly once.

Quick start
    # scripts/index.py (excluded from discovery)
    #!/usr/bin/env python3
    import os.path
    import scriptor

    here = os.path.dirname(os.path.abspath(__file__))
    scriptor.run(here, scripts_path=".", origin=here)

    $ ./scripts/index.py db/migrate --dry-run

Flow
- discovery (scriptor.scripts) → resolution (Dispatcher.resolve) →
  environment (scriptor.environment) → spawn/routing (scriptor.process) →
  Outcome → run() applies it with sys.exit.

Customization
- Define __prog__ in __main__ to override the program name shown in help and faults.
- Define a mapping named __styles__ in __main__ to override any palette entry.
"""
import asyncio
import os
import os.path
import shlex
import sys
from collections import defaultdict, namedtuple
from collections.abc import Iterable

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from . import process
from .environment import BINARIES, compose
from .faults import ScriptException, console, trigger
from .package import lookup
from .scripts import ENTRYPOINT, discover
from .utils import Unset, coalesce, mirror

HELP = "--help"
VERSION = "--version"


class Outcome(namedtuple("Outcome", ("exit_code",))):
    """
    Result of one dispatch; exit_code is 0 unless the child exited non-zero.
    """
    __slots__ = ()


class Dispatcher:
    """
    Dispatch a command line to the matching script of a scripts directory.

    Parameters
    - directory: str | PathLike
      Base directory; the scripts root is directory/scripts_path.
    - scripts_path: str
      Relative path of the scripts root (default "scripts").
    - env: Mapping[str, str]
      Overrides merged last into the child environment.
    - origin: str | PathLike (keyword-only)
      The caller's directory. Command names are derived relative to it and the
      package lookup starts there. Defaults to the scripts root.
    - entrypoint: str (keyword-only)
      File name in the scripts root that is never offered as a command.
    - binaries: str (keyword-only)
      Binaries directory relative to the package root (default .venv/bin).
    - shell, fancy, colorful: bool (keyword-only)
      Fault rendering flags; colorful also selects output routing. Unset
      colorful means "probe stdout once per dispatch".
    - stdout, stderr: binary streams (keyword-only)
      Destinations of piped child output (default: sys.stdout.buffer / sys.stderr.buffer).

    Notes
    - All configuration is exposed as read-only properties.
    - Every dispatch performs a fresh discovery; nothing is cached.
    """

    __introspectable__ = (
        "directory",
        "scripts_path",
        "scripts_dir",
        "origin",
        "entrypoint",
        "binaries",
        "env",
        "shell",
        "fancy",
    )

    directory = mirror("directory")
    scripts_path = mirror("scripts_path")
    scripts_dir = mirror("scripts_dir")
    origin = mirror("origin")
    entrypoint = mirror("entrypoint")
    binaries = mirror("binaries")
    env = mirror("env")
    shell = mirror("shell")
    fancy = mirror("fancy")

    def __init__(
            self,
            directory,
            /,
            scripts_path="scripts",
            env=Unset,
            *,
            origin=Unset,
            entrypoint=ENTRYPOINT,
            binaries=BINARIES,
            shell=False,
            fancy=False,
            colorful=Unset,
            stdout=Unset,
            stderr=Unset
    ):
        if not isinstance(directory, str | os.PathLike):
            raise TypeError(f"{type(self).__name__} 'directory' must be a path")
        if not isinstance(scripts_path, str | os.PathLike):
            raise TypeError(f"{type(self).__name__} 'scripts_path' must be a path")
        if not isinstance(entrypoint, str) or not entrypoint:
            raise TypeError(f"{type(self).__name__} 'entrypoint' must be a non-empty string")

        env = coalesce(env, {})
        if any(not isinstance(key, str) or not isinstance(value, str) for key, value in env.items()):
            raise TypeError(f"{type(self).__name__} 'env' must map strings to strings")

        self._directory = os.path.abspath(directory)
        self._scripts_path = os.fspath(scripts_path)
        self._scripts_dir = os.path.abspath(os.path.join(self._directory, self._scripts_path))
        self._origin = os.path.abspath(coalesce(origin, self._scripts_dir))
        self._entrypoint = entrypoint
        self._binaries = os.fspath(binaries)
        self._env = dict(env)
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = colorful
        self._stdout = stdout
        self._stderr = stderr

    @property
    def colorful(self):
        """
        Whether the caller can render colors: the explicit setting, else rich's probe of stdout.
        """
        if self._colorful is Unset:
            return process.colorful()
        return bool(self._colorful)

    def __repr__(self):
        return f"{type(self).__name__}({self.scripts_dir!r})"

    def __rich_repr__(self):
        for name in self.__introspectable__:
            yield name, getattr(self, name)

    def _options(self, colorful=Unset):
        # Fault options; colorful is only forced when known, otherwise the stderr console decides.
        options = {"shell": self.shell, "fancy": self.fancy}
        if (colorful := coalesce(colorful, self._colorful)) is not Unset:
            options["colorful"] = bool(colorful)
        if (prog := getattr(__import__("__main__"), "__prog__", None)) is not None:
            options["prog"] = prog
        return options

    def discover(self, **options):
        """
        Return the ScriptEntry table of the scripts root (see scriptor.scripts.discover).
        """
        return discover(self.scripts_dir, self.origin, entrypoint=self.entrypoint, **(self._options() | options))

    def resolve(self, argv, scripts, /):
        """
        Match a token stream against the script table.

        Rules
        - Leading tokens starting with "-" belong to the dispatcher:
          -h/--help and -v/--version answer immediately, "--" ends them, others are ignored.
        - The first positional token is the candidate name; the first script with
          exactly that name wins.
        - Tokens after the candidate are forwarded untouched.

        Returns
        - (ScriptEntry, list[str]) on a match,
        - (HELP, []) when no command was given or nothing matched,
        - (VERSION, []) when the version was requested.
        """
        argv = list(argv)
        index = 0
        while index < len(argv):
            token = argv[index]
            if token == "--":
                index += 1
                break
            if token in ("-h", "--help"):
                return HELP, []
            if token in ("-v", "--version"):
                return VERSION, []
            if not token.startswith("-") or token == "-":
                break
            index += 1

        if index >= len(argv):
            return HELP, []

        for script in scripts:
            if script.name == argv[index]:
                return script, argv[index + 1:]
        return HELP, []

    def _helper(self, package, scripts, colorful):
        """
        Render the usage line and the list of available scripts to stdout.

        Palette keys
        - description-section, usage-label, usage-section, program-name
        - scripts-label, scripts-dot, script, empty, panel-title
        """
        console = Console()
        styles = defaultdict(str, {
            "description-section": "italic #A3A3A3",  # Neutral gray
            "usage-label": "bold #00E6FF",  # CYAN
            "usage-section": "#9CA3AF",  # Muted gray
            "program-name": "bold #FF4D94",  # MAGENTA-PINK

            "scripts-label": "bold #FFFFFF",  # Pure white headers
            "scripts-dot": "#36C5F0 dim",
            "script": "bold #36C5F0",  # SKY-BLUE names
            "empty": "italic #737373",

            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), style)

        prog = getattr(__import__("__main__"), "__prog__", package.binary)
        renders = []

        if package.description:
            renders.append(Text.assemble("  ", text(package.description, styler("description-section")), "\n"))

        usage = Text()
        usage.append("  ").append(text("Usage", styler("usage-label"))).append("\n")
        usage.append("    ").append(text("$ ", styler("usage-section")))
        usage.append(text(prog, styler("program-name")))
        usage.append(text(" <script> [...args]", styler("usage-section"))).append("\n")
        renders.append(usage)

        listing = Text()
        listing.append("  ").append(text("Scripts", styler("scripts-label"))).append("\n")
        for script in scripts:
            listing.append("    ").append(text("- ", styler("scripts-dot")))
            listing.append(text(script.name, styler("script"))).append("\n")
        if not scripts:
            listing.append("    ").append(text("(none)", styler("empty"))).append("\n")
        listing.rstrip()
        renders.append(listing)

        renderable = Group(*renders)
        if self.fancy:
            renderable = Panel(
                renderable,
                title=text(f"[ {prog} ]".upper(), styler("panel-title")),
                title_align="left",
            )
        console.print(renderable)

    def _versioner(self, package, colorful):
        """
        Render "<name> — <version>" for the governing package to stdout.
        """
        console = Console()
        styles = defaultdict(str, {
            "program-name": "bold #FF4D94",  # Magenta-pink brand pop
            "program-version": "bold #00E6FF",  # Cyan version
        } | getattr(__import__("__main__"), "__styles__", {}))

        def text(fragment, style):
            return Text(str(fragment), styles[style] if colorful else "")

        prog = getattr(__import__("__main__"), "__prog__", package.name or package.binary)
        console.print(Text(" — ").join((
            text(prog, "program-name"),
            text(package.version or "unknown", "program-version"),
        )))

    async def dispatch(self, argv=Unset, /):
        """
        Execute one command line.

        Parameters
        - argv:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.

        Returns
        - Outcome: exit_code 0 for help, version, or a successful child;
          the child's own status otherwise.

        Raises
        - DiscoveryError before any process exists; SpawnError when the child
          cannot be created.
        """
        if argv is Unset:
            tokens = sys.argv[1:]
        elif isinstance(argv, str):
            tokens = shlex.split(argv)
        elif isinstance(argv, Iterable):
            tokens = list(argv)
            if any(not isinstance(token, str) for token in tokens):
                raise TypeError("dispatch() argument must be a string or an iterable of strings")
        else:
            raise TypeError("dispatch() argument must be a string or an iterable of strings")

        colorful = self.colorful  # one routing decision per invocation
        package = lookup(self.origin)
        prog = getattr(__import__("__main__"), "__prog__", package.binary)
        scripts = self.discover(**(self._options(colorful) | {"prog": prog}))

        target, arguments = self.resolve(tokens, scripts)
        if target == HELP:
            self._helper(package, scripts, colorful)
            return Outcome(0)
        if target == VERSION:
            self._versioner(package, colorful)
            return Outcome(0)

        env = compose(target, self.scripts_dir, os.path.join(package.root, self.binaries), self.env)

        stdout = stderr = None
        if not colorful:
            stdout = self._stdout if self._stdout is not Unset else sys.stdout.buffer
            stderr = self._stderr if self._stderr is not Unset else sys.stderr.buffer

        # Keep our own buffered output ahead of the child's.
        sys.stdout.flush()
        sys.stderr.flush()

        code = await process.spawn(target, arguments, env, colorful=colorful, stdout=stdout, stderr=stderr)
        return Outcome(code)

    def run(self, argv=Unset, /):
        """
        Dispatch and terminate the process with the outcome's exit code.

        Faults are rendered on the stderr console and exit with status 1; any
        other exception is printed with a rich traceback and exits with status 1.
        """
        try:
            outcome = asyncio.run(self.dispatch(argv))
        except ScriptException as exception:
            trigger(exception, **{**self._options(), **exception.options, "shell": True})
        except KeyboardInterrupt:
            sys.exit(130)
        except Exception:
            console.print_exception()
            sys.exit(1)
        sys.exit(outcome.exit_code)


async def dispatch(directory, argv=Unset, /, **options):
    """
    Convenience coroutine: build a Dispatcher for directory and dispatch argv.
    """
    return await Dispatcher(directory, **options).dispatch(argv)


def run(directory, /, *args, **options):
    """
    Process entry point: dispatch sys.argv[1:] against directory and exit.

    Any failure, including an invalid configuration, exits with status 1.
    """
    try:
        dispatcher = Dispatcher(directory, *args, **{"shell": True} | options)
    except Exception:
        console.print_exception()
        sys.exit(1)
    dispatcher.run()


__all__ = (
    "Outcome",
    "Dispatcher",
    "dispatch",
    "run",
)
