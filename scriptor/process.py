"""
Child process spawning and output routing.

Routing is decided once per invocation:
- colorful caller → the child inherits stdin/stdout/stderr, so its escape
  sequences reach the terminal untouched;
- otherwise → stdin is inherited, stdout and stderr are piped independently
  through strip() into the parent's binary streams.

Piped output is forwarded as soon as it is read. Only an escape sequence left
open at the end of a read is held back (at most HOLD_LIMIT bytes) until it
terminates; one still open when the stream ends is dropped.

spawn() is the single awaitable that owns the child: both pumps and the wait
run under one gather, and the exit status is its return value.
"""
import asyncio
import os
import re
import shlex
import sys

from rich.ansi import AnsiDecoder
from rich.console import Console

from .faults import SpawnError

CHUNK_SIZE = 64 * 1024
HOLD_LIMIT = 4 * 1024

# OSC terminated by BEL; AnsiDecoder only knows the ESC \ terminator.
_OSC_BELL = re.compile(rb"\x1b\][^\x07\x1b]*\x07")
# Escape sequence started but not terminated at the end of the buffer.
_UNTERMINATED = re.compile(rb"\x1b(?:\[[0-?]*[ -/]*|\][^\x07\x1b]*\x1b?)?\Z")
# Controls rich would otherwise drop while decoding.
_CONTROLS = re.compile(r"([\r\b\f\v])")


def colorful(stream=None, /):
    """
    Return True when stream (default: sys.stdout) can render ANSI colors.

    Delegates to rich's console probe, which honours tty detection, TERM=dumb,
    NO_COLOR and FORCE_COLOR.
    """
    console = Console(file=stream if stream is not None else sys.stdout)
    return console.color_system is not None and not console.no_color


def strip(data, /):
    """
    Remove ANSI escape sequences (SGR, cursor movement, OSC) from a byte string.

    Carriage returns, backspaces, form feeds, vertical tabs and undecodable
    bytes survive. A lone BEL is dropped.
    """
    decoder = AnsiDecoder()
    text = _OSC_BELL.sub(b"", data).decode("utf-8", "surrogateescape")
    segments = _CONTROLS.split(text)
    segments[::2] = [decoder.decode_line(segment).plain for segment in segments[::2]]
    return "".join(segments).encode("utf-8", "surrogateescape")


def _holdback(data):
    # Offset of a trailing unterminated escape sequence, len(data) when there is none.
    match = _UNTERMINATED.search(data, max(0, len(data) - HOLD_LIMIT))
    return match.start() if match else len(data)


async def _pump(reader, stream):
    pending = b""
    while chunk := await reader.read(CHUNK_SIZE):
        data = pending + chunk
        cut = _holdback(data)
        data, pending = data[:cut], data[cut:]
        if data:
            stream.write(strip(data))
            stream.flush()


async def spawn(script, arguments, /, env, *, colorful, stdout, stderr):
    """
    Run script through the shell and wait for it to terminate.

    Parameters
    - script: the resolved ScriptEntry.
    - arguments: forwarded verbatim (each one is shell-quoted).
    - env: the composed child environment.
    - colorful: routing decision (see module docstring).
    - stdout, stderr: binary streams receiving piped output when not colorful.

    Returns
    - int: the child's exit status; termination by signal N is reported as 128 + N.

    Raises
    - SpawnError: when the process cannot be created.
    """
    command = shlex.join([script.path, *arguments])
    pipe = None if colorful else asyncio.subprocess.PIPE
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=None,
            stdout=pipe,
            stderr=pipe,
            env=env,
            cwd=os.getcwd(),
        )
    except OSError as error:
        raise SpawnError(
            f"unable to spawn {script.path!r}: {error.strerror or error}", path=script.path
        ) from error

    if colorful:
        code = await process.wait()
    else:
        *_, code = await asyncio.gather(
            _pump(process.stdout, stdout),
            _pump(process.stderr, stderr),
            process.wait(),
        )
    return code if code >= 0 else 128 - code


__all__ = (
    "colorful",
    "strip",
    "spawn",
)
