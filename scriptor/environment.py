"""
Child process environment composition.

The child sees the caller's environment with:
- PATH prefixed by the package binaries directory and the scripts root, so
  installed tools and sibling scripts resolve before anything on the system PATH;
- three SCRIPTOR_* variables describing the invocation;
- the caller's overrides applied last.
"""
import os
import os.path

from .utils import Unset, coalesce

SCRIPT_NAME = "SCRIPTOR_SCRIPT_NAME"
SCRIPT_PATH = "SCRIPTOR_SCRIPT_PATH"
SCRIPTS_DIR = "SCRIPTOR_SCRIPTS_DIR"

# Relative to the package root.
BINARIES = os.path.join(".venv", "Scripts" if os.name == "nt" else "bin")


def compose(script, scripts_dir, binaries_dir, /, overrides=Unset, *, environ=None):
    """
    Build a fresh environment mapping for running script.

    Parameters
    - script: the resolved ScriptEntry.
    - scripts_dir: absolute scripts root.
    - binaries_dir: absolute binaries directory of the package.
    - overrides: mapping applied last; wins over every injected key.
    - environ: base environment (defaults to os.environ).

    Returns
    - dict[str, str]; neither environ nor overrides are modified.
    """
    environ = os.environ if environ is None else environ
    path = os.pathsep.join(part for part in (binaries_dir, scripts_dir, environ.get("PATH", "")) if part)
    return {
        **environ,
        "PATH": path,
        SCRIPT_NAME: script.name,
        SCRIPT_PATH: script.path,
        SCRIPTS_DIR: scripts_dir,
        **coalesce(overrides, {}),
    }


__all__ = (
    "SCRIPT_NAME",
    "SCRIPT_PATH",
    "SCRIPTS_DIR",
    "BINARIES",
    "compose",
)
