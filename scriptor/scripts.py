"""
Script discovery and command-name derivation.

What this module provides
- ScriptEntry: immutable (name, path) pair, one per invocable file.
- walk(directory): depth-first listing of candidate files, skipping private ("_")
  and hidden (".") entries at every depth.
- derive(path, origin): map an absolute file path to its command name.
- discover(directory, ...): build the ordered entry table, verifying that every
  candidate is executable and reporting duplicate names.

Naming rules (applied in order)
- strip the origin directory prefix and the separator after it,
- strip the extension,
- strip a trailing "/index" segment, so "db/index.sh" is reachable as "db".

Examples
    scripts/build.sh        → build
    scripts/db/index.sh     → db
    scripts/db/migrate.sh   → db/migrate
    scripts/_helpers.sh     → (skipped)
"""
import os
import os.path
from collections import namedtuple

from rich.text import Text

from .faults import NotExecutableError, UnreadableDirectoryError, DuplicateScriptWarning, trigger
from .utils import Unset, coalesce

# File name of the dispatcher's own entry point when it lives in the scripts root.
ENTRYPOINT = "index.py"

PRIVATE_PREFIXES = ("_", ".")


class ScriptEntry(namedtuple("ScriptEntry", ("name", "path"))):
    """
    A discovered script: its public command name and its absolute file path.
    """
    __slots__ = ()

    def __rich__(self):
        return Text.assemble((self.name, "bold #36C5F0"), " → ", (self.path, "#9CA3AF"))


def walk(directory, /):
    """
    Yield the absolute paths of every candidate file below directory, depth-first.

    Entries are visited in the order os.scandir returns them. Directories are
    descended into (symlinks followed) but never yielded. Any entry whose base
    name starts with "_" or "." is skipped together with its whole subtree.

    Raises
    - UnreadableDirectoryError: when any directory on the way cannot be listed.
    """
    try:
        with os.scandir(directory) as iterator:
            entries = list(iterator)
    except OSError as error:
        raise UnreadableDirectoryError(
            f"unable to list {directory!r}: {error.strerror or error}", path=directory
        ) from error

    for entry in entries:
        if entry.name.startswith(PRIVATE_PREFIXES):
            continue
        path = os.path.abspath(entry.path)
        if entry.is_dir():
            yield from walk(path)
        else:
            yield path


def derive(path, origin, /):
    """
    Derive the command name of the file at path, relative to the origin directory.

    A path outside origin keeps its full form (minus the leading separator).
    Separators are normalized to "/" so names are stable across platforms.
    """
    origin = os.path.abspath(origin)
    name = os.path.abspath(path)
    if name.startswith(origin + os.sep):
        name = name[len(origin):]
    name = name.lstrip(os.sep)
    name = os.path.splitext(name)[0]
    name = name.replace(os.sep, "/")
    if name.endswith("/index"):
        name = name[:-len("/index")]
    return name


def discover(directory, /, origin=Unset, *, entrypoint=ENTRYPOINT, **options):
    """
    Build the script table for the scripts root at directory.

    Parameters
    - directory: the scripts root.
    - origin: the caller's directory used to derive names (defaults to directory).
    - entrypoint: file name excluded when found directly in directory.
    - options: fault options (prog, shell, fancy, colorful) used for warnings.

    Behavior
    - Walks the tree (see walk()) and drops the entry point file.
    - Every remaining file must be executable by the current process; the first
      one that is not aborts the whole discovery.
    - When two files derive the same name, the first one discovered wins and a
      DuplicateScriptWarning is triggered for every later one.

    Returns
    - list[ScriptEntry] in discovery order.

    Raises
    - NotExecutableError, UnreadableDirectoryError.
    """
    directory = os.path.abspath(directory)
    origin = coalesce(origin, directory)
    sentinel = os.path.join(directory, entrypoint)

    scripts = []
    seen = {}
    for path in walk(directory):
        if path == sentinel:
            continue
        if not os.access(path, os.X_OK):
            raise NotExecutableError(path=path, **options)

        script = ScriptEntry(derive(path, origin), path)
        if script.name in seen:
            trigger(
                DuplicateScriptWarning(
                    f"{path!r} derives the name {script.name!r} already taken by {seen[script.name].path!r}"
                ),
                name=script.name,
                path=seen[script.name].path,
                **options
            )
            continue
        seen[script.name] = script
        scripts.append(script)
    return scripts


__all__ = (
    "ENTRYPOINT",
    "ScriptEntry",
    "walk",
    "derive",
    "discover",
)
