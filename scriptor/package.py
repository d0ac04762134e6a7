"""
Package metadata lookup.

lookup(start) walks up from start to the nearest pyproject.toml and returns a
Package describing it. The dispatcher uses it for three things: the program
name shown in help, the version shown by --version, and the package root that
holds the binaries directory.

Binary name resolution
- first key of [project.scripts], else
- [project].name, else
- "cli".
"""
import os.path
import tomllib
from collections import namedtuple

DESCRIPTOR = "pyproject.toml"


class Package(namedtuple("Package", ("name", "binary", "version", "description", "root"))):
    __slots__ = ()


def locate(start, /):
    """
    Return the path of the nearest pyproject.toml at or above start, or None.
    """
    current = os.path.abspath(start)
    while True:
        candidate = os.path.join(current, DESCRIPTOR)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def binary(project, /):
    scripts = project.get("scripts")
    if isinstance(scripts, dict) and scripts:
        return next(iter(scripts))
    return project.get("name") or "cli"


def lookup(start, /):
    """
    Read the package metadata governing start.

    When no descriptor exists above start, an anonymous package rooted at start
    is returned (binary "cli", no name, version, or description).
    """
    if (descriptor := locate(start)) is None:
        return Package(None, "cli", None, None, os.path.abspath(start))

    with open(descriptor, "rb") as file:
        project = tomllib.load(file).get("project", {})

    return Package(
        project.get("name"),
        binary(project),
        project.get("version"),
        project.get("description"),
        os.path.dirname(descriptor),
    )


__all__ = (
    "DESCRIPTOR",
    "Package",
    "locate",
    "binary",
    "lookup",
)
