"""
Console entry point tests.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import os
import unittest
from unittest import TestCase, mock

from scriptor import __main__ as entry


class TestMain(TestCase):
    """The scriptor console script dispatches the working directory."""

    def testDefaultsToScriptsUnderWorkingDirectory(self):
        with mock.patch.dict(os.environ), mock.patch.object(entry, "run") as run:
            os.environ.pop("SCRIPTOR_SCRIPTS_PATH", None)
            entry.main()

        run.assert_called_once_with(os.getcwd(), scripts_path="scripts")

    def testScriptsPathFromEnvironment(self):
        with mock.patch.dict(os.environ, {"SCRIPTOR_SCRIPTS_PATH": "tools"}), \
                mock.patch.object(entry, "run") as run:
            entry.main()

        run.assert_called_once_with(os.getcwd(), scripts_path="tools")


if __name__ == "__main__":
    unittest.main()
