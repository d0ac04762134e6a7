"""
Process module behavioral tests (color probe, ANSI stripping, spawning, routing).

Conventions
- Test method names follow CamelCase per project convention.
- Spawning tests run real /bin/sh scripts from a temporary directory and route
  piped output into in-memory binary streams.
"""

from __future__ import annotations

import asyncio
import io
import os
import sys
import tempfile
import unittest
from unittest import IsolatedAsyncioTestCase, TestCase, mock

from scriptor import ScriptEntry, SpawnError, compose
from scriptor.process import HOLD_LIMIT, _pump, colorful, spawn, strip


class _Terminal(io.StringIO):
    def isatty(self):
        return True


class TestColorful(TestCase):
    """Color capability probing of an output stream."""

    def testPlainStreamIsNotColorful(self):
        with mock.patch.dict(os.environ, {"TERM": "xterm-256color"}, clear=True):
            self.assertFalse(colorful(io.StringIO()))

    def testTerminalIsColorful(self):
        with mock.patch.dict(os.environ, {"TERM": "xterm-256color"}, clear=True):
            self.assertTrue(colorful(_Terminal()))

    def testNoColorDisablesTerminal(self):
        with mock.patch.dict(os.environ, {"TERM": "xterm-256color", "NO_COLOR": "1"}, clear=True):
            self.assertFalse(colorful(_Terminal()))

    def testDumbTerminalIsNotColorful(self):
        with mock.patch.dict(os.environ, {"TERM": "dumb"}, clear=True):
            self.assertFalse(colorful(_Terminal()))


class TestStrip(TestCase):
    """ANSI escape removal from raw child output."""

    def testRemovesColorSequences(self):
        self.assertEqual(strip(b"\x1b[1;31mred\x1b[0m plain"), b"red plain")

    def testRemovesCursorSequences(self):
        self.assertEqual(strip(b"a\x1b[2Kb\x1b[1Ac\n"), b"abc\n")

    def testRemovesHyperlinks(self):
        self.assertEqual(strip(b"\x1b]8;;https://example.com\x1b\\link\x1b]8;;\x1b\\"), b"link")

    def testKeepsCarriageReturns(self):
        self.assertEqual(strip(b"10%\r\x1b[1m20%\x1b[0m\r\n"), b"10%\r20%\r\n")

    def testKeepsUndecodableBytes(self):
        self.assertEqual(strip(b"\xff\xfe ok\n"), b"\xff\xfe ok\n")

    def testPlainTextIsUntouched(self):
        data = "tabs\tand unicode ✓\nsecond line\n".encode()
        self.assertEqual(strip(data), data)

    def testRemovesBellTerminatedTitles(self):
        self.assertEqual(strip(b"\x1b]0;my title\x07hello\n"), b"hello\n")

    def testKeepsOtherControlCharacters(self):
        self.assertEqual(strip(b"ab\bc\fd\ve\x1b[0m\n"), b"ab\bc\fd\ve\n")


class _Chunks:
    def __init__(self, *chunks):
        self.chunks = list(chunks)

    async def read(self, size):
        return self.chunks.pop(0) if self.chunks else b""


class _Recorder(io.BytesIO):
    def __init__(self):
        super().__init__()
        self.writes = []

    def write(self, data):
        self.writes.append(bytes(data))
        return super().write(data)


class TestPump(IsolatedAsyncioTestCase):
    """Forwarding of piped output chunk by chunk."""

    async def _pump(self, *chunks):
        stream = _Recorder()
        await _pump(_Chunks(*chunks), stream)
        return stream

    async def testCompleteSequencesAreForwardedWithoutNewline(self):
        stream = await self._pump(b"\x1b[1mname>\x1b[0m ")
        self.assertEqual(stream.writes, [b"name> "])

    async def testSplitSequenceIsHeldUntilComplete(self):
        stream = await self._pump(b"50% \x1b[3", b"2mdone\x1b[0m\n")
        self.assertEqual(stream.writes, [b"50% ", b"done\n"])

    async def testSplitBellTitleIsRemoved(self):
        stream = await self._pump(b"\x1b]0;ti", b"tle\x07hello\n")
        self.assertEqual(stream.getvalue(), b"hello\n")

    async def testUnterminatedSequenceAtEndIsDropped(self):
        stream = await self._pump(b"ok\x1b[")
        self.assertEqual(stream.getvalue(), b"ok")

    async def testHeldBytesAreBounded(self):
        stream = await self._pump(b"\x1b]" + b"x" * (HOLD_LIMIT + 10))
        self.assertTrue(stream.getvalue().endswith(b"x" * 10))


class TestSpawn(IsolatedAsyncioTestCase):
    """Spawning scripts through the shell with piped or inherited output."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = self._tmp.name
        self.stdout = io.BytesIO()
        self.stderr = io.BytesIO()

    def tearDown(self):
        self._tmp.cleanup()

    def _script(self, name, body):
        path = os.path.join(self.root, name)
        with open(path, "w") as file:
            file.write("#!/bin/sh\n" + body)
        os.chmod(path, 0o755)
        script = ScriptEntry(os.path.splitext(name)[0], path)
        return script, compose(script, self.root, os.path.join(self.root, ".venv", "bin"))

    async def _spawn(self, script, env, arguments=(), **options):
        return await spawn(
            script, list(arguments), env,
            colorful=options.get("colorful", False), stdout=self.stdout, stderr=self.stderr
        )

    async def testReturnsZeroOnSuccess(self):
        script, env = self._script("ok.sh", "exit 0\n")
        self.assertEqual(await self._spawn(script, env), 0)

    async def testReturnsChildExitCode(self):
        script, env = self._script("fail.sh", "exit 3\n")
        self.assertEqual(await self._spawn(script, env), 3)

    async def testSignalIsReportedShellStyle(self):
        script, env = self._script("killed.sh", "kill -TERM $$\n")
        self.assertEqual(await self._spawn(script, env), 128 + 15)

    async def testStripsColorFromBothStreams(self):
        script, env = self._script(
            "color.sh",
            "printf '\\033[32mgreen\\033[0m\\n'\nprintf '\\033[31mred\\033[0m\\n' >&2\n"
        )

        await self._spawn(script, env)

        self.assertEqual(self.stdout.getvalue(), b"green\n")
        self.assertEqual(self.stderr.getvalue(), b"red\n")

    async def testForwardsArgumentsVerbatim(self):
        script, env = self._script("args.sh", "printf '%s\\n' \"$@\"\n")
        arguments = ["a b", "$HOME", "*", "it's", "--flag=1"]

        await self._spawn(script, env, arguments)

        self.assertEqual(self.stdout.getvalue().decode().splitlines(), arguments)

    async def testPartialLineIsForwarded(self):
        script, env = self._script("prompt.sh", "printf 'name> '\n")

        await self._spawn(script, env)

        self.assertEqual(self.stdout.getvalue(), b"name> ")

    async def testLargeOutputIsForwardedCompletely(self):
        script, env = self._script("large.sh", "i=0\nwhile [ $i -lt 5000 ]; do echo \"line $i\"; i=$((i+1)); done\n")

        await self._spawn(script, env)

        lines = self.stdout.getvalue().decode().splitlines()
        self.assertEqual(len(lines), 5000)
        self.assertEqual(lines[-1], "line 4999")

    async def testRunsInCallerWorkingDirectory(self):
        script, env = self._script("where.sh", "pwd -P\n")

        await self._spawn(script, env)

        self.assertEqual(self.stdout.getvalue().decode().strip(), os.path.realpath(os.getcwd()))

    async def testUsesComposedEnvironment(self):
        script, env = self._script("env.sh", "printf '%s\\n' \"$SCRIPTOR_SCRIPT_NAME\" \"$EXTRA\"\n")
        env["EXTRA"] = "value"

        await self._spawn(script, env)

        self.assertEqual(self.stdout.getvalue().decode().splitlines(), ["env", "value"])

    async def testColoredPromptIsForwardedWhileChildRuns(self):
        release = os.path.join(self.root, "release")
        script, env = self._script(
            "ask.sh",
            f"printf '\\033[1mname>\\033[0m '\nwhile [ ! -e '{release}' ]; do sleep 0.05; done\n"
        )
        stream = _Recorder()
        written = asyncio.Event()
        stream.flush = written.set

        task = asyncio.create_task(spawn(script, [], env, colorful=False, stdout=stream, stderr=self.stderr))
        try:
            await asyncio.wait_for(written.wait(), 5)
            prompt = stream.getvalue()
        finally:
            open(release, "w").close()
            code = await task

        self.assertEqual(prompt, b"name> ")
        self.assertEqual(code, 0)

    async def testInheritedOutputBypassesStreams(self):
        script, env = self._script("quiet.sh", "exit 5\n")

        self.assertEqual(await self._spawn(script, env, colorful=True), 5)
        self.assertEqual(self.stdout.getvalue(), b"")

    async def testInheritedOutputKeepsEscapeSequences(self):
        script, env = self._script("green.sh", "printf '\\033[32mgreen\\033[0m'\n")
        sys.stdout.flush()
        saved = os.dup(1)
        with tempfile.TemporaryFile() as capture:
            os.dup2(capture.fileno(), 1)
            try:
                code = await self._spawn(script, env, colorful=True)
            finally:
                os.dup2(saved, 1)
                os.close(saved)
            capture.seek(0)
            output = capture.read()

        self.assertEqual(code, 0)
        self.assertEqual(output, b"\x1b[32mgreen\x1b[0m")
        self.assertEqual(self.stdout.getvalue(), b"")

    async def testSpawnFailureRaisesSpawnError(self):
        script, env = self._script("ok.sh", "exit 0\n")

        with mock.patch.object(asyncio, "create_subprocess_shell", side_effect=FileNotFoundError(2, "No such file")):
            with self.assertRaises(SpawnError) as context:
                await self._spawn(script, env)

        self.assertEqual(context.exception.path, script.path)


if __name__ == "__main__":
    unittest.main()
