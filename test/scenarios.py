"""
End-to-end scenarios against the demo 'hello' command.

Scope
- Dispatch the documented lines against the source built in main.py, whose
  context greets "Herbert".
- Check status codes, printed greetings and the faults of rejected lines.

Conventions
- Test method names follow CamelCase per project convention.
- Handler output is captured by redirecting stdout.
"""

from __future__ import annotations

import contextlib
import io
import unittest
from unittest import TestCase

import main
from oberst import CommandNotFoundError, NoMatchingSyntaxError, ArgumentParseError


class TestHelloScenarios(TestCase):
    """The hello command of the demo script."""

    def setUp(self):
        self.stdout = self.enterContext(contextlib.redirect_stdout(io.StringIO()))

    def lines(self) -> list[str]:
        return self.stdout.getvalue().splitlines()

    def testHello(self):
        self.assertEqual(main.source.dispatch("hello"), 0)
        self.assertEqual(self.lines(), ["Hello, Herbert!"])

    def testHelloFrom(self):
        self.assertEqual(main.source.dispatch('hello "John"'), 0)
        self.assertEqual(self.lines(), ["Hello, Herbert! (from John)"])

    def testHelloFromQuotedName(self):
        self.assertEqual(main.source.dispatch('hello "John Smith"'), 0)
        self.assertEqual(self.lines(), ["Hello, Herbert! (from John Smith)"])

    def testHelloTimes(self):
        self.assertEqual(main.source.dispatch("hello 3 times"), 0)
        self.assertEqual(self.lines(), ["Hello, Herbert!"] * 3)

    def testHelloZeroTimes(self):
        self.assertEqual(main.source.dispatch("hello 0 times"), 0)
        self.assertEqual(self.lines(), [])

    def testHelloNegativeTimes(self):
        with self.assertRaises(NoMatchingSyntaxError) as context:
            main.source.dispatch("hello -1 times")
        self.assertEqual(self.lines(), [])
        self.assertEqual(context.exception.command, "hello")
        self.assertEqual(len(context.exception.usage), 3)

    def testHelloOverflowingTimes(self):
        with self.assertRaises(NoMatchingSyntaxError):
            main.source.dispatch("hello %d times" % 2 ** 64)
        self.assertEqual(self.lines(), [])

    def testGoodbye(self):
        with self.assertRaises(CommandNotFoundError) as context:
            main.source.dispatch("goodbye")
        self.assertEqual(context.exception.name, "goodbye")

    def testRepeatedDispatchIsDeterministic(self):
        statuses = [main.source.dispatch("hello 2 times") for _ in range(3)]
        self.assertEqual(statuses, [0, 0, 0])
        self.assertEqual(self.lines(), ["Hello, Herbert!"] * 6)

    def testUsage(self):
        self.assertEqual(main.source.usage("hello").usage, ("", "<sender: str>", "<times: u64> times"))

    def testTimesVariantDiagnostic(self):
        # Only the third form accepts a trailing 'times'; its own fault is the parse failure.
        variant = main.source.tree["hello"].variants[2]
        with self.assertRaises(ArgumentParseError):
            variant.match(("-1", "times"), main.source.tree.types, command="hello")


if __name__ == "__main__":
    unittest.main()
