"""
Commands module behavioral tests (resolution, lifecycle, toolkit).

Scope
- run_command resolution order: automatic method, subcommand method, task, main,
  then the "no subcommand" fault.
- Parsing faults, help display, output levels and the extra overlay.
- Lazy task access (get_task and attribute access).
- abort/halt signals, prompts, file creation, nested dispatch and helpers.

Conventions
- Test method names follow CamelCase per project convention.
- Every command gets a private registry and a ConsoleIo over StringIO streams.
"""
import io
import logging
import os
import tempfile
import unittest
from unittest import TestCase

from bosun import Command, ConsoleIo, Registry
from bosun.faults import CommandAbort, CommandHalt


class OrmCacheCommand(Command):
    def _welcome(self):
        self.out("orm banner")

    def build(self, name=None):
        self.seen_level = self.io.level
        self.verbose("Building metadata cache for %s" % (name or "every table"))
        self.out("<success>Cache build complete</success>")

    def clear(self, name=None):
        self.out("<success>Cache clear complete</success>")
        return True

    def get_option_parser(self):
        return super().get_option_parser().add_subcommand(
            "clear", help="Clear all metadata caches for the connection."
        ).add_subcommand(
            "build", help="Build all metadata caches for the connection."
        ).add_option(
            "connection", short="c", default="default", help="The connection to use."
        ).add_argument(
            "name", help="A specific table you want to clear or refresh."
        )


class SyncCommand(Command):
    def sync(self, *targets):
        self.targets = targets
        return 0

    def pull(self):
        return True

    def push(self, remote):
        return True

    def main(self, *args):
        self.main_args = args
        return 7


class GatedCommand(SyncCommand):
    def get_option_parser(self):
        return super().get_option_parser().add_subcommand("other")


class ReportCommand(Command):
    tasks = ("Weekly", "Daily")

    def _welcome(self):
        self.out("report banner")

    def daily(self):
        self.ran = "method"
        return True

    def get_option_parser(self):
        return super().get_option_parser().add_subcommand(
            "weekly", help="Weekly report."
        ).add_subcommand(
            "daily", help="Daily report."
        )


class WeeklyTask(Command):
    def _welcome(self):
        self.out("weekly banner")

    def main(self, *args):
        self.requested = self.param("requested")
        self.received = args
        self.out("weekly report")
        return True


class DailyTask(Command):
    def main(self):
        self.out("daily task")
        return True


class WarmupCommand(Command):
    tasks = ("PrimeCache",)

    def build_all(self, name=None):
        self.built = name
        return 0

    def get_option_parser(self):
        return super().get_option_parser().add_subcommand(
            "build_all", help="Build every cache."
        ).add_subcommand(
            "prime_cache", help="Prime the caches."
        ).add_argument("name")


class PrimeCacheTask(Command):
    def main(self):
        self.out("priming")
        return True


class RootCommand(Command):
    tasks = ("Summary",)

    def _welcome(self):
        self.out("root banner")

    def get_option_parser(self):
        return super().get_option_parser().add_subcommand("summary", help="Summaries.")


class SummaryTask(Command):
    def _welcome(self):
        self.out("summary banner")

    def weekly(self):
        self.requested = self.param("requested")
        self.ran = self.command
        self.out("weekly summary")
        return True

    def main(self):
        self.out("summary main")
        return False

    def get_option_parser(self):
        return super().get_option_parser().add_subcommand("weekly", help="Weekly summary.")


class StopCommand(Command):
    def boom(self):
        self.abort("boom", 42)

    def done(self):
        self.halt()

    def main(self):
        self.halt(5)


class CommandTestCase(TestCase):
    def setUp(self):
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        self.stdin = io.StringIO()
        self.io = ConsoleIo(self.stdout, self.stderr, self.stdin)
        self.registry = Registry()
        for cls in (
            OrmCacheCommand, SyncCommand, GatedCommand, ReportCommand, WeeklyTask, DailyTask, StopCommand,
            WarmupCommand, PrimeCacheTask, RootCommand, SummaryTask,
        ):
            self.registry.register(cls)

    def tearDown(self):
        self.io.set_loggers(False)

    def make(self, cls):
        command = cls(self.io, registry=self.registry)
        command.initialize()
        return command

    def answer(self, text):
        self.stdin.write(text)
        self.stdin.seek(0)


class TestResolution(CommandTestCase):
    """Which handler run_command selects."""

    def testSubcommandMethod(self):
        command = self.make(OrmCacheCommand)
        self.assertTrue(command.run_command(["clear"]))
        self.assertEqual(command.command, "clear")
        self.assertIn("Cache clear complete", self.stdout.getvalue())
        self.assertIn("orm banner", self.stdout.getvalue())

    def testAutomaticMethodDropsCommandToken(self):
        command = self.make(SyncCommand)
        self.assertEqual(command.run_command(["sync", "a", "b"], True), 0)
        self.assertEqual(command.targets, ("a", "b"))

    def testAutomaticMethodRequiresAutoMode(self):
        command = self.make(SyncCommand)
        self.assertEqual(command.run_command(["sync", "a"]), 7)
        self.assertEqual(command.main_args, ("sync", "a"))
        self.assertEqual(command.command, "main")

    def testAutomaticMethodRequiresZeroSubcommands(self):
        command = self.make(GatedCommand)
        self.assertEqual(command.run_command(["sync"], True), 7)
        self.assertFalse(hasattr(command, "targets"))

    def testHyphenatedTokenSelectsUnderscoredMethod(self):
        class HyphenCommand(Command):
            def clear_all(self):
                return 3

        self.assertEqual(self.make(HyphenCommand).run_command(["clear-all"], True), 3)

    def testHyphenatedTokenSelectsDeclaredSubcommand(self):
        command = self.make(WarmupCommand)
        self.assertEqual(command.run_command(["build-all", "users"]), 0)
        self.assertEqual(command.command, "build_all")
        self.assertEqual(command.built, "users")
        self.assertEqual(self.stderr.getvalue(), "")

    def testHyphenatedTokenDelegatesToDeclaredTask(self):
        command = self.make(WarmupCommand)
        self.assertTrue(command.run_command(["prime-cache"]))
        self.assertIn("priming", self.stdout.getvalue())

    def testHyphenatedTokenThroughDispatch(self):
        self.assertEqual(self.make(RootCommand).dispatch_command("warmup build-all"), 0)

    def testMethodBeatsTask(self):
        command = self.make(ReportCommand)
        self.assertTrue(command.run_command(["daily"]))
        self.assertEqual(command.ran, "method")
        self.assertNotIn("daily task", self.stdout.getvalue())
        self.assertFalse(command._tasks.loaded("Daily"))

    def testTaskDelegationSuppressesTaskBanner(self):
        command = self.make(ReportCommand)
        self.assertTrue(command.run_command(["weekly", "x"]))
        output = self.stdout.getvalue()
        self.assertEqual(output.count("report banner"), 1)
        self.assertNotIn("weekly banner", output)
        self.assertIn("weekly report", output)
        task = command.get_task("weekly")
        self.assertTrue(task.requested)
        self.assertEqual(task.received, ("x",))

    def testDelegatedTaskRunsItsOwnSubcommandMethod(self):
        command = self.make(RootCommand)
        self.assertTrue(command.run_command(["summary", "weekly"]))
        output = self.stdout.getvalue()
        self.assertEqual(output.count("root banner"), 1)
        self.assertNotIn("summary banner", output)
        self.assertNotIn("summary main", output)
        self.assertIn("weekly summary", output)
        task = command.get_task("summary")
        self.assertEqual(task.ran, "weekly")
        self.assertIs(task.requested, True)

    def testNoHandlerWritesFaultAndHelp(self):
        command = self.make(ReportCommand)
        self.assertFalse(command.run_command(["unknown-thing"]))
        errors = self.stderr.getvalue()
        self.assertIn("No subcommand provided", errors)
        self.assertIn("Usage:", errors)
        self.assertIn("weekly", errors)

    def testNoHandlerWithoutArguments(self):
        command = self.make(ReportCommand)
        self.assertFalse(command.run_command([]))
        self.assertIn("No subcommand provided", self.stderr.getvalue())

    def testParseErrorIsRenderedAndFails(self):
        command = self.make(OrmCacheCommand)
        self.assertFalse(command.run_command(["build", "--conection=test"]))
        self.assertIn("unknown option '--conection'", self.stderr.getvalue())
        self.assertNotIn("Cache build complete", self.stdout.getvalue())

    def testArityMismatchIsRenderedAndFails(self):
        command = self.make(SyncCommand)
        self.assertFalse(command.run_command(["pull", "extra"], True))
        self.assertIn("at most 0", self.stderr.getvalue())
        self.assertFalse(command.run_command(["push"], True))
        self.assertIn("missing required positional arguments", self.stderr.getvalue())

    def testExtraOverlaysParsedParams(self):
        command = self.make(OrmCacheCommand)
        command.run_command(["build", "--connection", "test"], False, {"connection": "override"})
        self.assertEqual(command.params["connection"], "override")

    def testRequestedSuppressesBanner(self):
        command = self.make(OrmCacheCommand)
        command.run_command(["build"], False, {"requested": True})
        self.assertNotIn("orm banner", self.stdout.getvalue())


class TestOutputLevel(CommandTestCase):
    """--quiet and --verbose take effect before the handler runs."""

    def testQuietIsAppliedBeforeTheMethodRuns(self):
        command = self.make(OrmCacheCommand)
        self.assertIsNone(command.run_command(["build", "--quiet"]))
        self.assertEqual(command.seen_level, ConsoleIo.QUIET)
        self.assertNotIn("Cache build complete", self.stdout.getvalue())

    def testVerboseWritesVerboseMessages(self):
        command = self.make(OrmCacheCommand)
        command.run_command(["build", "users", "-v"])
        self.assertEqual(command.seen_level, ConsoleIo.VERBOSE)
        self.assertIn("Building metadata cache for users", self.stdout.getvalue())


class TestHelp(CommandTestCase):
    """--help shows the help of the command or of the named subcommand."""

    def testSubcommandHelp(self):
        command = self.make(OrmCacheCommand)
        self.assertIsNone(command.run_command(["build", "--help"]))
        output = self.stdout.getvalue()
        self.assertIn("Build all metadata caches for the connection.", output)
        self.assertIn("bosun orm_cache build", output)
        self.assertIn("orm banner", output)
        self.assertNotIn("Cache build complete", output)

    def testUndeclaredNameShowsFullHelp(self):
        command = self.make(OrmCacheCommand)
        command.run_command(["nope", "--help"])
        self.assertIn("Subcommands:", self.stdout.getvalue())

    def testXmlHelpIsRaw(self):
        command = self.make(OrmCacheCommand)
        command.run_command(["build", "xml", "--help"])
        output = self.stdout.getvalue()
        self.assertIn("<shell>", output)
        self.assertNotIn("orm banner", output)
        self.assertEqual(self.io.mode, ConsoleIo.RAW)

    def testPluginCommandParserName(self):
        command = self.make(OrmCacheCommand)
        command.plugin = "Acme"
        self.assertEqual(command.get_option_parser().command, "acme.orm_cache")


class TestTasks(CommandTestCase):
    """Lazy task access from the command."""

    def testAttributeAccessRealizesTask(self):
        command = self.make(ReportCommand)
        self.assertEqual(command.task_names, ("Weekly", "Daily"))
        self.assertTrue(command.has_task("weekly"))
        self.assertIs(command.Weekly, command.get_task("weekly"))
        self.assertIs(command.Weekly.io, command.io)

    def testUnknownAttributeRaises(self):
        command = self.make(ReportCommand)
        with self.assertRaises(AttributeError):
            command.Monthly
        with self.assertRaises(AttributeError):
            command.get_task("Monthly")
        with self.assertRaises(AttributeError):
            command._private


class TestIntrospection(CommandTestCase):
    """Method detection and representation."""

    def testHasMethod(self):
        command = self.make(OrmCacheCommand)
        self.assertTrue(command.has_method("build"))
        self.assertFalse(command.has_method("out"))
        self.assertFalse(command.has_method("initialize"))
        self.assertFalse(command.has_method("_welcome"))
        self.assertFalse(command.has_method("tasks"))
        self.assertFalse(command.has_method("missing"))
        self.assertFalse(command.has_method(None))

    def testInheritedMethodsCount(self):
        self.assertTrue(self.make(GatedCommand).has_method("sync"))

    def testDefaultName(self):
        self.assertEqual(OrmCacheCommand.name, "orm_cache")
        self.assertEqual(WeeklyTask.name, "weekly")

    def testRepr(self):
        command = self.make(OrmCacheCommand)
        self.assertTrue(repr(command).startswith("orm-cache-command(name='orm_cache', plugin=None, command=None"))


class TestSignals(CommandTestCase):
    """abort and halt unwind with a status."""

    def testAbortWritesMessageAndCarriesCode(self):
        command = self.make(StopCommand)
        with self.assertRaises(CommandAbort) as context:
            command.run_command(["boom"], True)
        self.assertEqual(context.exception.code, 42)
        self.assertIn("boom", self.stderr.getvalue())

    def testHaltIsSilent(self):
        command = self.make(StopCommand)
        with self.assertRaises(CommandHalt) as context:
            command.run_command(["done"], True)
        self.assertEqual(context.exception.code, 0)
        self.assertEqual(self.stderr.getvalue(), "")

    def testHaltStatus(self):
        with self.assertRaises(CommandHalt) as context:
            self.make(StopCommand).run_command([])
        self.assertEqual(context.exception.code, 5)


class TestToolkit(CommandTestCase):
    """Prompts, files, nested dispatch and helpers."""

    def testPromptReturnsDefaultWhenNotInteractive(self):
        command = self.make(OrmCacheCommand)
        command.interactive = False
        self.assertEqual(command.prompt("Continue?", ["y", "n"], "y"), "y")
        self.assertEqual(self.stdout.getvalue(), "")

    def testPromptAsksWhenInteractive(self):
        self.answer("n\n")
        self.assertEqual(self.make(OrmCacheCommand).prompt("Continue?", ["y", "n"], "y"), "n")

    def testParam(self):
        command = self.make(OrmCacheCommand)
        command.run_command(["build", "-c", "test"])
        self.assertEqual(command.param("connection"), "test")
        self.assertIsNone(command.param("missing"))

    def testParseDispatchArguments(self):
        parse = Command.parse_dispatch_arguments
        self.assertEqual(parse(["orm_cache build users"]), (["orm_cache", "build", "users"], {}))
        self.assertEqual(parse(["orm_cache", "build"]), (["orm_cache", "build"], {}))
        self.assertEqual(
            parse([{"command": "orm_cache build", "extra": {"connection": "test"}}]),
            (["orm_cache", "build"], {"connection": "test"}),
        )
        self.assertEqual(parse([{"command": ["orm_cache", "clear"]}]), (["orm_cache", "clear"], {}))

    def testDispatchCommandRunsNestedCommandAsRequested(self):
        command = self.make(ReportCommand)
        self.assertEqual(command.dispatch_command("orm_cache build"), 0)
        output = self.stdout.getvalue()
        self.assertIn("Cache build complete", output)
        self.assertNotIn("orm banner", output)

    def testDispatchCommandReturnsFailureStatus(self):
        command = self.make(ReportCommand)
        self.assertEqual(command.dispatch_command("nope"), 1)
        self.assertIn("unknown command", self.stderr.getvalue())

    def testWrapText(self):
        self.assertEqual(self.make(OrmCacheCommand).wrap_text("a b c d", width=3), "a b\nc d")
        self.assertEqual(self.make(OrmCacheCommand).wrap_text("a b", width=10, indent="  "), "  a b")

    def testShortPath(self):
        self.assertEqual(Command.short_path(os.path.join(os.getcwd(), "src", "app.py")), "src/app.py")

    def testLog(self):
        command = self.make(OrmCacheCommand)
        with self.assertLogs("bosun.orm_cache", logging.INFO) as logs:
            command.log("cache warmed")
        self.assertEqual(logs.output, ["INFO:bosun.orm_cache:cache warmed"])

    def testClearHonorsNoclear(self):
        command = self.make(OrmCacheCommand)
        command.params = {"noclear": True}
        command.clear()
        self.assertEqual(self.stdout.getvalue(), "")


class TestCreateFile(CommandTestCase):
    """create_file asks before overwriting."""

    def setUp(self):
        super().setUp()
        self.directory = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.directory.name, "nested", "app.txt")
        self.command = self.make(OrmCacheCommand)

    def tearDown(self):
        self.directory.cleanup()
        super().tearDown()

    def existing(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as file:
            file.write("old")

    def read(self):
        with open(self.path) as file:
            return file.read()

    def testCreatesFileAndDirectories(self):
        self.assertTrue(self.command.create_file(self.path, "new"))
        self.assertEqual(self.read(), "new")
        self.assertIn("Creating file", self.stdout.getvalue())
        self.assertIn("Wrote", self.stdout.getvalue())

    def testNonInteractiveSkipsExistingFile(self):
        self.existing()
        self.command.interactive = False
        self.assertFalse(self.command.create_file(self.path, "new"))
        self.assertEqual(self.read(), "old")
        self.assertIn("File exists, skipping", self.stdout.getvalue())

    def testForceOverwrites(self):
        self.existing()
        self.command.interactive = False
        self.command.params = {"force": True}
        self.assertTrue(self.command.create_file(self.path, "new"))
        self.assertEqual(self.read(), "new")

    def testAnswerNoSkips(self):
        self.existing()
        self.answer("n\n")
        self.assertFalse(self.command.create_file(self.path, "new"))
        self.assertEqual(self.read(), "old")
        self.assertIn("Skip", self.stdout.getvalue())

    def testAnswerAllSetsForce(self):
        self.existing()
        self.answer("a\n")
        self.assertTrue(self.command.create_file(self.path, "new"))
        self.assertTrue(self.command.params["force"])
        self.assertEqual(self.read(), "new")

    def testAnswerQuitHalts(self):
        self.existing()
        self.answer("q\n")
        with self.assertRaises(CommandHalt):
            self.command.create_file(self.path, "new")
        self.assertEqual(self.read(), "old")
        self.assertIn("Quitting", self.stdout.getvalue())


if __name__ == "__main__":
    unittest.main()
