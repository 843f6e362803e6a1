r"""
Bosun commands.

Overview
- Command is the base class of every command and task. Subclasses declare
  public methods (one per subcommand), an optional main fallback, the tasks they
  delegate to and an option parser.

- Resolution (run_command)
  Given argv (without the command token itself), the first token names the
  requested subcommand. After parsing options and applying the output level:
  a. a public method with that name runs when the dispatcher asked for
     automatic method dispatch and the parser declares no subcommands;
  b. a public method runs when the name is a declared subcommand;
  c. a declared task runs (as a nested command) when the name is a declared
     subcommand;
  d. main runs when the command defines it;
  otherwise the "no subcommand" fault and the help are written to stderr.

- Lifecycle
  • initialize(): called once after construction; loads and validates tasks.
  • startup(): called right before the handler runs; shows the welcome banner
    unless the command was requested by another command.
  • abort()/halt(): unwind to the dispatcher with an exit status.

- Tasks
  • Declared in `tasks` (merged along the class hierarchy), realized lazily on
    first get_task(name) or attribute access (command.Report), then cached.

Example:
    >>> @default_registry.register
    ... class OrmCacheCommand(Command):
    ...     def build(self, name=None):
    ...         self.out("<success>Cache build complete</success>")
    ...
    ...     def get_option_parser(self):
    ...         return super().get_option_parser().add_subcommand("build", help="Build caches.")
"""
import functools
import inspect
import logging
import operator
import os
import re
import shlex
import textwrap
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from .console import ConsoleIo
from .faults import *
from .parser import OptionParser
from .registry import default_registry
from .tasks import TaskRegistry
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass of Command.

    Responsibilities
    - Derive __typename__ from the class name for messages.
    - Default `name` to the underscored class name without its Command/Task suffix.
    - Merge the `tasks` declarations of every base class into __tasks__
      (normalized; subclasses win on name clashes).
    - Provide __repr__/__rich_repr__ over __displayable__.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        if "name" not in namespace:
            namespace["name"] = underscore(re.sub(r"(?<=.)(Command|Task)$", "", name))

        merged = {}
        for base in reversed(bases):
            merged.update(getattr(base, "__tasks__", {}))
        merged.update(TaskRegistry.normalize(namespace.get("tasks", ())))

        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
                "__tasks__": MappingProxyType(merged),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - orm-cache-command(name='orm_cache', plugin=None, ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Command(metaclass=CommandType):
    """
    Base class of commands and tasks.

    Parameters
    - io: ConsoleIo used for every read and write (a default one when omitted).
    - registry: Registry used to resolve tasks and nested commands.
    - config: mapping handed over by a task declaration.

    Attributes
    - plugin: camelized plugin prefix the command was resolved with, or None.
    - command: name of the subcommand (or "main") being run.
    - params: parsed options, shared by reference with realized tasks.
    - args: parsed positional arguments, shared by reference with realized tasks.
    - interactive: when False, prompts return their default without asking.
    - option_parser: parser built by the last run_command().
    """
    __introspectable__ = (
        "config",
    )
    __displayable__ = (
        "name",
        "plugin",
        "command",
        "task_names",
        "params",
        "args",
        "interactive",
    )

    CODE_SUCCESS = 0
    CODE_ERROR = 1

    QUIET = ConsoleIo.QUIET
    NORMAL = ConsoleIo.NORMAL
    VERBOSE = ConsoleIo.VERBOSE

    root_name = "bosun"
    tasks = ()

    def __init__(self, io=Unset, /, *, registry=Unset, config=Unset):
        if not isinstance(io, ConsoleIo | Unset):
            raise TypeError(f"{type(self).__typename__} 'io' must be a ConsoleIo")
        if not isinstance(config, Mapping | Unset):
            raise TypeError(f"{type(self).__typename__} 'config' must be a mapping")
        self._io = coalesce(io, None) or ConsoleIo()
        self._registry = coalesce(registry, default_registry)
        self._config = dict(coalesce(config, {}))
        self._tasks = TaskRegistry(self)
        self.plugin = None
        self.command = None
        self.params = {}
        self.args = []
        self.interactive = True
        self.option_parser = None

    @property
    def io(self):
        return self._io

    @io.setter
    def io(self, io):
        if not isinstance(io, ConsoleIo):
            raise TypeError(f"{type(self).__typename__} 'io' must be a ConsoleIo")
        self._io = io

    @property
    def registry(self):
        return self._registry

    @property
    def task_names(self):
        return self._tasks.names

    def initialize(self):
        """
        Hook called once after construction; loads the declared tasks.

        Subclasses overriding it should call super().initialize().
        """
        self.load_tasks()

    def startup(self):
        """
        Hook called right before the selected handler runs.
        """
        if not self.param("requested"):
            self._welcome()

    def _welcome(self):
        """
        Banner shown by startup(); empty by default.
        """

    def load_tasks(self):
        """
        Normalize and validate the declared tasks.

        Raises MissingTaskError when a declaration names no registered task class.
        """
        if not type(self).__tasks__:
            return True
        self._tasks.extend(type(self).__tasks__.values())
        return True

    def has_task(self, name, /):
        return name in self._tasks

    def has_method(self, name, /):
        """
        Tell whether name is a public method defined below Command in the hierarchy.
        """
        if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
            return False
        for cls in type(self).__mro__:
            if name in vars(cls):
                return cls is not Command and cls is not object and callable(getattr(self, name))
        return False

    def get_task(self, name, /):
        """
        Return the task declared as name, realizing and caching it on first use.
        """
        try:
            return self._tasks.get(name)
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no task {name!r}") from None

    def __getattr__(self, name):
        if name.startswith("_") or "_tasks" not in self.__dict__:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        if name in self._tasks:
            return self.get_task(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def run_command(self, argv, auto_method=False, extra=None):
        """
        Parse argv and run the handler it selects.

        Parameters
        - argv: tokens after the command name; argv[0] names the subcommand.
        - auto_method: allow rule (a), public methods that are not declared subcommands.
        - extra: mapping merged over the parsed params (e.g., {"requested": True}).

        Returns
        - the handler's result, False on parse errors or when nothing could run,
          None after help was displayed.
        """
        argv = list(argv)
        command = underscore(argv[0]) if argv else None
        self.option_parser = self.get_option_parser()
        try:
            self.params, self.args = self.option_parser.parse(argv)
        except OptionParseError as exception:
            self._io.fault(exception)
            return False

        self.params = {**self.params, **(extra or {})}
        self._set_output_level()
        self.command = command
        if command and self.params.get("help"):
            return self._display_help(command)

        subcommands = self.option_parser.subcommands()
        is_method = self.has_method(command)

        if is_method and auto_method and not subcommands:
            logger.debug("%s: running method %r (automatic)", type(self).__name__, command)
            if self.args:
                del self.args[0]
            self.startup()
            return self._invoke(getattr(self, command), self.args)

        if is_method and command in subcommands:
            logger.debug("%s: running subcommand method %r", type(self).__name__, command)
            self.startup()
            return self._invoke(getattr(self, command), self.args)

        if command and self.has_task(command) and command in subcommands:
            logger.debug("%s: delegating %r to its task", type(self).__name__, command)
            self.startup()
            task = self.get_task(command)
            task.args = self.args
            task.params = self.params
            return task.run_command(argv[1:], False, {"requested": True})

        if self.has_method("main"):
            logger.debug("%s: running main", type(self).__name__)
            self.command = "main"
            self.startup()
            return self._invoke(self.main, self.args)

        self._io.fault(NoSubcommandError(
            "No subcommand provided. Choose one of the available subcommands.",
            title="no subcommand",
            code=FaultCode.NO_SUBCOMMAND,
            input=command,
            hint="run '%s --help' to see the available subcommands" % self._usage_name(),
        ))
        if command in subcommands:
            self._io.err(self.option_parser.help(command))
        else:
            self._io.err(self.option_parser.help())
        return False

    def _usage_name(self):
        return " ".join(filter(None, (self.root_name, self.option_parser.command if self.option_parser else self.name)))

    def _invoke(self, handler, args):
        """
        Call handler with the positional arguments, rendering arity mismatches as faults.
        """
        signature = inspect.signature(handler)
        try:
            signature.bind(*args)
        except TypeError:
            positional = [
                parameter for parameter in signature.parameters.values()
                if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            ]
            variadic = any(parameter.kind is inspect.Parameter.VAR_POSITIONAL for parameter in signature.parameters.values())
            if not variadic and len(args) > len(positional):
                self._io.fault(TooManyArgumentsError(
                    "%s accepts at most %d positional arguments but %d were given" % (
                        handler.__name__, len(positional), len(args)
                    ),
                    title="too many arguments",
                    code=FaultCode.TOO_MANY_ARGUMENTS,
                    input=list(args[len(positional):]),
                    hint="remove the extra values or run '%s --help'" % self._usage_name(),
                ))
            else:
                self._io.fault(MissingArgumentsError(
                    "%s is missing required positional arguments" % handler.__name__,
                    title="missing arguments",
                    code=FaultCode.MISSING_ARGUMENTS,
                    hint="run '%s --help' to see the expected arguments" % self._usage_name(),
                ))
            return False
        return handler(*args)

    def _set_output_level(self):
        """
        Apply --quiet/--verbose to the output level and the log handlers.
        """
        self._io.set_loggers(ConsoleIo.NORMAL)
        if self.params.get("quiet"):
            self._io.level = ConsoleIo.QUIET
            self._io.set_loggers(ConsoleIo.QUIET)
        if self.params.get("verbose"):
            self._io.level = ConsoleIo.VERBOSE
            self._io.set_loggers(ConsoleIo.VERBOSE)

    def _display_help(self, command=None):
        """
        Write the help of the command, or of command when it is a declared subcommand.

        A first positional argument of "xml" selects the XML format (written raw).
        """
        format = "text"
        if self.args and self.args[0] == "xml":
            format = "xml"
            self._io.output_as(ConsoleIo.RAW)
        else:
            self._welcome()

        if command is not None and command not in self.option_parser.subcommands():
            command = None

        self.out(self.option_parser.help(command, format))

    def get_option_parser(self):
        """
        Build the option parser; subclasses extend the parser returned here.
        """
        name = f"{underscore(self.plugin)}.{self.name}" if self.plugin else self.name
        return OptionParser(name, root=self.root_name)

    def dispatch_command(self, *args):
        """
        Run another command through a nested dispatcher sharing this io and registry.

        Forms
        - dispatch_command("orm_cache build users")
        - dispatch_command("orm_cache", "build", "users")
        - dispatch_command({"command": "orm_cache build", "extra": {"connection": "test"}})

        Returns the exit code of the nested dispatch.
        """
        from .dispatcher import Dispatcher

        args, extra = self.parse_dispatch_arguments(args)
        extra.setdefault("requested", True)
        return Dispatcher(args, bootstrap=False, registry=self._registry, io=self._io).dispatch(extra)

    @staticmethod
    def parse_dispatch_arguments(args, /):
        """
        Split dispatch_command() arguments into (argv, extra).
        """
        args = list(args)
        if len(args) == 1 and isinstance(args[0], str):
            return shlex.split(args[0]), {}
        if args and isinstance(args[0], Mapping) and args[0].get("command"):
            command = args[0]["command"]
            if isinstance(command, str):
                command = shlex.split(command)
            return list(command), dict(args[0].get("extra") or {})
        return args, {}

    def param(self, name, /):
        return self.params.get(name)

    def prompt(self, text, options=None, default=None):
        """
        Ask the user a question; returns default without asking when not interactive.
        """
        if not self.interactive:
            return default
        if options:
            return self._io.ask_choice(text, options, default)
        return self._io.ask(text, default)

    def wrap_text(self, text, width=72, indent=""):
        return textwrap.fill(text, width, initial_indent=indent, subsequent_indent=indent)

    def out(self, message="", newlines=1, level=NORMAL):
        return self._io.out(message, newlines, level)

    def err(self, message="", newlines=1):
        return self._io.err(message, newlines)

    def verbose(self, message, newlines=1):
        return self._io.verbose(message, newlines)

    def quiet(self, message, newlines=1):
        return self._io.quiet(message, newlines)

    def info(self, message, newlines=1, level=NORMAL):
        return self._io.info(message, newlines, level)

    def warn(self, message, newlines=1):
        return self._io.warning(message, newlines)

    def success(self, message, newlines=1, level=NORMAL):
        return self._io.success(message, newlines, level)

    def nl(self, multiplier=1):
        return self._io.nl(multiplier)

    def hr(self, newlines=0, width=63):
        self._io.hr(newlines, width)

    def abort(self, message, code=CODE_ERROR):
        """
        Write message to the error stream and stop with code.
        """
        self._io.err(f"<error>{message}</error>")
        raise CommandAbort(message, code)

    def halt(self, status=CODE_SUCCESS):
        """
        Stop silently with status.
        """
        raise CommandHalt(code=status)

    def clear(self):
        if self.param("noclear"):
            return
        self._io.clear()

    def create_file(self, path, contents):
        """
        Write contents to path, asking before overwriting an existing file.

        Answers: y (overwrite), n (skip), a (overwrite this and every later file),
        q (quit, halts the command). Non-interactive commands skip existing files
        unless --force was given.

        Returns True when the file was written.
        """
        path = Path(os.path.normpath(path))
        self._io.out()

        exists = path.is_file()
        if exists and not self.param("force") and not self.interactive:
            self._io.out("<warning>File exists, skipping</warning>.")
            return False

        if exists and self.interactive and not self.param("force"):
            self._io.out(f"<warning>File `{path}` exists</warning>")
            key = self._io.ask_choice("Do you want to overwrite?", ["y", "n", "a", "q"], "n").lower()
            if key == "q":
                self._io.out("<error>Quitting</error>.", 2)
                self.halt()
            if key == "a":
                self.params["force"] = True
                key = "y"
            if key != "y":
                self._io.out(f"Skip `{path}`", 2)
                return False
        else:
            self.out(f"Creating file {path}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents)
        except OSError:
            logger.debug("could not write %s", path, exc_info=True)
            self._io.err(f"<error>Could not write to `{path}`</error>.", 2)
            return False

        self._io.out(f"<success>Wrote</success> `{path}`")
        return True

    @staticmethod
    def short_path(file, /):
        """
        Return file relative to the current directory when it lives below it.
        """
        path = os.path.abspath(file)
        root = os.getcwd()
        if os.path.commonpath([path, root]) == root:
            path = os.path.relpath(path, root)
        return path.replace(os.sep, "/")

    def log(self, message, level=logging.INFO):
        logging.getLogger(f"bosun.{self.name}").log(level, message)


__all__ = (
    "Command",
)

# Remove the internal metaclass from the module namespace; not part of the public API.
del CommandType
