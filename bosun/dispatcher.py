"""
Bosun dispatcher.

Scope
- Dispatcher turns an argument vector (without the program name) into a loaded
  Command and runs it, converting whatever the command returns or raises into a
  process exit status.
- main() is the console entry point.

Exit status
- None / True → 0, an int → itself, anything else (False) → 1.
- CommandAbort / CommandHalt → the status they carry.
- CommandNotFoundError / ConfigurationError → rendered on stderr, 1.

Help
- No command token, or one of HELP_ALIASES, re-dispatches with "command_list"
  prepended to the remaining arguments; the result of that dispatch is not
  propagated, the help path always succeeds.
"""
import logging
import sys

from .console import ConsoleIo
from .faults import CommandNotFoundError, CommandStop, ConfigurationError
from .registry import default_registry
from .utils import *

logger = logging.getLogger(__name__)

HELP_ALIASES = ("help", "--help", "-h")
HELP_COMMAND = "command_list"


class Dispatcher:
    """
    One dispatch of one argument vector.

    Parameters
    - args: the argument vector; owned and consumed by this dispatcher.
    - bootstrap: configure the console loggers and the short plugin aliases.
    - registry: Registry used to resolve commands (the default registry when omitted).
    - io: ConsoleIo shared with the commands it runs.
    """

    def __init__(self, args=(), /, *, bootstrap=True, registry=Unset, io=Unset):
        if isinstance(args, str):
            raise TypeError("Dispatcher 'args' must be a sequence of strings, not a string")
        self.args = list(args)
        self._registry = coalesce(registry, default_registry)
        self._io = coalesce(io, None) or ConsoleIo()
        self._aliases = {}
        if bootstrap:
            self._init_environment()

    def __repr__(self):
        return f"Dispatcher({self.args!r})"

    @property
    def io(self):
        return self._io

    @property
    def registry(self):
        return self._registry

    @classmethod
    def run(cls, argv, /, **options):
        """
        Build a dispatcher for argv and return its exit status.
        """
        return cls(argv, **options).dispatch()

    def _init_environment(self):
        self._io.set_loggers(ConsoleIo.NORMAL)
        self.add_short_plugin_aliases()

    def dispatch(self, extra=Unset):
        """
        Run the dispatch and return the exit status.
        """
        try:
            result = self._dispatch(coalesce(extra, {}))
        except CommandStop as stop:
            logger.debug("command stopped with status %d", stop.code)
            return stop.code
        except (CommandNotFoundError, ConfigurationError) as exception:
            self._io.fault(exception)
            return 1

        if result is None or result is True:
            return 0
        if isinstance(result, int) and not isinstance(result, bool):
            return result
        return 1

    def _dispatch(self, extra):
        token = self.shift_args()
        if not token or token in HELP_ALIASES:
            self.help()
            return True

        command = self.find_command(token)
        command.initialize()
        return command.run_command(self.args, True, extra)

    def shift_args(self):
        """
        Remove and return the first argument, or None when there is none.
        """
        return self.args.pop(0) if self.args else None

    def help(self):
        """
        Dispatch the command list with the remaining arguments.
        """
        self.args = [HELP_COMMAND, *self.args]
        self.dispatch()

    def find_command(self, token, /):
        """
        Resolve token (after aliases) to a constructed command.
        """
        token = self._aliases.get(token, token)
        return self._create_command(token, self._registry.command(token))

    def _create_command(self, token, cls, /):
        plugin, _ = pluginsplit(token)
        command = cls(self._io, registry=self._registry)
        command.plugin = camelize(plugin) if plugin else None
        logger.debug("resolved %r to %s", token, cls.__qualname__)
        return command

    def alias(self, short, original=None, /):
        """
        Read (original omitted) or set the alias of a command token.
        """
        if original is not None:
            self._aliases[short] = original
        return self._aliases.get(short)

    def aliases(self):
        return dict(self._aliases)

    def add_short_plugin_aliases(self):
        """
        Alias every plugin command to its bare name when the name is unambiguous.

        Names used by application commands, by commands of several plugins or by
        an existing alias are left alone.

        Returns the alias table.
        """
        commands = self._registry.commands()
        fixed = set(commands.get(None, ()))
        owners = {}
        for plugin, names in commands.items():
            if plugin is None:
                continue
            for name in names:
                owners.setdefault(name, []).append(plugin)

        for name, plugins in owners.items():
            if name in fixed:
                logger.debug("command %r in plugin %r was not aliased, conflicts with another command", name, plugins[0])
                continue
            if (other := self.alias(name)) is not None:
                logger.debug("command %r in plugin %r was not aliased, conflicts with %r", name, plugins[0], other)
                continue
            if len(plugins) > 1:
                logger.debug("command %r was not aliased, conflicts between %s", name, ", ".join(plugins))
                continue
            self.alias(name, f"{underscore(plugins[0])}.{name}")
        return self.aliases()


def main(argv=None):
    """
    Console entry point: dispatch sys.argv[1:] (or argv) and exit with its status.
    """
    sys.exit(Dispatcher.run(sys.argv[1:] if argv is None else argv))


__all__ = (
    "Dispatcher",
    "HELP_ALIASES",
    "main",
)
