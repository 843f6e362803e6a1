"""
Bosun class registry.

Commands and tasks are resolved by name, never by evaluating strings: a token
such as "acme.report" is split once on the first dot, both parts are camelized
and the key "Acme.ReportCommand" is looked up here.

Population
- Registry.register(cls) / @default_registry.register(plugin="Acme"): explicit.
- Registry.discover("app.commands.*", plugin=...): import every module matched
  by a module glob and register the *Command / *Task classes defined there.
"""
import difflib
import importlib
import inspect
import logging
from collections import defaultdict

from .faults import CommandNotFoundError, FaultCode
from .utils import *

logger = logging.getLogger(__name__)


def classname(plugin, name, suffix, /):
    """
    Build the registry key of a class: "Plugin.NameSuffix" or "NameSuffix".
    """
    key = camelize(name) + suffix
    return f"{camelize(plugin)}.{key}" if plugin else key


class Registry:
    """
    Mapping of class keys ("Plugin.ReportCommand", "BuildTask", ...) to classes.
    """

    def __init__(self):
        self._classes = {}

    def __repr__(self):
        return f"Registry({sorted(self._classes)!r})"

    def __contains__(self, key):
        return key in self._classes

    def __iter__(self):
        return iter(self._classes)

    def __len__(self):
        return len(self._classes)

    def register(self, cls=Unset, /, *, plugin=Unset):
        """
        Register a class under its key; usable directly or as a decorator.

        Forms
        - registry.register(ReportCommand)
        - registry.register(ReportCommand, plugin="Acme")
        - @registry.register / @registry.register(plugin="Acme")

        Registering another class under a used key replaces it.
        """
        if cls is Unset:
            def decorator(cls):
                return self.register(cls, plugin=plugin)
            return rename(decorator, "register")

        if not inspect.isclass(cls):
            raise TypeError("register() argument must be a class")
        if not isinstance(plugin, str | Unset | None):
            raise TypeError("register() 'plugin' must be a string")
        key = f"{camelize(plugin)}.{cls.__name__}" if plugin else cls.__name__
        if (previous := self._classes.get(key)) is not None and previous is not cls:
            logger.debug("replacing %s with %s.%s", key, cls.__module__, cls.__qualname__)
        self._classes[key] = cls
        return cls

    def get(self, key, default=None, /):
        return self._classes.get(key, default)

    def lookup(self, token, suffix, /):
        """
        Resolve a "prefix.name" token to a registered class, or None.
        """
        plugin, name = pluginsplit(token)
        return self._classes.get(classname(plugin, name, suffix))

    def command(self, token, /):
        """
        Resolve a command token, raising CommandNotFoundError with close matches.
        """
        if (cls := self.lookup(token, "Command")) is not None:
            return cls
        plugin, name = pluginsplit(token)
        key = classname(plugin, name, "Command")
        suggestions = [
            self.token(candidate)
            for candidate in difflib.get_close_matches(key, [key for key in self._classes if key.endswith("Command")], 3)
        ]
        try:
            hint = "did you mean %r? run 'help' to list the available commands" % suggestions[0]
        except IndexError:
            hint = "run 'help' to list the available commands"
        raise CommandNotFoundError(
            "unknown command %r (looked for class %r)" % (token, key),
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            input=token,
            suggestions=suggestions,
            hint=hint,
        )

    @staticmethod
    def token(key, /):
        """
        Turn a class key back into the command token users type.

        Example
        - token("Acme.OrmCacheCommand") -> "acme.orm_cache"
        """
        plugin, name = pluginsplit(key)
        for suffix in ("Command", "Task"):
            if name.endswith(suffix) and name != suffix:
                name = name[:-len(suffix)]
                break
        name = underscore(name)
        return f"{underscore(plugin)}.{name}" if plugin else name

    def commands(self):
        """
        Group the command tokens by plugin (None for application commands), sorted.
        """
        groups = defaultdict(list)
        for key in self._classes:
            plugin, name = pluginsplit(key)
            if not name.endswith("Command") or name == "Command":
                continue
            groups[plugin].append(self.token(name))
        return {plugin: sorted(groups[plugin]) for plugin in sorted(groups, key=lambda plugin: (plugin is not None, plugin or ""))}

    def discover(self, source, /, *, plugin=Unset):
        """
        Import every module matched by a module glob and register its classes.

        A class is registered when it is defined in the matched module, its name
        ends with "Command" or "Task" and it exposes run_command.

        Returns the registered keys.
        """
        if not isinstance(source, str):
            raise TypeError("discover() argument must be a string")

        def imp(module):
            try:
                return importlib.import_module(module)
            except ImportError:
                raise TypeError(f"unable to import module {module!r}") from None

        keys = []
        for module in map(imp, mglob(source)):
            for name, object in inspect.getmembers(module, inspect.isclass):
                if object.__module__ != module.__name__:
                    continue
                if not name.endswith(("Command", "Task")) or not callable(getattr(object, "run_command", None)):
                    continue
                self.register(object, plugin=plugin)
                keys.append(f"{camelize(plugin)}.{name}" if plugin else name)
        logger.debug("discovered %d classes from %r", len(keys), source)
        return keys


default_registry = Registry()
"""
Default registry used by Dispatcher and Command when none is given.
"""


__all__ = (
    "Registry",
    "classname",
    "default_registry",
)
