"""
Bosun task registry.

A command declares the tasks it delegates to in its `tasks` class attribute.
Declarations come in three shorthand forms, all normalized to TaskDeclaration:

    tasks = (
        "Report",                       # bare name
        {"Acme.Export": {"gzip": True}},  # name → config
        ("Mailer", {"retries": 3}),     # (name, config) pair
    )

The registry key is the name part after the plugin prefix ("Export"); the
classname keeps the full identifier ("Acme.Export") so the class can be looked
up as "Acme.ExportTask".

Tasks are realized lazily: the first get(name) constructs the task, shares the
owner's args/params with it, calls initialize() once and caches it.
"""
import logging
from collections import namedtuple
from collections.abc import Mapping

from .faults import FaultCode, MissingTaskError
from .utils import *

logger = logging.getLogger(__name__)


TaskDeclaration = namedtuple("TaskDeclaration", ("classname", "config"))
TaskDeclaration.__doc__ = """
Full form of a task declaration: the (possibly plugin-qualified) class name and
the configuration handed to the task on construction.
"""


class TaskRegistry:
    """
    Declared tasks of one command and the instances realized so far.
    """

    def __init__(self, owner, /):
        self._owner = owner
        self._declarations = {}
        self._loaded = {}

    def __repr__(self):
        return f"TaskRegistry({list(self._declarations)!r})"

    def __contains__(self, name):
        return self.resolve(name) is not None

    def __iter__(self):
        return iter(self._declarations)

    def __len__(self):
        return len(self._declarations)

    @property
    def names(self):
        return tuple(self._declarations)

    def declarations(self):
        return dict(self._declarations)

    @staticmethod
    def normalize(declarations, /):
        """
        Normalize shorthand declarations to {name: TaskDeclaration}.

        Pure: the input is not modified and no class is looked up.

        Example
        - normalize(["a", {"b": {"x": 1}}])
          == {"a": TaskDeclaration("a", {}), "b": TaskDeclaration("b", {"x": 1})}
        """
        if isinstance(declarations, str | Mapping):
            declarations = [declarations]
        normalized = {}
        for declaration in declarations:
            match declaration:
                case str():
                    entries = [(declaration, {})]
                case Mapping():
                    entries = list(declaration.items())
                case TaskDeclaration(classname=classname, config=config):
                    entries = [(classname, config)]
                case (str() as name, Mapping() as config):
                    entries = [(name, config)]
                case _:
                    raise TypeError("task declarations must be strings, mappings or (name, config) pairs")
            for classname, config in entries:
                if not isinstance(classname, str) or not classname.strip():
                    raise TypeError("task names must be non-empty strings")
                if config is None:
                    config = {}
                if not isinstance(config, Mapping):
                    raise TypeError(f"task {classname!r} config must be a mapping")
                _, name = pluginsplit(classname)
                normalized[name] = TaskDeclaration(classname, dict(config))
        return normalized

    def validate(self, declarations, /):
        """
        Ensure every declaration resolves to a registered task class.
        """
        registry = self._owner.registry
        for declaration in declarations.values():
            if registry.lookup(declaration.classname, "Task") is None:
                raise MissingTaskError(
                    f"Task '{declaration.classname}' not found. "
                    "Maybe you made a typo or a plugin is missing or not loaded?",
                    title="missing task",
                    code=FaultCode.MISSING_TASK,
                    input=declaration.classname,
                    hint="register the %sTask class or fix the declaration in %s.tasks" % (
                        camelize(pluginsplit(declaration.classname)[1]), type(self._owner).__name__
                    ),
                )
        return declarations

    def extend(self, declarations, /):
        """
        Normalize, validate and merge declarations; later names win.
        """
        self._declarations.update(self.validate(self.normalize(declarations)))
        return self

    def resolve(self, name, /):
        """
        Return the declared name matching name (compared camelized), or None.
        """
        if not isinstance(name, str) or not name:
            return None
        if name in self._declarations:
            return name
        wanted = camelize(name)
        for declared in self._declarations:
            if camelize(declared) == wanted:
                return declared
        return None

    def load(self, classname, config=Unset, /):
        """
        Construct a task with the owner's io and registry.
        """
        cls = self._owner.registry.lookup(classname, "Task")
        if cls is None:
            self.validate({classname: TaskDeclaration(classname, {})})
        task = cls(self._owner.io, registry=self._owner.registry, config=coalesce(config, {}))
        plugin, _ = pluginsplit(classname)
        task.plugin = camelize(plugin) if plugin else self._owner.plugin
        return task

    def get(self, name, /):
        """
        Return the cached task for name, realizing it on first access.

        Raises KeyError for undeclared names.
        """
        if (declared := self.resolve(name)) is None:
            raise KeyError(name)
        try:
            return self._loaded[declared]
        except KeyError:
            pass
        declaration = self._declarations[declared]
        task = self.load(declaration.classname, declaration.config)
        task.args = self._owner.args
        task.params = self._owner.params
        task.initialize()
        logger.debug("realized task %r for %s", declared, type(self._owner).__name__)
        return self._loaded.setdefault(declared, task)

    def loaded(self, name, /):
        return self.resolve(name) in self._loaded


__all__ = (
    "TaskDeclaration",
    "TaskRegistry",
)
