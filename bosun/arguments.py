r"""
Bosun argument specifications.

Overview
- Specs
  • Option: named option with a long name and an optional one-letter short alias
    (e.g., --connection/-c). Boolean options are presence-only switches.
  • Argument: positional, value-bearing argument (required or optional).
  • Subcommand: a name a command answers to, with help and an optional parser of its own.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__/__displayable__.

Metadata (sanitized on construction)
- name: required, non-empty, shell-friendly word (letters, digits, '_' and '-').
- help: Unset | str, trimmed, non-empty when provided.
- Option only
  • short: Unset | single letter.
  • default: any value (booleans default to False).
  • boolean: presence-only when True; cannot have choices.
  • multiple: collect every occurrence into a list.
- Option/Argument
  • choices: Iterable[str]; duplicates rejected unless provided as a Set.
- Argument only
  • required: bool.
- Subcommand only
  • parser: Unset | OptionParser that takes over parsing after the subcommand name.

Quick example:
    >>> Option("connection", short="c", default="default", help="The connection to use.")
    >>> Argument("name", help="A specific table to refresh.")
    >>> Subcommand("build", help="Build all metadata caches.")

Public API
- Classes: Option, Argument, Subcommand
"""
import functools
import operator
import re
from collections.abc import Iterable, Set

from .faults import FaultCode, InvalidChoiceError
from .utils import *


class ArgumentType(type):
    """
    Metaclass that turns specs into introspectable, read-only descriptors.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and help output.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(name='connection', short='c', ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the shared 'name' and 'help' fields.

    Raises
    - TypeError: if 'name' is not a string or 'help' is not a string or Unset.
    - ValueError: if either is empty after trimming or 'name' is not a word.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif not re.fullmatch(r"[^\W\d_][\w-]*", name):
        raise ValueError(f"{cls.__typename__} 'name' must start with a letter and contain only letters, digits, '_' or '-'")
    metadata["name"] = name

    if not isinstance(help := metadata["help"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'help' must be a string")
    elif isinstance(help, str) and not (help := help.strip()):
        raise ValueError(f"{cls.__typename__} 'help' cannot be empty")
    metadata["help"] = coalesce(help, "")


def _sanitize_choices(cls, metadata, /):
    """
    Internal: validate 'choices' and normalize it to a tuple.

    Sets keep their elements (sorted for stable help output); other iterables
    must not contain duplicates.
    """
    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be an iterable of strings")
    if not all(isinstance(choice, str) for choice in choices):
        raise TypeError(f"{cls.__typename__} 'choices' must be an iterable of strings")
    if isinstance(choices, Set):
        metadata["choices"] = tuple(sorted(choices))
        return
    if len(choices := tuple(choices)) != len(set(choices)):
        raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
    metadata["choices"] = choices


class Spec(metaclass=ArgumentType):
    """
    Shared behavior of every argument specification.
    """

    def _assign(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def valid_choice(self, value, /):
        """
        Check a parsed value against the declared choices.

        Returns True when there are no choices or the value is one of them;
        raises InvalidChoiceError otherwise.
        """
        choices = getattr(self, "_choices", ())
        if not choices or value in choices:
            return True
        kind = "option" if isinstance(self, Option) else "argument"
        raise InvalidChoiceError(
            "%r is not a valid value for %s %r" % (value, kind, self.name),
            title="invalid choice",
            code=FaultCode.INVALID_CHOICE,
            input=value,
            argument=self,
            hint="please choose one of %s" % ", ".join(map(repr, choices)),
        )


class Option(Spec):
    """
    A named option of a command (--name / -n).

    Notes
    - Boolean options never take a value; their default is False.
    - Non-boolean options take the next token (or an inline '=value') as their value.
    """
    __introspectable__ = (
        "name",
        "short",
        "help",
        "default",
        "boolean",
        "choices",
        "multiple",
    )

    def __init__(
            self,
            name,
            /,
            short=Unset,
            help=Unset,
            default=Unset,
            *,
            boolean=False,
            choices=(),
            multiple=False,
    ):
        metadata = {
            "name": name,
            "short": short,
            "help": help,
            "default": default,
            "boolean": boolean,
            "choices": choices,
            "multiple": multiple,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_choices(type(self), metadata)

        if not isinstance(short := metadata["short"], str | Unset):
            raise TypeError(f"{type(self).__typename__} 'short' must be a string")
        elif isinstance(short, str) and not re.fullmatch(r"[^\W\d_]", short := short.strip().lstrip("-")):
            raise ValueError(f"{type(self).__typename__} 'short' must be a single letter")
        metadata["short"] = coalesce(short)

        if not isinstance(boolean, bool):
            raise TypeError(f"{type(self).__typename__} 'boolean' must be a boolean")
        if not isinstance(multiple, bool):
            raise TypeError(f"{type(self).__typename__} 'multiple' must be a boolean")
        if boolean and metadata["choices"]:
            raise ValueError(f"{type(self).__typename__} boolean option {metadata['name']!r} cannot have choices")

        metadata["default"] = False if boolean else coalesce(default)
        self._assign(metadata)

    def usage(self):
        """
        Return the compact usage fragment, e.g. "[-c <default|test>]" or "[--force]".
        """
        name = f"-{self.short}" if self.short else f"--{self.name}"
        if self.boolean:
            return f"[{name}]"
        if self.choices:
            return f"[{name} {'|'.join(self.choices)}]"
        return f"[{name} {self.name.upper()}]"

    def label(self):
        """
        Return the left column of the options table, e.g. "--connection, -c".
        """
        return f"--{self.name}" + (f", -{self.short}" if self.short else "")


class Argument(Spec):
    """
    A positional argument of a command.
    """
    __introspectable__ = (
        "name",
        "help",
        "required",
        "choices",
    )

    def __init__(self, name, /, help=Unset, *, required=False, choices=()):
        metadata = {
            "name": name,
            "help": help,
            "required": required,
            "choices": choices,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_choices(type(self), metadata)
        if not isinstance(required, bool):
            raise TypeError(f"{type(self).__typename__} 'required' must be a boolean")
        self._assign(metadata)

    def usage(self):
        """
        Return "<name>" for required arguments and "[<name>]" for optional ones.
        """
        name = "|".join(self.choices) if self.choices else self.name
        return f"<{name}>" if self.required else f"[<{name}>]"


class Subcommand(Spec):
    """
    A subcommand a command answers to.

    A subcommand that carries its own parser takes over option parsing for the
    tokens that follow its name.
    """
    __introspectable__ = (
        "name",
        "help",
        "parser",
    )

    def __init__(self, name, /, help=Unset, parser=Unset):
        metadata = {
            "name": name,
            "help": help,
            "parser": parser,
        }
        _sanitize_metadata(type(self), metadata)
        if parser is not Unset and not callable(getattr(parser, "parse", None)):
            raise TypeError(f"{type(self).__typename__} 'parser' must be an option parser")
        metadata["parser"] = coalesce(parser)
        self._assign(metadata)


__all__ = (
    "Option",
    "Argument",
    "Subcommand",
)

# Remove the internal metaclass from the module namespace; not part of the public API.
del ArgumentType
