"""
Bosun faults (errors and control signals) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing errors.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- CommandException: base type that carries message + options and knows how to
  render itself (rich protocol) in a friendly, lowercased, and actionable way.
- CommandStop / CommandAbort / CommandHalt: control signals that unwind a
  running command up to the nearest dispatch boundary, carrying the exit code.

UX goals
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The option parser raises OptionParseError subclasses; the command renders them.
- The dispatcher renders CommandNotFoundError and ConfigurationError and exits 1.
- CommandStop subclasses are never rendered here: abort() writes its own message
  before raising, halt() is silent.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the engine (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • UNKNOWN_COMMAND, UNKNOWN_SUBCOMMAND, NO_SUBCOMMAND
    - option parsing (1111x/1112x)
      • MALFORMED_TOKEN, UNKNOWN_OPTION, FLAG_ASSIGNMENT, INVALID_CHOICE,
        MISSING_ARGUMENTS, TOO_MANY_ARGUMENTS
    - configuration (1120x)
      • MISSING_TASK

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired (e.g., to shorter labels).
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101
    UNKNOWN_SUBCOMMAND          = 11102
    NO_SUBCOMMAND               = 11103

    # --- option parsing errors (11xxx) ---
    MALFORMED_TOKEN             = 11111
    UNKNOWN_OPTION              = 11112
    FLAG_ASSIGNMENT             = 11113
    INVALID_CHOICE              = 11124
    MISSING_ARGUMENTS           = 11125
    TOO_MANY_ARGUMENTS          = 11126

    # --- configuration errors (11xxx) ---
    MISSING_TASK                = 11201

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base class of every user-facing error.

    Options
    - title: short heading shown in the header (defaults to the class name).
    - code: FaultCode shown in the header.
    - hint: one actionable sentence shown after an arrow.
    - prog: program label (defaults to __prog__ in __main__, then "bosun").
    - colorful: apply styles (default True).
    - fancy: wrap the body in a panel (default False).
    - anything else is kept as context for callers (suggestions, input, ...).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        main = __import__("__main__")
        options = defaultdict(lambda: Unset, self.options)
        colorful = options["colorful"] is not False

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        title = options["title"] or type(self).__name__
        code = options["code"].normalize() if isinstance(options["code"], FaultCode) else "-"

        header = Text.assemble(
            "[ ",
            text(options["prog"] or getattr(main, "__prog__", "bosun"), styler("prog-name")),
            " — ",
            text(code, styler("code")),
            " | ",
            text(title.title(), styler("error-title")),
            " ]"
        )
        message = text(str(self), styler("error-message"))

        body = [message]
        if options["hint"]:
            body.append(Text.assemble(text(" → ", styler("hint-arrow")), text(options["hint"], styler("hint"))))

        if options["fancy"]:
            return Panel(Group(*body), title=header, title_align="left")

        return Group(header, *body)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class OptionParseError(CommandException): ...
class MalformedTokenError(OptionParseError): ...
class UnknownOptionError(OptionParseError): ...
class FlagAssignmentError(OptionParseError): ...
class InvalidChoiceError(OptionParseError): ...
class MissingArgumentsError(OptionParseError): ...
class TooManyArgumentsError(OptionParseError): ...
class UnknownSubcommandError(OptionParseError): ...

class CommandNotFoundError(CommandException): ...
class NoSubcommandError(CommandException): ...

class ConfigurationError(CommandException): ...
class MissingTaskError(ConfigurationError): ...


class CommandStop(Exception):
    """
    Control signal that unwinds the running command.

    The dispatcher turns it into the process exit status (code). It is not an
    error by itself: subclasses decide whether anything is written before it
    is raised.
    """

    def __init__(self, message="", /, code=0):
        if not isinstance(code, int) or isinstance(code, bool):
            raise TypeError(f"{type(self).__name__} 'code' must be an integer")
        super().__init__(message)
        self.message = message
        self.code = code


class CommandAbort(CommandStop):
    """
    Raised by Command.abort() after the message was written to the error stream.
    """

    def __init__(self, message="", /, code=1):
        super().__init__(message, code)


class CommandHalt(CommandStop):
    """
    Raised by Command.halt() for a graceful, silent stop (e.g., the user
    declined to overwrite a file).
    """

    def __init__(self, message="Halting error reached", /, code=0):
        super().__init__(message, code)


__all__ = (
    "FaultCode",
    "CommandException",
    "OptionParseError",
    "MalformedTokenError",
    "UnknownOptionError",
    "FlagAssignmentError",
    "InvalidChoiceError",
    "MissingArgumentsError",
    "TooManyArgumentsError",
    "UnknownSubcommandError",
    "CommandNotFoundError",
    "NoSubcommandError",
    "ConfigurationError",
    "MissingTaskError",
    "CommandStop",
    "CommandAbort",
    "CommandHalt",
)
