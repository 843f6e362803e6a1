"""
Bosun console I/O.

Scope
- ConsoleIo wraps three streams (stdout, stderr, stdin) behind rich consoles and
  gives commands a small, level-aware vocabulary: out/err/verbose/quiet, semantic
  helpers (info/comment/success/warning/error), prompts, fault rendering and the
  logging handlers that follow the output level.

Output levels
- QUIET (0): only messages written at the quiet level.
- NORMAL (1): the default.
- VERBOSE (2): everything, including engine diagnostics in the logs.

Semantic tags
- Messages may carry <info>, <comment>, <question>, <error>, <warning> and
  <success> tags. In COLOR mode they are mapped to styles (overridable through a
  __styles__ mapping in __main__), in PLAIN mode they are stripped and in RAW mode
  the text is written verbatim.
"""
import logging
import re
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.text import Text

from .faults import CommandException

logger = logging.getLogger(__name__)


class ConsoleIo:
    """
    Level-aware output, error and input streams of one dispatch.

    Parameters
    - stdout / stderr / stdin: file-like objects; default to the process streams.
    - level: initial output level (QUIET, NORMAL or VERBOSE).
    """
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2

    RAW = 0
    PLAIN = 1
    COLOR = 2

    LOGGER = "bosun"

    def __init__(self, stdout=None, stderr=None, stdin=None, *, level=NORMAL):
        self._stdout = Console(file=stdout, soft_wrap=True, highlight=False) if stdout is not None else Console(soft_wrap=True, highlight=False)
        self._stderr = Console(file=stderr, soft_wrap=True, highlight=False) if stderr is not None else Console(stderr=True, soft_wrap=True, highlight=False)
        self._stdin = stdin
        self._mode = self.COLOR
        self._last = 0
        self.level = level

    @property
    def level(self):
        return self._level

    @level.setter
    def level(self, level):
        if level not in (self.QUIET, self.NORMAL, self.VERBOSE):
            raise ValueError("ConsoleIo level must be one of QUIET, NORMAL or VERBOSE")
        self._level = level

    @property
    def mode(self):
        return self._mode

    def output_as(self, mode, /):
        """
        Switch how semantic tags are written: COLOR, PLAIN or RAW.
        """
        if mode not in (self.RAW, self.PLAIN, self.COLOR):
            raise ValueError("ConsoleIo output mode must be one of RAW, PLAIN or COLOR")
        self._mode = mode

    @staticmethod
    def styles():
        return {
            "info": "#36C5F0",
            "comment": "#FFD600",
            "question": "#FF4D94",
            "error": "bold #EF4444",
            "warning": "#F97316",
            "success": "#22C55E",
        } | getattr(__import__("__main__"), "__styles__", {})

    def _render(self, message):
        if isinstance(message, (list, tuple)):
            message = "\n".join(map(str, message))
        message = str(message)
        if self._mode == self.RAW:
            return Text(message)
        if self._mode == self.PLAIN:
            return Text(re.sub(r"<(\w+)>(.*?)</\1>", r"\2", message, flags=re.DOTALL))

        styles = self.styles()
        text = Text()
        position = 0
        for match in re.finditer(r"<(\w+)>(.*?)</\1>", message, flags=re.DOTALL):
            if match[1] not in styles:
                continue
            text.append(message[position:match.start()])
            text.append(match[2], styles[match[1]])
            position = match.end()
        text.append(message[position:])
        return text

    def _write(self, console, message, newlines):
        text = self._render(message)
        console.print(text, end="\n" * newlines, markup=False, emoji=False)
        return len(text.plain)

    def out(self, message="", newlines=1, level=NORMAL):
        """
        Write a message to stdout when level does not exceed the current level.

        Returns the number of characters written (0 when filtered out).
        """
        if level > self._level:
            return 0
        self._last = self._write(self._stdout, message, newlines)
        return self._last

    def err(self, message="", newlines=1):
        """
        Write a message to stderr; the error stream ignores the output level.
        """
        return self._write(self._stderr, message, newlines)

    def verbose(self, message, newlines=1):
        return self.out(message, newlines, self.VERBOSE)

    def quiet(self, message, newlines=1):
        return self.out(message, newlines, self.QUIET)

    def info(self, message, newlines=1, level=NORMAL):
        return self.out(f"<info>{message}</info>", newlines, level)

    def comment(self, message, newlines=1, level=NORMAL):
        return self.out(f"<comment>{message}</comment>", newlines, level)

    def success(self, message, newlines=1, level=NORMAL):
        return self.out(f"<success>{message}</success>", newlines, level)

    def warning(self, message, newlines=1):
        return self.err(f"<warning>{message}</warning>", newlines)

    def error(self, message, newlines=1):
        return self.err(f"<error>{message}</error>", newlines)

    def nl(self, multiplier=1):
        return "\n" * multiplier

    def hr(self, newlines=0, width=63):
        if newlines:
            self.out("", newlines)
        self.out("-" * width)
        if newlines:
            self.out("", newlines)

    def clear(self):
        self._stdout.clear()

    def fault(self, exception, /):
        """
        Render a CommandException on stderr.

        Colors follow the output mode: PLAIN and RAW render the fault without styles.
        """
        if not isinstance(exception, CommandException):
            raise TypeError("fault() argument must be a CommandException")
        if self._mode != self.COLOR and exception.options.get("colorful") is not False:
            exception = exception.__replace__(colorful=False)
        logger.debug("rendering fault %s", type(exception).__name__)
        self._stderr.print(exception)

    def ask(self, prompt, default=None):
        """
        Ask a free-form question; an empty answer selects the default.
        """
        options = {} if default is None else {"default": default}
        return Prompt.ask(self._render(f"<question>{prompt}</question>"), console=self._stdout, stream=self._stdin, **options)

    def ask_choice(self, prompt, choices, default=None):
        """
        Ask until one of choices is answered; an empty answer selects the default.
        """
        if isinstance(choices, str):
            choices = [choice.strip() for choice in choices.split(",")]
        options = {} if default is None else {"default": default}
        return Prompt.ask(
            self._render(f"<question>{prompt}</question>"),
            console=self._stdout,
            stream=self._stdin,
            choices=list(choices),
            **options,
        )

    def set_loggers(self, level):
        """
        (Re)install the console handlers of the "bosun" logger.

        - NORMAL: info and above below warning go to stdout.
        - VERBOSE: debug is added to stdout.
        - QUIET: nothing goes to stdout.
        - warning and above always go to stderr.
        - False removes the handlers.
        """
        target = logging.getLogger(self.LOGGER)
        for handler in list(target.handlers):
            if handler.get_name() in ("bosun.stdout", "bosun.stderr"):
                target.removeHandler(handler)
        if level is False:
            return

        if level != self.QUIET:
            stdout = RichHandler(console=self._stdout, show_time=False, show_path=False, markup=False)
            stdout.set_name("bosun.stdout")
            stdout.setLevel(logging.DEBUG if level == self.VERBOSE else logging.INFO)
            stdout.addFilter(lambda record: record.levelno < logging.WARNING)
            target.addHandler(stdout)

        stderr = RichHandler(console=self._stderr, show_time=False, show_path=False, markup=False)
        stderr.set_name("bosun.stderr")
        stderr.setLevel(logging.WARNING)
        target.addHandler(stderr)

        target.setLevel(logging.DEBUG if level == self.VERBOSE else logging.INFO)


__all__ = (
    "ConsoleIo",
)
