r"""
Bosun option parser and help formatter.

Scope
- OptionParser: declarative model of one command's options, positional
  arguments and subcommands; turns an argument vector into (params, args).
- HelpFormatter: renders an OptionParser as tagged text (for ConsoleIo) or XML.

Parsing rules
- A leading token naming a declared subcommand is consumed; when that subcommand
  owns a parser, the remaining tokens are parsed by it.
- "--name=value", "--name value", "-n value" and grouped short booleans ("-vq")
  are accepted; "--" ends option parsing.
- A non-boolean option followed by nothing, an empty token or another known
  option takes its default.
- Boolean options reject inline values.
- Options declared with multiple=True collect every value in a list.
- Unset options receive their default (booleans default to False).
- Without declared arguments any number of positionals is accepted; otherwise
  extra positionals and missing required ones are errors (the latter skipped
  when --help was given).

Faults
- Every parse problem raises an OptionParseError subclass carrying a FaultCode,
  a title and a hint. Callers render it (see Command.run_command).

Quick example:
    >>> parser = OptionParser("orm_cache").add_subcommand("build").add_argument("name")
    >>> parser.parse(["build", "--quiet", "users"])
    ({'help': False, 'verbose': False, 'quiet': True}, ['users'])
"""
import difflib
import functools
import re
import textwrap
from collections import deque
from types import MappingProxyType
from xml.etree import ElementTree

from .arguments import *
from .faults import *
from .utils import *


@functools.cache
def _ordinal(number):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


class OptionParser:
    """
    Options, arguments and subcommands of a single command.

    Parameters
    - command: the command name shown in usage lines (e.g., "Acme.report").
    - defaults: install the standard --help/-h, --verbose/-v and --quiet/-q switches.
    - root: the program name shown before the command in usage lines.

    Builders return the parser so declarations can be chained.
    """

    def __init__(self, command=None, *, defaults=True, root="bosun"):
        if not isinstance(command, str | None):
            raise TypeError("OptionParser 'command' must be a string")
        if not isinstance(root, str):
            raise TypeError("OptionParser 'root' must be a string")
        self.command = command
        self.root = root
        self.description = ""
        self.epilogue = ""
        self._options = {}
        self._shorts = {}
        self._arguments = []
        self._subcommands = {}
        if defaults:
            self.add_option("help", short="h", help="Display this help.", boolean=True)
            self.add_option("verbose", short="v", help="Enable verbose output.", boolean=True)
            self.add_option("quiet", short="q", help="Enable quiet output.", boolean=True)

    def __repr__(self):
        return f"OptionParser(command={self.command!r}, root={self.root!r})"

    def describe(self, text, /):
        if isinstance(text, (list, tuple)):
            text = "\n".join(text)
        self.description = text
        return self

    def epilog(self, text, /):
        if isinstance(text, (list, tuple)):
            text = "\n".join(text)
        self.epilogue = text
        return self

    def add_option(self, option, /, **metadata):
        """
        Declare an option, either from an Option instance or from its name and metadata.

        Redeclaring a name replaces the previous option (and its short alias).
        """
        if not isinstance(option, Option):
            option = Option(option, **metadata)
        elif metadata:
            raise TypeError("add_option() metadata cannot be combined with an Option instance")
        if previous := self._options.pop(option.name, None):
            self._shorts.pop(previous.short, None)
        if option.short is not None:
            if (owner := self._shorts.get(option.short)) is not None:
                raise ValueError(f"option short name '-{option.short}' is already used by '--{owner}'")
            self._shorts[option.short] = option.name
        self._options[option.name] = option
        return self

    def add_argument(self, argument, /, **metadata):
        """
        Declare the next positional argument.

        A required argument cannot follow an optional one.
        """
        if not isinstance(argument, Argument):
            argument = Argument(argument, **metadata)
        elif metadata:
            raise TypeError("add_argument() metadata cannot be combined with an Argument instance")
        if any(existing.name == argument.name for existing in self._arguments):
            raise ValueError(f"argument {argument.name!r} is already declared")
        if argument.required and self._arguments and not self._arguments[-1].required:
            raise ValueError(f"required argument {argument.name!r} cannot follow an optional one")
        self._arguments.append(argument)
        return self

    def add_subcommand(self, subcommand, /, **metadata):
        if not isinstance(subcommand, Subcommand):
            subcommand = Subcommand(subcommand, **metadata)
        elif metadata:
            raise TypeError("add_subcommand() metadata cannot be combined with a Subcommand instance")
        self._subcommands[subcommand.name] = subcommand
        return self

    def remove_option(self, name, /):
        if (option := self._options.pop(name, None)) is not None:
            self._shorts.pop(option.short, None)
        return self

    def options(self):
        return MappingProxyType(self._options)

    def arguments(self):
        return tuple(self._arguments)

    def subcommands(self):
        return MappingProxyType(self._subcommands)

    def _usage_hint(self):
        return "try '%s --help' to see the expected usage" % " ".join(filter(None, (self.root, self.command)))

    def _subcommand_for(self, token):
        if token in self._subcommands:
            return self._subcommands[token]
        return self._subcommands.get(underscore(token))

    def parse(self, argv, /):
        """
        Parse an argument vector into (params, args).

        Returns
        - params: dict of option name → value (every declared option present).
        - args: list of positional values in input order.

        Raises
        - OptionParseError subclasses (see the module docstring).
        """
        tokens = deque(argv)
        if tokens and (subcommand := self._subcommand_for(tokens[0])) is not None:
            tokens.popleft()
            if subcommand.parser is not None:
                return subcommand.parser.parse(list(tokens))

        params = {}
        args = []
        index = 0
        while tokens:
            token = tokens.popleft()
            index += 1
            if token == "--":
                args.extend(tokens)
                tokens.clear()
            elif token.startswith("--"):
                index += self._parse_long(token, tokens, params, index)
            elif token.startswith("-") and token != "-":
                index += self._parse_short(token, tokens, params, index)
            else:
                args.append(token)

        if params.get("help") is not True:
            self._check_arguments(args)

        for name, option in self._options.items():
            params.setdefault(name, [] if option.multiple and option.default is None else option.default)

        return params, args

    def _check_arguments(self, args):
        if not self._arguments:
            return
        if len(args) > len(self._arguments):
            raise TooManyArgumentsError(
                "received %d positional arguments but at most %d are accepted" % (len(args), len(self._arguments)),
                title="too many arguments",
                code=FaultCode.TOO_MANY_ARGUMENTS,
                input=args[len(self._arguments):],
                hint="remove the extra values; " + self._usage_hint(),
            )
        for position, (argument, value) in enumerate(zip(self._arguments, args), 1):
            try:
                argument.valid_choice(value)
            except InvalidChoiceError as exception:
                raise InvalidChoiceError(
                    "%r is not a valid value for the %s argument %r" % (value, _ordinal(position), argument.name),
                    **exception.options,
                ) from None
        missing = [argument.name for argument in self._arguments[len(args):] if argument.required]
        if missing:
            raise MissingArgumentsError(
                "missing required %s %s" % (pluralize("argument") if len(missing) > 1 else "argument", ", ".join(map(repr, missing))),
                title="missing arguments",
                code=FaultCode.MISSING_ARGUMENTS,
                missing=missing,
                hint=self._usage_hint(),
            )

    def _lookup(self, input, index):
        name = input.lstrip("-")
        if input.startswith("--"):
            option = self._options.get(name)
        else:
            option = self._options.get(self._shorts.get(name))
        if option is not None:
            return option

        candidates = [f"--{name}" for name in self._options] + [f"-{short}" for short in self._shorts]
        suggestions = difflib.get_close_matches(input, candidates, 5)
        try:
            hint = "did you mean %r? you can also %s" % (suggestions[0], self._usage_hint())
        except IndexError:
            hint = self._usage_hint()
        raise UnknownOptionError(
            "unknown option %r at %s position" % (input, _ordinal(index)),
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            input=input,
            suggestions=suggestions,
            hint=hint,
        )

    def _is_option(self, token):
        if token.startswith("--"):
            return token[2:].split("=", 1)[0] in self._options
        if token.startswith("-") and len(token) > 1:
            return token[1] in self._shorts
        return False

    def _parse_long(self, token, tokens, params, index):
        """
        Internal: handle a "--name" / "--name=value" token; returns the extra tokens consumed.
        """
        match = re.fullmatch(r"(?P<input>--[^\W\d_][\w-]*)(=(?P<value>[^\r\n]*))?", token)
        if not match:
            raise MalformedTokenError(
                "bad form of option %r at %s position" % (token, _ordinal(index)),
                title="malformed option",
                code=FaultCode.MALFORMED_TOKEN,
                token=token,
                hint="options are spelled --name, --name=value or -n; " + self._usage_hint(),
            )
        option = self._lookup(match["input"], index)
        if match["value"] is not None:
            if option.boolean:
                raise FlagAssignmentError(
                    "option %r at %s position does not accept a value" % (match["input"], _ordinal(index)),
                    title="option cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    input=match["input"],
                    hint="remove everything from '=' (for example: %s)" % match["input"],
                )
            self._assign(option, match["value"], params)
            return 0
        return self._take(option, tokens, params)

    def _parse_short(self, token, tokens, params, index):
        """
        Internal: handle "-n" and grouped "-abc" tokens; returns the extra tokens consumed.
        """
        if not re.fullmatch(r"-[^\W\d_]+", token):
            raise MalformedTokenError(
                "bad form of option %r at %s position" % (token, _ordinal(index)),
                title="malformed option",
                code=FaultCode.MALFORMED_TOKEN,
                token=token,
                hint="short options are single letters (for example: -v or -vq); " + self._usage_hint(),
            )
        letters = token[1:]
        if len(letters) > 1:
            tokens.extendleft(reversed([f"-{letter}" for letter in letters[1:]]))
        option = self._lookup(f"-{letters[0]}", index)
        return self._take(option, tokens, params)

    def _take(self, option, tokens, params):
        if option.boolean:
            params[option.name] = True
            return 0
        if tokens and tokens[0] and not self._is_option(tokens[0]):
            self._assign(option, tokens.popleft(), params)
            return 1
        self._assign(option, option.default, params)
        return 0

    def _assign(self, option, value, params):
        if value is not None:
            try:
                option.valid_choice(value)
            except InvalidChoiceError as exception:
                raise exception.__replace__(hint=exception.options["hint"] + "; " + self._usage_hint()) from None
        if option.multiple:
            params.setdefault(option.name, []).append(value)
        else:
            params[option.name] = value

    def help(self, subcommand=None, format="text", width=72):
        """
        Render help for this parser or one of its subcommands.

        Parameters
        - subcommand: name of a declared subcommand, or None for the whole command.
        - format: "text" (tagged for ConsoleIo) or "xml".
        - width: wrap width of the text format.

        Raises
        - UnknownSubcommandError when subcommand is not declared.
        """
        if format not in ("text", "xml"):
            raise ValueError("help() format must be 'text' or 'xml'")
        if subcommand is not None:
            return self._subparser(subcommand).help(None, format, width)
        formatter = HelpFormatter(self)
        if format == "xml":
            return formatter.xml()
        return formatter.text(width)

    def _subparser(self, name):
        if (subcommand := self._subcommand_for(name)) is None:
            suggestions = difflib.get_close_matches(name, self._subcommands.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available subcommands" % (
                    suggestions[0], " ".join(filter(None, (self.root, self.command)))
                )
            except IndexError:
                hint = "run '%s --help' to see available subcommands" % " ".join(filter(None, (self.root, self.command)))
            raise UnknownSubcommandError(
                "unknown subcommand %r" % name,
                title="unknown subcommand",
                code=FaultCode.UNKNOWN_SUBCOMMAND,
                input=name,
                suggestions=suggestions,
                hint=hint,
            )
        command = " ".join(filter(None, (self.command, subcommand.name)))
        if subcommand.parser is not None:
            parser = subcommand.parser
            derived = OptionParser(command, defaults=False, root=self.root)
            derived.description = parser.description or subcommand.help
            derived.epilogue = parser.epilogue
            derived._options = parser._options
            derived._shorts = parser._shorts
            derived._arguments = parser._arguments
            derived._subcommands = parser._subcommands
            return derived
        derived = OptionParser(command, defaults=False, root=self.root)
        derived.description = subcommand.help
        derived._options = self._options
        derived._shorts = self._shorts
        derived._arguments = self._arguments
        return derived


class HelpFormatter:
    """
    Render an OptionParser as help text.

    The text format uses the semantic tags understood by ConsoleIo
    (<info> for headings, <comment> for defaults and choices); the XML format
    is meant for tools that build their own documentation.
    """

    def __init__(self, parser, /):
        self._parser = parser

    def _usage(self):
        parser = self._parser
        parts = [" ".join(filter(None, (parser.root, parser.command)))]
        if parser.subcommands():
            parts.append("[subcommand]")
        parts.extend(option.usage() for option in parser.options().values())
        parts.extend(argument.usage() for argument in parser.arguments())
        return " ".join(parts)

    def text(self, width=72):
        parser = self._parser
        lines = []
        if parser.description:
            lines.extend(textwrap.wrap(parser.description, width) or [""])
            lines.append("")

        lines.append("<info>Usage:</info>")
        lines.extend(textwrap.wrap(self._usage(), width, subsequent_indent="    ", break_on_hyphens=False))
        lines.append("")

        if subcommands := parser.subcommands():
            lines.append("<info>Subcommands:</info>")
            lines.append("")
            lines.extend(self._table(
                ((name, subcommand.help) for name, subcommand in subcommands.items()),
                width,
            ))
            lines.append("")
            lines.append("To see help on a subcommand use `%s [subcommand] --help`" % " ".join(filter(None, (parser.root, parser.command))))
            lines.append("")

        if options := parser.options():
            lines.append("<info>Options:</info>")
            lines.append("")
            lines.extend(self._table(
                ((option.label(), self._describe(option)) for option in options.values()),
                width,
            ))
            lines.append("")

        if arguments := parser.arguments():
            lines.append("<info>Arguments:</info>")
            lines.append("")
            lines.extend(self._table(
                ((argument.name, self._describe(argument)) for argument in arguments),
                width,
            ))
            lines.append("")

        if parser.epilogue:
            lines.extend(textwrap.wrap(parser.epilogue, width) or [""])
            lines.append("")

        return "\n".join(lines).rstrip("\n")

    @staticmethod
    def _describe(spec):
        parts = [spec.help] if spec.help else []
        if isinstance(spec, Option) and not spec.boolean and spec.default is not None:
            parts.append("<comment>(default: %s)</comment>" % spec.default)
        if spec.choices:
            parts.append("<comment>(choices: %s)</comment>" % "|".join(spec.choices))
        if isinstance(spec, Argument) and not spec.required:
            parts.append("<comment>(optional)</comment>")
        return " ".join(parts)

    @staticmethod
    def _table(rows, width):
        rows = list(rows)
        column = max((len(name) for name, _ in rows), default=0) + 2
        for name, description in rows:
            # Tagged fragments are never split across lines.
            description = re.sub(r"<(\w+)>.*?</\1>", lambda match: match[0].replace(" ", "\0"), description)
            wrapped = [line.replace("\0", " ") for line in textwrap.wrap(description, max(width - column, 20))] or [""]
            yield name.ljust(column) + wrapped[0]
            for line in wrapped[1:]:
                yield " " * column + line

    def xml(self):
        parser = self._parser
        shell = ElementTree.Element("shell")
        ElementTree.SubElement(shell, "command").text = " ".join(filter(None, (parser.root, parser.command)))
        ElementTree.SubElement(shell, "description").text = parser.description

        subcommands = ElementTree.SubElement(shell, "subcommands")
        for name, subcommand in parser.subcommands().items():
            ElementTree.SubElement(subcommands, "command", name=name, help=subcommand.help)

        options = ElementTree.SubElement(shell, "options")
        for option in parser.options().values():
            element = ElementTree.SubElement(
                options,
                "option",
                name=f"--{option.name}",
                short=f"-{option.short}" if option.short else "",
                help=option.help,
                boolean=str(int(option.boolean)),
            )
            ElementTree.SubElement(element, "default").text = "" if option.default in (None, False) else str(option.default)
            choices = ElementTree.SubElement(element, "choices")
            for choice in option.choices:
                ElementTree.SubElement(choices, "choice").text = choice

        arguments = ElementTree.SubElement(shell, "arguments")
        for argument in parser.arguments():
            element = ElementTree.SubElement(
                arguments,
                "argument",
                name=argument.name,
                help=argument.help,
                required=str(int(argument.required)),
            )
            choices = ElementTree.SubElement(element, "choices")
            for choice in argument.choices:
                ElementTree.SubElement(choices, "choice").text = choice

        ElementTree.SubElement(shell, "epilog").text = parser.epilogue
        ElementTree.indent(shell)
        return ElementTree.tostring(shell, encoding="unicode", xml_declaration=True)


__all__ = (
    "OptionParser",
    "HelpFormatter",
)
