"""
Bosun utilities (internal helpers, carefully exposed)

Scope
- Building blocks shared by the dispatcher, the commands and the option parser.
- Public-but-internal leaning: stable enough for consumers, designed primarily
  to support the higher-level layers.

Overview
- UnsetType / Unset
  • Singleton sentinel to represent “value not provided” without conflating with None.
  • Falsey (bool(Unset) is False), printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, but preserve legitimate falsey values like None/0/""/[].

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated callables for clean tracebacks.

- mirror("attr")
  • Read-only property factory exposing a private backing field (self._attr) with
    defensive copies for containers.

- camelize(text) / underscore(text) / pluginsplit(token)
  • The naming convention used to turn command tokens into registry keys:
    "orm_cache" → "OrmCache", "OrmCache" → "orm_cache", "Acme.build" → ("Acme", "build").

- pluralize(text)
  • Best-effort English pluralization for labels/messages.

- mglob(pattern)
  • Module globbing: expands "pkg.**.commands" style patterns into importable module names.

Stability and contract
- Names not in __all__ are internal and may change without notice.

Quick examples
    >>> camelize("command_list")
    'CommandList'
    >>> underscore("OrmCache")
    'orm_cache'
    >>> pluginsplit("acme.report")
    ('acme', 'report')
"""
import builtins
import functools
import importlib
import pkgutil
import re
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset sentinel: "no value was given", as opposed to None.

    bool(Unset) is False, repr(Unset) is "Unset", UnsetType() always returns
    the same instance and the type cannot be subclassed.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return default when object is Unset, object otherwise (None included).
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - Function form: rename(callable, name) -> callable
    - Decorator form: rename(name) -> (decorator)

    Notes
    - Only metadata changes; behavior is untouched.
    - Built-in callables are not updatable and raise TypeError.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _immortalize(object):
    """
    Recursively copy container values so callers cannot mutate the original.

    - Sequence (non-string): new list, items processed.
    - Mapping: new dict, keys preserved, values processed.
    - Set: new set, items processed.
    - Anything else: returned as-is.
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    else:
        return coalesce(object)


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance and hands out a copy for
    container types.

    Example
    - Given self._options, declare options = mirror("options") to expose it safely.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def camelize(text, /):
    """
    Turn a delimited word into its class-name form.

    Underscores, hyphens and whitespace are word boundaries; the first letter of
    every word is upper-cased and the rest of the word is kept as written, so
    already camelized input is returned unchanged.

    Examples
    - camelize("command_list") -> "CommandList"
    - camelize("orm-cache")    -> "OrmCache"
    - camelize("OrmCache")     -> "OrmCache"
    """
    if not isinstance(text, str):
        raise TypeError("camelize() argument must be a string")
    return "".join(word[:1].upper() + word[1:] for word in re.split(r"[_\-\s]+", text) if word)


@functools.cache
def underscore(text, /):
    """
    Turn a camelized or hyphenated word into its lower-case, underscored form.

    Hyphens become underscores, then every camel-case word boundary gets one;
    existing underscores are kept.

    Examples
    - underscore("OrmCache")   -> "orm_cache"
    - underscore("build")      -> "build"
    - underscore("build-all")  -> "build_all"
    """
    if not isinstance(text, str):
        raise TypeError("underscore() argument must be a string")
    return re.sub(r"(?<=\w)(?=[A-Z])", "_", text.replace("-", "_")).lower()


def pluginsplit(token, /):
    """
    Split a "prefix.name" token once on the first dot.

    Returns
    - (prefix, name) when the token is namespaced.
    - (None, token) otherwise.
    """
    if not isinstance(token, str):
        raise TypeError("pluginsplit() argument must be a string")
    if "." in token:
        prefix, name = token.split(".", 1)
        return prefix, name
    return None, token


@functools.cache
def pluralize(text, /):
    """
    Best-effort English pluralizer for internal messages and labels.

    Accepts a single word or a multi-word phrase. For phrases, only the last
    lexical word is pluralized; preceding text and whitespace are preserved.

    Examples
    - pluralize("command")        -> "commands"
    - pluralize("category")       -> "categories"
    - pluralize("plugin command") -> "plugin commands"
    """
    if not isinstance(text, str):
        raise TypeError("pluralize() argument must be a string")

    if not text:
        return text

    match = re.search(r'(\S+)(\s*)$', text)
    if not match:
        return text

    head = text[:match.start(1)]
    last = match.group(1)
    trail = match.group(2)
    lower = last.lower()

    uncountables = {"series", "species", "information", "equipment", "news"}
    irregulars = {
        "person": "people",
        "child": "children",
        "analysis": "analyses",
        "criterion": "criteria",
    }
    if lower in uncountables:
        plural = lower
    elif lower in irregulars:
        plural = irregulars[lower]
    elif lower.endswith(("s", "sh", "ch", "x", "z")):
        plural = lower + "es"
    elif lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        plural = lower[:-1] + "ies"
    else:
        plural = lower + "s"

    if last.isupper():
        plural = plural.upper()
    elif last[:1].isupper():
        plural = plural[:1].upper() + plural[1:]

    return head + plural + trail


_SEGMENT_TOKEN = re.compile(r"\\(.)|(\*)|(\?)|\[(!?)([^\]]+)\]|(.)", re.DOTALL)


@functools.cache
def _segment_regex(segment):
    """
    Translate one dot-free glob segment; no wildcard ever matches a dot.
    """

    def translate(match):
        escaped, star, question, negated, members, char = match.groups()
        if star:
            return r"[^.]*"
        if question:
            return r"[^.]"
        if members is not None:
            return "[%s%s]" % ("^" if negated else "", members)
        return re.escape(char if escaped is None else escaped)

    return _SEGMENT_TOKEN.sub(translate, segment)


@functools.cache
def _module_regex(pattern):
    body = []
    for position, segment in enumerate(pattern.split(".")):
        if segment == "**":
            body.append(r"(?:\.[^\W\d]\w*)*")
        else:
            body.append((r"\." if position else "") + _segment_regex(segment))
    return re.compile("".join(body))


def mglob(source, /):
    """
    Expand a dotted module glob into the importable module names it matches.

    Within a segment "*", "?", "[abc]", "[!abc]" and backslash escapes work as
    in shell globs; a "**" segment spans any number of packages. The pattern
    must start with a concrete package, which is imported to walk its
    submodules. A pattern without wildcards is returned as is.

    Examples
    - mglob("app.commands.*")  -> every direct child of app.commands
    - mglob("app.**.commands") -> every "commands" module below app
    """
    if not isinstance(source, str):
        raise TypeError("mglob() argument must be a string")
    if not (source := source.strip()):
        raise ValueError("mglob() argument must be a non-empty string")

    if re.fullmatch(r"[^\W\d]\w*(\.[^\W\d]\w*)*", source):
        return [source]

    concrete = []
    for segment in source.split("."):
        if not re.fullmatch(r"[^\W\d]\w*", segment):
            break
        concrete.append(segment)
    if not concrete:
        raise ValueError("mglob() pattern must start with a concrete package")

    try:
        package = importlib.import_module(root := ".".join(concrete))
    except ImportError:
        return []

    pattern = _module_regex(source)
    found = {root} if pattern.fullmatch(root) else set()
    for module in pkgutil.walk_packages(getattr(package, "__path__", ()), root + "."):
        if pattern.fullmatch(module.name):
            found.add(module.name)
    return sorted(found)


Unset = UnsetType()
"""Default of parameters whose None is meaningful."""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "camelize",
    "underscore",
    "pluginsplit",
    "pluralize",
    "mglob",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
