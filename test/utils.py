"""
Utilities module tests (sentinel, naming helpers, module globbing).

Scope
- Unset/coalesce semantics.
- camelize/underscore/pluginsplit: the naming convention used to resolve tokens.
- pluralize for labels and messages.
- mirror/rename helpers used by the metaclasses.
- mglob expansion over the installed package.

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from bosun.utils import *


class TestSentinel(TestCase):
    """Unset is a falsey singleton distinct from None."""

    def testUnsetIsSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testUnsetCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            class Other(UnsetType):  # NOQA: F-841
                pass

    def testCoalesceOnlyReplacesUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertEqual(coalesce("", "x"), "")


class TestNaming(TestCase):
    """Inflection helpers that turn tokens into registry keys."""

    def testCamelize(self):
        self.assertEqual(camelize("command_list"), "CommandList")
        self.assertEqual(camelize("orm-cache"), "OrmCache")
        self.assertEqual(camelize("OrmCache"), "OrmCache")
        self.assertEqual(camelize("report"), "Report")
        self.assertEqual(camelize("acme"), "Acme")

    def testUnderscore(self):
        self.assertEqual(underscore("OrmCache"), "orm_cache")
        self.assertEqual(underscore("build"), "build")
        self.assertEqual(underscore("--verbose"), "__verbose")
        self.assertEqual(underscore("build-all"), "build_all")

    def testCamelizeRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            camelize(None)

    def testPluginsplit(self):
        self.assertEqual(pluginsplit("acme.report"), ("acme", "report"))
        self.assertEqual(pluginsplit("report"), (None, "report"))
        self.assertEqual(pluginsplit("a.b.c"), ("a", "b.c"))

    def testPluralize(self):
        self.assertEqual(pluralize("command"), "commands")
        self.assertEqual(pluralize("category"), "categories")
        self.assertEqual(pluralize("plugin command"), "plugin commands")
        self.assertEqual(pluralize("Box"), "Boxes")
        self.assertEqual(pluralize("news"), "news")


class TestHelpers(TestCase):
    """mirror and rename produce stable, read-only accessors."""

    def testMirrorReturnsCopies(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = ["a", "b"]

        holder = Holder()
        holder.items.append("c")
        self.assertEqual(holder.items, ["a", "b"])
        with self.assertRaises(AttributeError):
            holder.items = []

    def testRenameFunctionAndDecoratorForms(self):
        def function():
            pass

        self.assertEqual(rename(function, "renamed").__name__, "renamed")

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__qualname__, "decorated")

    def testRenameArity(self):
        with self.assertRaises(TypeError):
            rename()


class TestModuleGlob(TestCase):
    """mglob expands dotted patterns into importable modules."""

    def testConcreteNameIsReturnedUnchanged(self):
        self.assertEqual(mglob("bosun.listing"), ["bosun.listing"])

    def testWildcardMatchesChildren(self):
        modules = mglob("bosun.*")
        self.assertIn("bosun.commands", modules)
        self.assertIn("bosun.dispatcher", modules)
        self.assertEqual(modules, sorted(modules))

    def testWildcardPrefixIsRejected(self):
        with self.assertRaises(ValueError):
            mglob("*.commands")

    def testMissingPackageMatchesNothing(self):
        self.assertEqual(mglob("bosun_missing_package.*"), [])


if __name__ == "__main__":
    unittest.main()
