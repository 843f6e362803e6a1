"""
Bosun built-in command list.

CommandListCommand is the target of the dispatcher's help path ("command_list"):
it lists the commands of its registry grouped by plugin, as tagged text or XML.
"""
from xml.etree import ElementTree

from .commands import Command
from .registry import default_registry
from .utils import *


@default_registry.register
class CommandListCommand(Command):
    """
    List the available commands.
    """

    def main(self, *args):
        commands = self.registry.commands()
        if self.param("xml") or args[:1] == ("xml",):
            return self._as_xml(commands)

        self.out("<info>Available Commands:</info>", 2)
        for plugin, names in commands.items():
            self.out("[<info>%s</info>] %s" % (plugin or "App", ", ".join(names)))
        if not commands:
            self.out("<comment>No commands are registered.</comment>")
        self.out()
        self.out("To run a command, type <info>`%s command_name [args|options]`</info>" % self.root_name)
        self.out("To get help on a specific command, type <info>`%s command_name --help`</info>" % self.root_name, 2)
        return True

    def _as_xml(self, commands):
        shell = ElementTree.Element("shell")
        listing = ElementTree.SubElement(shell, "commands")
        for plugin, names in commands.items():
            for name in names:
                call = f"{underscore(plugin)}.{name}" if plugin else name
                ElementTree.SubElement(
                    listing,
                    "shell",
                    name=name,
                    call_as=call,
                    provider=underscore(plugin) if plugin else "app",
                    help=f"{call} -h",
                )
        ElementTree.indent(shell)
        self.io.output_as(self.io.RAW)
        self.out(ElementTree.tostring(shell, encoding="unicode", xml_declaration=True))
        return True

    def get_option_parser(self):
        return super().get_option_parser().describe(
            "Get the list of available commands for this application."
        ).add_option("xml", help="Get the listing as XML.", boolean=True)


__all__ = (
    "CommandListCommand",
)
