"""
nest command line.

    nest [--file PATH] [--dry-run] [--verbose] <command> [<subcommand> ...] [arguments]
    nest [--file PATH] --list

Global switches are only recognized before the command name; everything after
it belongs to the command signature. Without --file the manifest is looked up
in the current directory under the names in MANIFESTS.
"""
import copy
import signal
import sys
from pathlib import Path

from rich.tree import Tree

from .ast import DirectiveKind
from .binding import bind, route
from .codegen import signature
from .faults import *
from .merger import merge
from .parser import parse
from .resolver import DirectiveResolver
from .runtime import Runtime
from .utils import ordinal

__prog__ = "nest"

__docs__ = {
    FaultCode.MANIFEST_NOT_FOUND: "nest reads nestfile, Nestfile, nestfile.nest or Nestfile.nest from the current directory",
    FaultCode.CIRCULAR_DEPENDENCY: "commands reached again through depends, script calls or a nested nest call form a cycle",
    FaultCode.SCRIPT_FAILED: "the script exited with a non-zero status",
}

MANIFESTS = ("nestfile", "Nestfile", "nestfile.nest", "Nestfile.nest")


class Options:
    def __init__(self):
        self.file = None
        self.dry_run = False
        self.verbose = False
        self.list = False


def options(tokens, /):
    """split leading global switches from the command tokens."""
    result = Options()
    tokens = list(tokens)
    position = 0
    while tokens and tokens[0].startswith("-"):
        token = tokens.pop(0)
        position += 1
        name, equals, value = token.partition("=")
        match name:
            case "--dry-run" | "-n":
                result.dry_run = True
            case "--verbose" | "-v":
                result.verbose = True
            case "--list" | "-l":
                result.list = True
            case "--file" | "-f":
                if not equals:
                    if not tokens:
                        raise MissingValueError(
                            "option %r at %s position expects a value" % (name, ordinal(position)),
                            title="missing value",
                            code=FaultCode.MISSING_VALUE,
                            hint="pass the manifest path as --file PATH",
                            docs=getdoc(FaultCode.MISSING_VALUE),
                        )
                    value = tokens.pop(0)
                    position += 1
                result.file = Path(value)
            case _:
                raise UnknownSwitchError(
                    "unknown option %r at %s position" % (name, ordinal(position)),
                    title="unknown option",
                    code=FaultCode.UNKNOWN_SWITCH,
                    input=name,
                    index=position,
                    hint="global options are --file, --dry-run, --verbose and --list",
                    docs=getdoc(FaultCode.UNKNOWN_SWITCH),
                )
    return result, tokens


def locate(file=None, /, directory=None):
    """path of the manifest to load."""
    if file is not None:
        candidates = [Path(file)]
    else:
        directory = Path(directory or Path.cwd())
        candidates = [directory / name for name in MANIFESTS]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    raise ManifestNotFoundError(
        "no manifest found" if file is None else "manifest %r not found" % str(file),
        title="manifest not found",
        code=FaultCode.MANIFEST_NOT_FOUND,
        hint="create a nestfile here or point at one with --file PATH",
        docs=getdoc(FaultCode.MANIFEST_NOT_FOUND),
    )


def listing(commands, /):
    """rich tree of commands with signatures and descriptions."""
    tree = Tree("[bold]commands")

    def grow(branch, nodes):
        for node in nodes:
            label = "[bold #00E5FF]%s[/]" % signature(node.name, node.parameters)
            if desc := DirectiveResolver(node.directives).value(DirectiveKind.DESC):
                label += "  [#9CE19C]%s[/]" % desc
            grow(branch.add(label), node.children)

    grow(tree, commands)
    return tree


def main(argv=None, /):
    tokens = sys.argv[1:] if argv is None else list(argv)
    try:
        settings, tokens = options(tokens)
        manifest = locate(settings.file)
        try:
            text = manifest.read_text(encoding="utf-8")
        except OSError as error:
            raise ManifestNotFoundError(
                "cannot read manifest %r: %s" % (str(manifest), error.strerror or error),
                title="manifest not found",
                code=FaultCode.MANIFEST_NOT_FOUND,
                hint="check the permissions of the manifest",
                docs=getdoc(FaultCode.MANIFEST_NOT_FOUND),
            ) from None

        try:
            commands, variables, constants, functions = parse(text, source=manifest)
        except ParseError as error:
            lines = text.splitlines()
            details = [("file", str(manifest)), ("line", str(error.line))]
            if 0 < error.line <= len(lines):
                details.append(("source", lines[error.line - 1].strip()))
            raise copy.replace(error, details=details) from None

        commands = merge(commands)

        if settings.list:
            console.print(listing(commands))
            return 0

        command, path, rest = route(commands, tokens)
        args = bind(command, rest, path=path)

        runtime = Runtime(commands, variables, constants, functions, shell=True)
        signal.signal(signal.SIGTERM, lambda number, frame: runtime.terminate(number))
        runtime.execute(command, args, path, dry_run=settings.dry_run, verbose=settings.verbose)
    except NestException as error:
        trigger(error, shell=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
