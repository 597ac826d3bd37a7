"""
Merging of same-path command definitions.

Includes may define the same command more than once; merge() folds those
definitions into one, first occurrence order preserved, recursing into children.

Policy (later definition wins)
- desc, cwd, logs, depends, privileged, require_confirm, watch, validate and
  every hook (before, after, fallback, finally) are replaced as a whole category:
  when the override declares the kind, every base directive of that kind goes.
- script, if, elif and else form one category, so conditional branches and
  their scripts are replaced together.
- env merges per key (later wins per key, other keys kept); env files are
  appended unless the same path is already present.
- parameters: a non-empty override signature replaces the base one; an empty
  one leaves it intact.
- children merge recursively over the concatenation of both sides.
- variables and constants are appended.

Before folding, every file-relative path (cwd, env file, logs) is made absolute
against the directory of the command's own source file.
"""
import copy
from pathlib import Path

from .ast import DirectiveKind

_CATEGORIES = {
    DirectiveKind.IF: DirectiveKind.SCRIPT,
    DirectiveKind.ELIF: DirectiveKind.SCRIPT,
    DirectiveKind.ELSE: DirectiveKind.SCRIPT,
}

_PATHS = (DirectiveKind.CWD, DirectiveKind.ENV_FILE, DirectiveKind.LOGS)


def category(directive, /):
    """merge category of a directive (kinds that are replaced together)."""
    return _CATEGORIES.get(directive.kind, directive.kind)


def absolutize(command, /):
    """rewrite relative cwd / env-file / logs paths against the command's source directory, recursively."""
    directives = command.directives
    if command.source is not None:
        base = Path(command.source).parent
        directives = tuple(
            copy.replace(directive, value=str(base / directive.value))
            if directive.kind in _PATHS and _relative(directive.value) else directive
            for directive in directives
        )
    return copy.replace(
        command,
        directives=directives,
        children=tuple(map(absolutize, command.children)),
    )


def _relative(path):
    if not path or path.startswith(("{{", "$", "~")):
        return False
    return not Path(path).is_absolute()


def fold(base, override, /):
    """fold override into base (both describe the same command path)."""
    return copy.replace(
        base,
        parameters=override.parameters or base.parameters,
        directives=_directives(base.directives, override.directives),
        children=base.children + override.children,
        variables=base.variables + override.variables,
        constants=base.constants + override.constants,
    )


def _directives(base, override):
    replaced = {category(directive) for directive in override} - {DirectiveKind.ENV, DirectiveKind.ENV_FILE}
    keys = {directive.name for directive in override if directive.kind == DirectiveKind.ENV}
    files = {directive.value for directive in base if directive.kind == DirectiveKind.ENV_FILE}

    merged = [
        directive for directive in base
        if category(directive) not in replaced
        and not (directive.kind == DirectiveKind.ENV and directive.name in keys)
    ]
    merged.extend(
        directive for directive in override
        if not (directive.kind == DirectiveKind.ENV_FILE and directive.value in files)
    )
    return tuple(merged)


def merge(commands, /, *, absolute=False):
    """
    deduplicate commands by name, folding later definitions into the first.

    absolute skips path rewriting (used when recursing, the input is already absolute).
    """
    merged = {}
    for command in commands:
        if not absolute:
            command = absolutize(command)
        if command.name in merged:
            merged[command.name] = fold(merged[command.name], command)
        else:
            merged[command.name] = command
    return tuple(
        copy.replace(command, children=merge(command.children, absolute=True))
        for command in merged.values()
    )


__all__ = (
    "merge",
    "fold",
    "absolutize",
    "category",
)
