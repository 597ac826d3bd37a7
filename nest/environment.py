"""
Environment files and variable expansion.

- load(path): read a dotenv-style file into an ordered dict.
- expand(text, scope): resolve `${VAR:-default}`, `${VAR}` and `$VAR`
  against scope first, then the process environment.
- collect(directives): fold env / env-file directives (in order) into one mapping;
  later entries win per key.
"""
import os
import re
from pathlib import Path

from .ast import DirectiveKind
from .faults import EnvFileError, FaultCode, getdoc
from .utils import Unset, coalesce, unquote

_REFERENCE = re.compile(r"\$\{(?P<braced>[A-Za-z_]\w*)(?::-(?P<default>[^}]*))?\}|\$(?P<bare>[A-Za-z_]\w*)")


def expand(text, scope=Unset, /, *, environ=Unset):
    """
    expand shell-style variable references in text.

    lookup order is scope, then environ (os.environ by default); an unknown
    name expands to its `:-` default or to the empty string.
    """
    scope = coalesce(scope, {})
    environ = coalesce(environ, os.environ)

    def replace(match):
        name = match["braced"] or match["bare"]
        if name in scope:
            return scope[name]
        if name in environ:
            return environ[name]
        return match["default"] or ""

    return _REFERENCE.sub(replace, text)


def parse(text, /, *, environ=Unset):
    """parse dotenv text; values may reference keys defined above them."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").strip()
        name, equals, value = line.partition("=")
        if not equals or not (name := name.strip()):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == "'":
            values[name] = value[1:-1]
        else:
            values[name] = expand(unquote(value), values, environ=environ)
    return values


def load(path, /, *, environ=Unset):
    """read and parse the env file at path; raises EnvFileError when unreadable."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as error:
        raise EnvFileError(
            "cannot read env file '%s': %s" % (path, error.strerror or error),
            title="env file",
            code=FaultCode.ENV_FILE_FAILED,
            path=str(path),
            hint="check the path of the env directive (relative paths start at the manifest's directory)",
            docs=getdoc(FaultCode.ENV_FILE_FAILED),
        ) from None
    return parse(text, environ=environ)


def collect(directives, /, *, environ=Unset):
    """fold env and env-file directives in order; later keys override earlier ones."""
    values = {}
    for directive in directives:
        match directive.kind:
            case DirectiveKind.ENV:
                values[directive.name] = expand(directive.value, values, environ=environ)
            case DirectiveKind.ENV_FILE:
                values |= load(directive.value, environ=environ)
    return values


__all__ = (
    "expand",
    "parse",
    "load",
    "collect",
)
