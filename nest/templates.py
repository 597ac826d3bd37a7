r"""
Template processing for scripts, hooks, paths and exported values.

Overview
- Scope: the variables and constants visible from one command, split in the
  three layers global / parent / local.
- TemplateProcessor.process(text, args, scope, parent_args) substitutes
  `{{...}}` placeholders from one layered map, lowest priority first:

      global const < global var < parent const < parent var
        < local const < local var < parent args < args

  Built-ins (`now`, `user`, `SYSTEM_ERROR_MESSAGE`) apply only when no layer
  binds the name.
- Placeholders
  • `{{name}}`: the bound value; a value starting with `--` renders as `true`.
  • `{{name|copy}}`: `--name` for "true", empty for "false", otherwise passthrough.
  • `{{name|sep:", "}}`: replaces the space separator of arrays.
  • `{{name|rep:"a"=>"b"}}`: literal substring replacement.
  • unknown modifiers render the raw value; unbound names and unclosed `{{`
    are left verbatim.
- `$*` expands to the wildcard argument bound to key "*".
- process_function_calls() rewrites `{{ func(args) }}` with the string returned
  by a caller-supplied resolver; unresolved calls stay verbatim.

Dynamic values are rendered only when referenced, through the evaluator the
processor was built with; evaluator failures render as `<error: ...>`.
"""
import os
import re
from datetime import datetime, timezone

from .ast import Value
from .faults import NestException
from .parser import parse_call
from .utils import Unset, coalesce, unquote

_SEPARATOR = re.compile(r'^sep:\s*(?P<value>"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\')$')
_REPLACE = re.compile(r'^rep:\s*(?P<old>"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\')\s*=>\s*(?P<new>"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\')$')
_CALL = re.compile(r"\{\{\s*(?P<call>[\w:-]+\s*\(.*?\))\s*\}\}")

BUILTINS = ("now", "user", "SYSTEM_ERROR_MESSAGE")


class Scope:
    """
    variables and constants visible from one command.

    parent layers hold every ancestor's locals, root first, so that closer
    ancestors override farther ones when the map is built.
    """

    def __init__(self, variables=(), constants=(), *, parent_variables=(), parent_constants=(), local_variables=(), local_constants=()):
        self.variables = tuple(variables)
        self.constants = tuple(constants)
        self.parent_variables = tuple(parent_variables)
        self.parent_constants = tuple(parent_constants)
        self.local_variables = tuple(local_variables)
        self.local_constants = tuple(local_constants)

    @property
    def layers(self):
        """every layer, lowest priority first."""
        return (
            self.constants,
            self.variables,
            self.parent_constants,
            self.parent_variables,
            self.local_constants,
            self.local_variables,
        )

    def mapping(self):
        """name → Value with layer priority applied."""
        values = {}
        for layer in self.layers:
            for binding in layer:
                values[binding.name] = binding.value
        return values

    def child(self, *, variables=(), constants=()):
        """scope one level deeper: current locals become parent layers."""
        return Scope(
            self.variables,
            self.constants,
            parent_variables=self.parent_variables + self.local_variables,
            parent_constants=self.parent_constants + self.local_constants,
            local_variables=variables,
            local_constants=constants,
        )

    def __repr__(self):
        return "scope(%s)" % ", ".join(sorted(self.mapping()))


class TemplateProcessor:
    """
    Parameters
    - evaluator: callable(expression) -> str for Dynamic values.
    - functions: callable(name, args, positionals) -> str | None resolving
      `{{ func(...) }}` calls.
    - environ: mapping consulted for the `user` built-in (os.environ by default).
    - clock: callable returning an aware datetime for the `now` built-in.
    """

    def __init__(self, *, evaluator=None, functions=None, environ=Unset, clock=None):
        self.evaluator = evaluator
        self.functions = functions
        self.environ = coalesce(environ, os.environ)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def render(self, value, /):
        """render a Value (or pass a string through), evaluating dynamic values."""
        if not isinstance(value, Value):
            return str(value)
        try:
            return value.render(self.evaluator)
        except (NestException, OSError) as error:
            return "<error: %s>" % error

    def mapping(self, args=Unset, scope=None, parent_args=Unset):
        """the layered name → Value|str map used by process()."""
        values = scope.mapping() if scope is not None else {}
        args = coalesce(args, {})
        for name, value in coalesce(parent_args, {}).items():
            if name not in args:
                values[name] = value
        values.update(args)
        return values

    def process(self, text, /, args=Unset, scope=None, parent_args=Unset):
        values = self.mapping(args, scope, parent_args)
        text = self._placeholders(text, values)
        if "$*" in text:
            text = text.replace("$*", self.render(values.get("*", "")))
        return text

    def _placeholders(self, text, values):
        output = []
        index = 0
        while (start := text.find("{{", index)) != -1:
            end = text.find("}}", start + 2)
            if end == -1:
                break
            output.append(text[index:start])
            output.append(self._placeholder(text[start:end + 2], text[start + 2:end].strip(), values))
            index = end + 2
        output.append(text[index:])
        return "".join(output)

    def _placeholder(self, original, inner, values):
        name, bar, modifier = inner.partition("|")
        name = name.strip()
        modifier = modifier.strip()

        if name in values:
            value = self.render(values[name])
            if not bar:
                return "true" if value.startswith("--") else value
            return self.modify(name, value, modifier)

        if bar:
            return original
        match name:
            case "now":
                return self.clock().isoformat()
            case "user":
                return self.environ.get("USER") or self.environ.get("USERNAME") or "unknown"
            case "SYSTEM_ERROR_MESSAGE":
                return ""
        return original

    @staticmethod
    def modify(name, value, modifier, /):
        """apply one placeholder modifier to a rendered value."""
        if modifier == "copy":
            if value == "true":
                return "--" + name
            if value == "false":
                return ""
            return value
        if match := _SEPARATOR.match(modifier):
            return value.replace(" ", unquote(match["value"]))
        if match := _REPLACE.match(modifier):
            return value.replace(unquote(match["old"]), unquote(match["new"]))
        return value

    def process_function_calls(self, text, /):
        """replace `{{ func(args) }}` with the resolver's result; unresolved calls stay verbatim."""
        if self.functions is None or "{{" not in text:
            return text

        def replace(match):
            call = parse_call(match["call"])
            if call is None:
                return match[0]
            name, args, positionals = call
            result = self.functions(name, args, positionals)
            return match[0] if result is None else result

        return _CALL.sub(replace, text)


__all__ = (
    "Scope",
    "TemplateProcessor",
    "BUILTINS",
)
