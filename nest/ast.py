r"""
Nest abstract syntax tree (values, parameters, directives, commands).

Overview
- Values
  • Value: typed literal (string | bool | number | array | dynamic shell expression).
    Dynamic values are rendered lazily through a caller-supplied evaluator.

- Signatures
  • Parameter: typed command/function parameter, optionally named (`!`), aliased,
    defaulted, or a wildcard capturing trailing positionals (`*`, `*name`, `*[N]`).

- Behavior
  • Directive: one behavioral property on a command (script, cwd, env, depends...),
    tagged by DirectiveKind; hooks carry a hide flag and an optional OS scope.
  • Dependency: command path (bare = sibling, `a:b` = root-absolute) and argument overrides.

- Scoping
  • Variable / Constant: named values; Function: reusable script body with parameters.
  • Command: tree node owning its children, locals and originating source file.

Representation
- Every node class is built by NodeType, which exposes the names listed in
  __introspectable__ as read-only properties, and provides __repr__, __rich_repr__,
  structural equality and copy.replace() support.
- Nodes are immutable: containers are stored as tuples or read-only mappings.
"""
import copy
import functools
import math
import operator
import re
from enum import StrEnum
from types import MappingProxyType

from .utils import Unset, coalesce


class NodeType(type):
    """
    Metaclass that turns AST node classes into immutable, introspectable records.

    Responsibilities
    - Expose every name in __introspectable__ as a read-only property backed by
      the private attribute of the same name (self._name).
    - Provide a stable __repr__/__rich_repr__ pair for diagnostics.
    - Provide structural __eq__/__hash__ based on the introspectable fields.
    - Provide __replace__ so that copy.replace(node, field=...) builds a new node.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        fields = namespace.get("__introspectable__", ())
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: property(operator.attrgetter("_" + field)) for field in fields
            },
        )

        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"

        def __rich_repr__(self):
            for field in type(self).__introspectable__:
                yield field, getattr(self, field)

        def __eq__(self, other):
            if type(self) is not type(other):
                return NotImplemented
            return all(getattr(self, field) == getattr(other, field) for field in type(self).__introspectable__)

        def __hash__(self):
            return hash((type(self), *(getattr(self, field) for field in type(self).__introspectable__)))

        def __replace__(self, **overrides):
            unknown = overrides.keys() - set(type(self).__introspectable__)
            if unknown:
                raise TypeError("%s got unexpected field(s): %s" % (type(self).__typename__, ", ".join(sorted(unknown))))
            node = copy.copy(self)
            for field, value in overrides.items():
                setattr(node, "_" + field, _freeze(value))
            return node

        for function in (__repr__, __rich_repr__, __eq__, __hash__, __replace__):
            if function.__name__ in namespace:
                continue
            function.__qualname__ = "%s.%s" % (name, function.__name__)
            setattr(self, function.__name__, function)

        return self


def _freeze(object):
    """return an immutable counterpart for lists, tuples and dicts."""
    if isinstance(object, list | tuple):
        return tuple(object)
    if isinstance(object, dict | MappingProxyType):
        return MappingProxyType(dict(object))
    return object


class ValueKind(StrEnum):
    STRING = "string"
    BOOL = "bool"
    NUMBER = "number"
    ARRAY = "array"
    DYNAMIC = "dynamic"


class Value(metaclass=NodeType):
    """
    Typed manifest literal.

    payload by kind
    - STRING: str
    - BOOL: bool
    - NUMBER: float
    - ARRAY: tuple[str, ...]
    - DYNAMIC: str (shell expression, evaluated on render)
    """
    __introspectable__ = ("kind", "data")

    def __init__(self, kind, data, /):
        self._kind = ValueKind(kind)
        self._data = _freeze(data)

    @classmethod
    def string(cls, data):
        return cls(ValueKind.STRING, str(data))

    @classmethod
    def bool(cls, data):
        return cls(ValueKind.BOOL, bool(data))

    @classmethod
    def number(cls, data):
        return cls(ValueKind.NUMBER, float(data))

    @classmethod
    def array(cls, data):
        return cls(ValueKind.ARRAY, tuple(map(str, data)))

    @classmethod
    def dynamic(cls, data):
        return cls(ValueKind.DYNAMIC, str(data))

    def render(self, evaluator=None, /):
        """
        Render the value as the string used for substitution and export.

        - bools render as "true"/"false"
        - integral numbers drop the fractional part ("3", not "3.0")
        - arrays are space-joined
        - dynamic values are handed to evaluator; without one the raw
          expression is returned
        """
        match self._kind:
            case ValueKind.STRING:
                return self._data
            case ValueKind.BOOL:
                return "true" if self._data else "false"
            case ValueKind.NUMBER:
                if math.isfinite(self._data) and self._data == int(self._data):
                    return str(int(self._data))
                return repr(self._data)
            case ValueKind.ARRAY:
                return " ".join(self._data)
            case ValueKind.DYNAMIC:
                return evaluator(self._data) if evaluator else self._data

    def __str__(self):
        return self.render()


class ParamType(StrEnum):
    STR = "str"
    BOOL = "bool"
    NUM = "num"
    ARR = "arr"


class Parameter(metaclass=NodeType):
    """
    Command or function parameter.

    A wildcard parameter captures trailing positionals; it has no type
    annotation or default, and may carry a capture name and a fixed count.
    Its public name is "*" or "*name".
    """
    __introspectable__ = ("name", "alias", "type", "default", "named", "wildcard", "count")

    def __init__(self, name, /, type=ParamType.STR, *, alias=None, default=None, named=False, wildcard=False, count=None):
        self._name = name
        self._alias = alias
        self._type = None if type is None else ParamType(type)
        self._default = default
        self._named = named
        self._wildcard = wildcard
        self._count = count

    @classmethod
    def star(cls, capture=None, count=None):
        """build a wildcard parameter (`*`, `*name`, `*[N]`, `*name[N]`)."""
        return cls("*" + (capture or ""), None, wildcard=True, count=count)

    @property
    def capture(self):
        """capture name of a wildcard (None for a bare `*`)."""
        return (self._name[1:] or None) if self._wildcard else None

    @property
    def required(self):
        return not self._wildcard and self._default is None and self._type is not ParamType.BOOL

    @property
    def key(self):
        """argument-map key under which the bound value is stored."""
        return (self.capture or "*") if self._wildcard else self._name


class DirectiveKind(StrEnum):
    DESC = "desc"
    CWD = "cwd"
    ENV = "env"
    ENV_FILE = "env_file"
    SCRIPT = "script"
    BEFORE = "before"
    AFTER = "after"
    FALLBACK = "fallback"
    FINALLY = "finally"
    DEPENDS = "depends"
    PRIVILEGED = "privileged"
    LOGS = "logs"
    REQUIRE_CONFIRM = "require_confirm"
    IF = "if"
    ELIF = "elif"
    ELSE = "else"
    VALIDATE = "validate"
    WATCH = "watch"


HOOKS = (
    DirectiveKind.SCRIPT,
    DirectiveKind.BEFORE,
    DirectiveKind.AFTER,
    DirectiveKind.FALLBACK,
    DirectiveKind.FINALLY,
)


class Directive(metaclass=NodeType):
    """
    One behavioral property of a command.

    field usage by kind
    - DESC, CWD, REQUIRE_CONFIRM, IF, ELIF: value is a string (ELSE: "")
    - ENV: name + value (+ hide); ENV_FILE: value is the path (+ hide)
    - SCRIPT/BEFORE/AFTER/FALLBACK/FINALLY: value is the body, hide flag, os scope
    - DEPENDS: value is a tuple of Dependency, parallel flag
    - PRIVILEGED: value is a bool
    - LOGS: value is the path, format is "txt" or "json"
    - VALIDATE: name is the target, value is the rule
    - WATCH: value is a tuple of glob patterns
    """
    __introspectable__ = ("kind", "value", "name", "hide", "os", "parallel", "format")

    def __init__(self, kind, value="", /, *, name=None, hide=False, os=None, parallel=False, format=None):
        self._kind = DirectiveKind(kind)
        self._value = _freeze(value)
        self._name = name
        self._hide = hide
        self._os = os
        self._parallel = parallel
        self._format = format

    @property
    def hook(self):
        return self._kind in HOOKS


class Dependency(metaclass=NodeType):
    """
    Reference to another command.

    - path: "name" (sibling of the dependent) or "group:name" (from the root).
    - args: argument overrides passed to the dependency.
    """
    __introspectable__ = ("path", "args")

    def __init__(self, path, args=Unset, /):
        self._path = path
        self._args = MappingProxyType(dict(coalesce(args, {})))

    def __hash__(self):
        return hash((self._path, tuple(self._args.items())))

    @property
    def absolute(self):
        return ":" in self._path

    @property
    def segments(self):
        return tuple(self._path.split(":"))


class Variable(metaclass=NodeType):
    """redefinable named value (latest definition in a scope wins)."""
    __introspectable__ = ("name", "value")

    def __init__(self, name, value, /):
        self._name = name
        self._value = value


class Constant(metaclass=NodeType):
    """named value that cannot be redefined within one scope."""
    __introspectable__ = ("name", "value")

    def __init__(self, name, value, /):
        self._name = name
        self._value = value


class Function(metaclass=NodeType):
    """
    Reusable script body callable by name from any script.

    body is the raw text with local `var` lines removed; those are kept in
    variables and layered over the caller's scope when the function runs.
    """
    __introspectable__ = ("name", "parameters", "body", "variables")

    def __init__(self, name, parameters=(), body="", variables=(), /):
        self._name = name
        self._parameters = tuple(parameters)
        self._body = body
        self._variables = tuple(variables)


class Command(metaclass=NodeType):
    """
    Node of the command tree.

    The tree is strictly owned from parent to children; ancestor lookups walk
    from the root along a path instead of following back-references.
    """
    __introspectable__ = ("name", "parameters", "directives", "children", "variables", "constants", "source")

    def __init__(self, name, /, parameters=(), directives=(), children=(), variables=(), constants=(), source=None):
        self._name = name
        self._parameters = tuple(parameters)
        self._directives = tuple(directives)
        self._children = tuple(children)
        self._variables = tuple(variables)
        self._constants = tuple(constants)
        self._source = source

    @property
    def wildcard(self):
        """True when the signature contains a wildcard parameter."""
        return any(parameter.wildcard for parameter in self._parameters)

    def child(self, name, /):
        """return the direct child called name, or None."""
        return next((child for child in self._children if child.name == name), None)


class ParseResult(metaclass=NodeType):
    """commands, global variables, global constants and functions of one manifest."""
    __introspectable__ = ("commands", "variables", "constants", "functions")

    def __init__(self, commands=(), variables=(), constants=(), functions=(), /):
        self._commands = tuple(commands)
        self._variables = tuple(variables)
        self._constants = tuple(constants)
        self._functions = tuple(functions)

    def __iter__(self):
        return iter((self._commands, self._variables, self._constants, self._functions))


def find(commands, path, /):
    """
    Walk commands along path (a sequence of names) and return the target.

    Returns None when any segment is missing.
    """
    node = None
    for name in path:
        node = next((command for command in commands if command.name == name), None)
        if node is None:
            return None
        commands = node.children
    return node


def ancestors(commands, path, /):
    """
    Return the chain of commands from the root to path (both included).

    Missing segments end the chain early.
    """
    chain = []
    for name in path:
        node = next((command for command in commands if command.name == name), None)
        if node is None:
            break
        chain.append(node)
        commands = node.children
    return chain


__all__ = (
    "ValueKind",
    "Value",
    "ParamType",
    "Parameter",
    "DirectiveKind",
    "HOOKS",
    "Directive",
    "Dependency",
    "Variable",
    "Constant",
    "Function",
    "Command",
    "ParseResult",
    "find",
    "ancestors",
)
