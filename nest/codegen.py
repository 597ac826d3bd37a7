"""
Manifest generation (parse result → manifest text).

generate() writes the modern syntax only, four spaces per level, in the order
global variables, constants, functions, commands. Parsing the output yields a
structurally equal result: literals are re-quoted, multi-line hooks become `|`
blocks, and directive modifiers are written back in a fixed order
(`hide`, then the OS scope, or `parallel` for depends).
"""
from .ast import DirectiveKind, HOOKS, ValueKind
from .utils import INDENT_SIZE

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
}


def quote(text, /):
    """double-quote text, escaping what unquote() resolves."""
    return '"%s"' % "".join(_ESCAPES.get(char, char) for char in text)


def literal(value, /):
    """source form of a Value."""
    match value.kind:
        case ValueKind.STRING:
            return quote(value.data)
        case ValueKind.BOOL | ValueKind.NUMBER:
            return value.render()
        case ValueKind.ARRAY:
            return "[%s]" % ", ".join(map(quote, value.data))
        case ValueKind.DYNAMIC:
            return "`%s`" % value.data


def parameter(parameter, /):
    if parameter.wildcard:
        return parameter.name + ("[%d]" % parameter.count if parameter.count else "")
    text = ("!" if parameter.named else "") + parameter.name
    if parameter.alias:
        text += "|" + parameter.alias
    text += ": " + parameter.type
    if parameter.default is not None:
        text += " = " + literal(parameter.default)
    return text


def signature(name, parameters, /):
    if not parameters:
        return name
    return "%s(%s)" % (name, ", ".join(map(parameter, parameters)))


def _call(dependency):
    if not dependency.args:
        return dependency.path
    return "%s(%s)" % (dependency.path, ", ".join("%s=%s" % (name, quote(value)) for name, value in dependency.args.items()))


def _block(key, body, depth):
    pad = " " * (INDENT_SIZE * depth)
    if "\n" not in body:
        return ["%s%s: %s" % (pad, key, body)]
    inner = " " * (INDENT_SIZE * (depth + 1))
    return ["%s%s: |" % (pad, key)] + [inner + line if line.strip() else "" for line in body.splitlines()]


def directive(directive, depth=1, /):
    """source lines of one directive at depth."""
    pad = " " * (INDENT_SIZE * depth)
    key = directive.kind.value
    if directive.hide:
        key += ".hide"

    match directive.kind:
        case kind if kind in HOOKS:
            if directive.os:
                key += "." + directive.os
            return _block(key, directive.value, depth)
        case DirectiveKind.ENV:
            return ["%s%s: %s=%s" % (pad, key, directive.name, quote(directive.value))]
        case DirectiveKind.ENV_FILE:
            return ["%s%s: %s" % (pad, key.replace("env_file", "env"), directive.value)]
        case DirectiveKind.DESC | DirectiveKind.CWD:
            return ["%s%s: %s" % (pad, key, quote(directive.value))]
        case DirectiveKind.REQUIRE_CONFIRM:
            return ["%s%s: %s" % (pad, key, quote(directive.value) if directive.value else "")]
        case DirectiveKind.DEPENDS:
            if directive.parallel:
                key += ".parallel"
            return ["%s%s: %s" % (pad, key, ", ".join(map(_call, directive.value)))]
        case DirectiveKind.PRIVILEGED:
            return ["%s%s: %s" % (pad, key, "true" if directive.value else "false")]
        case DirectiveKind.LOGS:
            return ["%s%s: %s %s" % (pad, key, directive.format, directive.value)]
        case DirectiveKind.IF | DirectiveKind.ELIF:
            return ["%s%s: %s" % (pad, key, directive.value)]
        case DirectiveKind.ELSE:
            return ["%s%s:" % (pad, key)]
        case DirectiveKind.VALIDATE:
            return ["%s%s: %s %s" % (pad, key, directive.name, directive.value)]
        case DirectiveKind.WATCH:
            return ["%s%s: %s" % (pad, key, ", ".join(map(quote, directive.value)))]


def command(node, depth=0, /):
    """source lines of node and its subtree."""
    pad = " " * (INDENT_SIZE * depth)
    inner = " " * (INDENT_SIZE * (depth + 1))
    lines = ["%s%s:" % (pad, signature(node.name, node.parameters))]
    lines += ["%svar %s = %s" % (inner, variable.name, literal(variable.value)) for variable in node.variables]
    lines += ["%sconst %s = %s" % (inner, constant.name, literal(constant.value)) for constant in node.constants]
    for item in node.directives:
        lines += directive(item, depth + 1)
    for child in node.children:
        lines.append("")
        lines += command(child, depth + 1)
    return lines


def function(function, /):
    inner = " " * INDENT_SIZE
    lines = ["function %s:" % signature(function.name, function.parameters)]
    lines += ["%svar %s = %s" % (inner, variable.name, literal(variable.value)) for variable in function.variables]
    lines += [inner + line if line.strip() else "" for line in function.body.splitlines()]
    return lines


def generate(commands=(), variables=(), constants=(), functions=(), /):
    """render a manifest; accepts the four parts of a ParseResult."""
    sections = []
    if variables:
        sections.append(["var %s = %s" % (variable.name, literal(variable.value)) for variable in variables])
    if constants:
        sections.append(["const %s = %s" % (constant.name, literal(constant.value)) for constant in constants])
    sections += [function(item) for item in functions]
    sections += [command(item) for item in commands]
    return "\n\n".join("\n".join(section) for section in sections) + "\n"


__all__ = (
    "generate",
)
