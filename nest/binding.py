"""
Command-line binding: route argv tokens to a command and map the rest onto its
signature.

Rules
- route() walks the merged tree: each leading token that names a child
  descends one level; the first token must name a top-level command.
- Named parameters (`!name`) are switches: `--name value`, `--name=value` or
  `-a value` through their alias. `bool` switches take no value (true) or an
  explicit `=true` / `=false`.
- Other parameters are positional, filled in declaration order. A wildcard
  takes every remaining positional, or exactly N of them when declared `*[N]`.
  `--` ends switch parsing.
- `num` values must be numbers, `bool` values true/false, and `arr` values are
  comma separated; repeated `arr` switches accumulate. Arrays are stored space
  separated, the way array values render in templates.
- Missing values fall back to literal defaults; dynamic defaults are left to
  the runtime, which evaluates them at execution time. Missing required
  parameters fault.

Faults lead with ordinals ("unknown option '--x' at third position").
"""
import difflib
from collections import deque

from .ast import ParamType, ValueKind
from .faults import *
from .utils import Unset, coalesce, ordinal, split


def route(commands, tokens, /):
    """
    (command, path, remaining tokens) for argv-like tokens.

    raises UnknownCommandError when the first token names no command.
    """
    tokens = list(tokens)
    if not tokens or tokens[0].startswith("-"):
        raise UnknownCommandError(
            "no command given",
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            hint="run 'nest --list' to see available commands",
            docs=getdoc(FaultCode.UNKNOWN_COMMAND),
        )

    names = [command.name for command in commands]
    command = next((command for command in commands if command.name == tokens[0]), None)
    if command is None:
        suggestions = difflib.get_close_matches(tokens[0], names, 5)
        try:
            hint = "did you mean %r? you can also run 'nest --list' to see available commands" % suggestions[0]
        except IndexError:
            hint = "run 'nest --list' to see available commands"
        raise UnknownCommandError(
            "unknown command %r at first position" % tokens[0],
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            input=tokens[0],
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_COMMAND),
        )

    path = [command.name]
    index = 1
    while index < len(tokens) and (child := command.child(tokens[index])) is not None:
        command = child
        path.append(child.name)
        index += 1
    return command, tuple(path), tokens[index:]


def _number(text):
    try:
        float(text)
    except ValueError:
        return False
    return True


def _coerce(parameter, value, position, *, label):
    match parameter.type:
        case ParamType.NUM:
            if not _number(value):
                raise InvalidValueError(
                    "%s at %s position expects a number, got %r" % (label, ordinal(position), value),
                    title="invalid value",
                    code=FaultCode.INVALID_VALUE,
                    input=value,
                    index=position,
                    hint="pass a number such as 1 or 2.5",
                    docs=getdoc(FaultCode.INVALID_VALUE),
                )
        case ParamType.BOOL:
            if value.lower() not in ("true", "false"):
                raise InvalidValueError(
                    "%s at %s position expects true or false, got %r" % (label, ordinal(position), value),
                    title="invalid value",
                    code=FaultCode.INVALID_VALUE,
                    input=value,
                    index=position,
                    hint="pass true or false",
                    docs=getdoc(FaultCode.INVALID_VALUE),
                )
            return value.lower()
        case ParamType.ARR:
            return " ".join(split(value))
    return value


def bind(command, tokens, /, *, path=Unset):
    """
    map tokens onto the signature of command and return the argument map.

    path only decorates messages (defaults to the command name).
    """
    target = " ".join(coalesce(path, (command.name,)))
    switches = {}
    for parameter in command.parameters:
        if parameter.named and not parameter.wildcard:
            switches["--" + parameter.name] = parameter
            if parameter.alias:
                switches["-" + parameter.alias] = parameter

    positionals = deque(parameter for parameter in command.parameters if not parameter.named)
    tokens = deque(tokens)
    args = {}
    captured = []
    position = 0
    literal = False

    def assign(parameter, values):
        args[parameter.key] = " ".join(values)
        if parameter.key != "*":
            args["*"] = args[parameter.key]

    while tokens:
        token = tokens.popleft()
        position += 1

        if token == "--" and not literal:
            literal = True
            continue

        greedy = positionals and positionals[0].wildcard
        if not literal and not greedy and token.startswith("-") and len(token) > 1 and not _number(token):
            name, equals, value = token.partition("=")
            if (parameter := switches.get(name)) is None:
                suggestions = difflib.get_close_matches(name, switches.keys(), 3)
                raise UnknownSwitchError(
                    "unknown option %r at %s position" % (name, ordinal(position)),
                    title="unknown option",
                    code=FaultCode.UNKNOWN_SWITCH,
                    input=name,
                    index=position,
                    suggestions=suggestions,
                    hint="did you mean %r?" % suggestions[0] if suggestions else "run 'nest --list' to see the signature of '%s'" % target,
                    docs=getdoc(FaultCode.UNKNOWN_SWITCH),
                )

            if parameter.key in args and parameter.type is not ParamType.ARR:
                raise DuplicatedArgumentError(
                    "option %r at %s position was already provided" % (name, ordinal(position)),
                    title="duplicated option",
                    code=FaultCode.DUPLICATED_ARGUMENT,
                    input=name,
                    index=position,
                    hint="pass %r only once" % name,
                    docs=getdoc(FaultCode.DUPLICATED_ARGUMENT),
                )

            if parameter.type is ParamType.BOOL and not equals:
                value = "true"
            elif not equals:
                if not tokens:
                    raise MissingValueError(
                        "option %r at %s position expects a value" % (name, ordinal(position)),
                        title="missing value",
                        code=FaultCode.MISSING_VALUE,
                        input=name,
                        index=position,
                        hint="pass it as %s VALUE or %s=VALUE" % (name, name),
                        docs=getdoc(FaultCode.MISSING_VALUE),
                    )
                value = tokens.popleft()
                position += 1

            value = _coerce(parameter, value, position, label="option %r" % name)
            if parameter.key in args:
                value = args[parameter.key] + " " + value
            args[parameter.key] = value
            continue

        if not positionals:
            raise UnexpectedArgumentError(
                "unexpected positional argument from %s position" % ordinal(position),
                title="unexpected positional",
                code=FaultCode.UNEXPECTED_ARGUMENT,
                input=token,
                index=position,
                hint="remove this extra value or run 'nest --list' to see the signature of '%s'" % target,
                docs=getdoc(FaultCode.UNEXPECTED_ARGUMENT),
            )

        parameter = positionals[0]
        if parameter.wildcard:
            captured.append(token)
            if parameter.count and len(captured) == parameter.count:
                assign(positionals.popleft(), captured)
                captured = []
            continue

        args[parameter.key] = _coerce(positionals.popleft(), token, position, label="positional argument")

    if positionals and positionals[0].wildcard:
        parameter = positionals.popleft()
        if parameter.count and len(captured) != parameter.count:
            raise NotEnoughValuesError(
                "%s expects exactly %d values, got %d" % (parameter.name, parameter.count, len(captured)),
                title="not enough values",
                code=FaultCode.NOT_ENOUGH_VALUES,
                expected=parameter.count,
                received=len(captured),
                hint="pass %d values for %s" % (parameter.count, parameter.name),
                docs=getdoc(FaultCode.NOT_ENOUGH_VALUES),
            )
        assign(parameter, captured)

    for parameter in command.parameters:
        if parameter.key in args or parameter.wildcard:
            continue
        if parameter.default is not None:
            if parameter.default.kind is not ValueKind.DYNAMIC:
                args[parameter.key] = parameter.default.render()
            continue
        if parameter.type is ParamType.BOOL and parameter.named:
            args[parameter.key] = "false"
            continue
        if parameter.named:
            message = "missing required option '--%s'" % parameter.name
        else:
            index = [item for item in command.parameters if not item.named].index(parameter) + 1
            message = "missing %s positional argument %r" % (ordinal(index), parameter.name)
        raise MissingArgumentError(
            message,
            title="missing argument",
            code=FaultCode.MISSING_ARGUMENT,
            input=parameter.name,
            hint="run 'nest --list' to see the signature of '%s'" % target,
            docs=getdoc(FaultCode.MISSING_ARGUMENT),
        )

    return args


__all__ = (
    "route",
    "bind",
)
