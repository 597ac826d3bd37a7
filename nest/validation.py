"""
Argument validation (`validate:` directives).

A rule is `target matches /regex/flags` or `target in [a, b, c]`.

- target: an argument name, or `$NAME` which reads the session environment,
  then the OS environment, then inherited and global variables (the caller
  supplies that lookup).
- regex flags: i (ignore case), m (multiline), s (dot matches newline), x
  (verbose). A pattern not wrapped in slashes is compiled as-is.

check() verifies every rule and raises a single ValidationError listing all
failures; a missing target raises ValidationTargetError.
"""
import re

from .faults import FaultCode, InvalidRuleError, ValidationError, ValidationTargetError, getdoc
from .utils import split, unquote

_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def pattern(text, /):
    """compile `/regex/flags` (or a bare regex) into a pattern object."""
    text = text.strip()
    if match := re.fullmatch(r"/(?P<body>.*)/(?P<flags>[a-z]*)", text, re.DOTALL):
        flags = 0
        for flag in match["flags"]:
            try:
                flags |= _FLAGS[flag]
            except KeyError:
                raise _rule("unknown regex flag %r in %r" % (flag, text)) from None
        source = match["body"]
    else:
        flags = 0
        source = text
    try:
        return re.compile(source, flags)
    except re.error as error:
        raise _rule("invalid regex %r: %s" % (text, error)) from None


def _rule(message):
    return InvalidRuleError(
        message,
        title="invalid validation rule",
        code=FaultCode.INVALID_RULE,
        hint="use 'validate: name matches /regex/flags' or 'validate: name in [a, b]'",
        docs=getdoc(FaultCode.INVALID_RULE),
    )


def verify(value, rule, /):
    """return None when value satisfies rule, otherwise the failure reason."""
    keyword, _, operand = rule.strip().partition(" ")
    operand = operand.strip()
    match keyword:
        case "matches":
            if pattern(operand).search(value) is None:
                return "does not match pattern '%s'" % operand
            return None
        case "in":
            body = operand[1:-1] if operand[:1] in "[(" and operand[-1:] in "])" else operand
            allowed = [unquote(item) for item in split(body)]
            if value not in allowed:
                return "is not in allowed list [%s]" % ", ".join(allowed)
            return None
    raise _rule("unknown validation rule %r" % rule)


def check(rules, /, *, path, args, lookup=None):
    """
    verify every (target, rule) pair for the command at path.

    lookup(name) resolves `$NAME` targets and returns None when unknown.
    """
    command = ":".join(path)
    failures = []

    for target, rule in rules:
        if target.startswith("$"):
            value = lookup(target[1:]) if lookup else None
        else:
            value = args.get(target)
        if value is None:
            raise ValidationTargetError(
                "Validation error in command '%s': target '%s' not found in arguments or environment" % (command, target),
                title="validation target",
                code=FaultCode.VALIDATION_TARGET_MISSING,
                path=path,
                target=target,
                hint="pass %r or remove the validate rule" % target,
                docs=getdoc(FaultCode.VALIDATION_TARGET_MISSING),
            )
        if reason := verify(str(value), rule):
            failures.append("Validation error in command '%s': Parameter '%s' with value '%s' %s" % (command, target.lstrip("$"), value, reason))

    if failures:
        raise ValidationError(
            "\n".join(failures),
            title="validation failed",
            code=FaultCode.VALIDATION_FAILED,
            path=path,
            failures=tuple(failures),
            hint="check the values passed to '%s'" % command,
            docs=getdoc(FaultCode.VALIDATION_FAILED),
        )


__all__ = (
    "check",
    "verify",
    "pattern",
)
