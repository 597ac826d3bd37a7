"""
Nest faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues
  (errors and warnings). Codes are grouped by domain to keep copy consistent
  and make logs/searches predictable.
- NestException / NestWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Line-first messages for manifest problems ("at line 12"), path-first
  messages for execution problems ("command 'build:web'").
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Execution failures carry a details table (path, args, cwd, script preview,
  exit code) that is rendered under the message.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- Library code raises the exceptions directly; the CLI calls trigger(fault, shell=True)
  so they are rendered via rich and the process exits with status 1.
- Warnings go through trigger() as well: printed in shell mode, otherwise
  emitted with warnings.warn() so hosts can filter them.
"""
import copy
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across nest (stable identifiers).

    grouping (by high-level domain)
    - parse (211xx)
      • UNEXPECTED_END_OF_FILE, INVALID_SYNTAX, INVALID_INDENT, DEPRECATED_SYNTAX,
        SUBSTITUTION_FAILED, MANIFEST_NOT_FOUND
    - execution (221xx)
      • MISSING_SCRIPT, SCRIPT_FAILED, HOOK_FAILED, CIRCULAR_DEPENDENCY,
        DEPENDENCY_NOT_FOUND, DEPENDENCY_FAILED, PRIVILEGE_REQUIRED,
        NO_MATCHING_CONDITION, ENV_FILE_FAILED, FUNCTION_FAILED
    - validation (231xx)
      • VALIDATION_FAILED, VALIDATION_TARGET_MISSING, INVALID_RULE
    - binding (241xx)
      • UNKNOWN_COMMAND, UNKNOWN_SWITCH, MISSING_VALUE, INVALID_VALUE,
        DUPLICATED_ARGUMENT, MISSING_ARGUMENT, UNEXPECTED_ARGUMENT, NOT_ENOUGH_VALUES
    - warnings (251xx)
      • LOG_FAILED, FINALLY_FAILED, SELF_CALL

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- parse errors (21xxx) ---
    UNEXPECTED_END_OF_FILE      = 21101
    INVALID_SYNTAX              = 21102
    INVALID_INDENT              = 21103
    DEPRECATED_SYNTAX           = 21104
    SUBSTITUTION_FAILED         = 21111
    MANIFEST_NOT_FOUND          = 21121

    # --- execution errors (22xxx) ---
    MISSING_SCRIPT              = 22101
    SCRIPT_FAILED               = 22102
    HOOK_FAILED                 = 22103
    CIRCULAR_DEPENDENCY         = 22111
    DEPENDENCY_NOT_FOUND        = 22112
    DEPENDENCY_FAILED           = 22113
    PRIVILEGE_REQUIRED          = 22121
    NO_MATCHING_CONDITION       = 22131
    ENV_FILE_FAILED             = 22141
    FUNCTION_FAILED             = 22151

    # --- validation errors (23xxx) ---
    VALIDATION_FAILED           = 23101
    VALIDATION_TARGET_MISSING   = 23102
    INVALID_RULE                = 23103

    # --- binding errors (24xxx) ---
    UNKNOWN_COMMAND             = 24101
    UNKNOWN_SWITCH              = 24111
    MISSING_VALUE               = 24112
    INVALID_VALUE               = 24113
    DUPLICATED_ARGUMENT         = 24114
    MISSING_ARGUMENT            = 24121
    UNEXPECTED_ARGUMENT         = 24122
    NOT_ENOUGH_VALUES           = 24123

    # --- warnings (25xxx) ---
    LOG_FAILED                  = 25101
    FINALLY_FAILED              = 25102
    SELF_CALL                   = 25103

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


_PALETTES = {
    "error": {
        "prog-name": "bold #E6E6F0",  # near-white program name
        "code": "bold #00E5FF",  # neon cyan fault code
        "title": "bold #FF4DA6",  # friendly pinky title
        "message": "#C8C8D0",  # soft light gray message
        "hint-arrow": "#9CE19C dim",  # gentle green arrow
        "hint": "italic #9CE19C",  # gentle green hint text
        "detail-label": "bold #6B6F7A",
        "detail-value": "#E6E6F0",
    },
    "warning": {
        "prog-name": "bold #E6E6F0",
        "code": "bold #FFB400",  # amber fault code for warnings
        "title": "bold #FFC2E0",  # softer pinky title for warnings
        "message": "#D6D6DE",
        "hint-arrow": "#B8EFAF dim",
        "hint": "italic #B8EFAF",
        "detail-label": "bold #6B6F7A",
        "detail-value": "#E6E6F0",
    },
}


def _render(fault, kind):
    """
    build the rich renderable shared by exceptions and warnings.

    layout
    - header: "[ prog — code | Title ]"
    - body: message, optional details grid (label → value), optional hint line.
    - fancy mode wraps the body in a Panel titled by the header.
    """
    main = __import__("__main__")
    options = fault.options
    colorful = options.get("colorful", True)
    fancy = options.get("fancy", True)

    styles = defaultdict(str, _PALETTES[kind] | getattr(main, "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prog = text(getattr(main, "__prog__", "nest"), styler("prog-name"))
    code = options.get("code")

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(code.normalize() if code else kind, styler("code")),
        " | ",
        text(options.get("title", kind).title(), styler("title")),
        " ]"
    )

    parts = [text(fault.message, styler("message"))]

    if details := options.get("details"):
        grid = Table.grid(padding=(0, 2))
        grid.add_column(no_wrap=True)
        grid.add_column()
        for label, value in details:
            grid.add_row(text(label, styler("detail-label")), text(value, styler("detail-value")))
        parts.append(grid)

    if hint := options.get("hint"):
        parts.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

    if fancy:
        width = console.width - 4
        try:
            width = int(width * options["ratio"])
        except KeyError:
            width = None
        return Panel(Group(*parts), title=header, title_align="left", width=width)

    return Group(header, *parts)


class NestException(Exception):
    """
    base class for every error nest reports.

    message is the one-sentence body; options hold rendering context
    (title, code, hint, details, shell, fancy, colorful) and any payload the
    raiser wants to expose (line, path, exit_code, errors, ...).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _render(self, "error")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseError(NestException):
    """manifest problems; every instance knows the 1-based line it refers to."""

    @property
    def line(self):
        return self.options.get("line", 0)


class UnexpectedEndOfFileError(ParseError): ...
class InvalidSyntaxError(ParseError): ...
class InvalidIndentError(ParseError): ...
class DeprecatedSyntaxError(ParseError): ...
class SubstitutionError(InvalidSyntaxError): ...
class ManifestNotFoundError(ParseError): ...


class ExecutionError(NestException):
    @property
    def exit_code(self):
        return self.options.get("exit_code", 1)


class MissingScriptError(ExecutionError): ...
class ScriptFailedError(ExecutionError): ...
class HookError(ExecutionError): ...
class CircularDependencyError(ExecutionError): ...
class DependencyNotFoundError(ExecutionError): ...
class DependencyError(ExecutionError): ...
class PrivilegeError(ExecutionError): ...
class NoMatchingConditionError(ExecutionError): ...
class EnvFileError(ExecutionError): ...
class FunctionError(ExecutionError): ...


class ValidationError(NestException): ...
class ValidationTargetError(ValidationError): ...
class InvalidRuleError(ValidationError): ...


class BindingError(NestException): ...
class UnknownCommandError(BindingError): ...
class UnknownSwitchError(BindingError): ...
class MissingValueError(BindingError): ...
class InvalidValueError(BindingError): ...
class DuplicatedArgumentError(BindingError): ...
class MissingArgumentError(BindingError): ...
class UnexpectedArgumentError(BindingError): ...
class NotEnoughValuesError(BindingError): ...


class NestWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _render(self, "warning")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            return warnings.warn(self, stacklevel=3)
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class LogWriteWarning(NestWarning): ...
class FinallyFailedWarning(NestWarning): ...
class SelfCallWarning(NestWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are
      raised and warnings go through the warnings module.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "NestException",
    "ParseError",
    "UnexpectedEndOfFileError",
    "InvalidSyntaxError",
    "InvalidIndentError",
    "DeprecatedSyntaxError",
    "SubstitutionError",
    "ManifestNotFoundError",
    "ExecutionError",
    "MissingScriptError",
    "ScriptFailedError",
    "HookError",
    "CircularDependencyError",
    "DependencyNotFoundError",
    "DependencyError",
    "PrivilegeError",
    "NoMatchingConditionError",
    "EnvFileError",
    "FunctionError",
    "ValidationError",
    "ValidationTargetError",
    "InvalidRuleError",
    "BindingError",
    "UnknownCommandError",
    "UnknownSwitchError",
    "MissingValueError",
    "InvalidValueError",
    "DuplicatedArgumentError",
    "MissingArgumentError",
    "UnexpectedArgumentError",
    "NotEnoughValuesError",
    "NestWarning",
    "LogWriteWarning",
    "FinallyFailedWarning",
    "SelfCallWarning",
    "trigger",
    "getdoc",
    "console",
)
