r"""
Nest manifest parser (text → commands, variables, constants, functions).

Overview
- Parser walks the manifest line by line; one indentation unit is 4 spaces and
  every construct is delimited by depth (a body is every line deeper than its
  header, ending at the first non-blank line at the header depth or above).
- At any scope the recognized forms are, in order:
  • `# @source: <path>` marker comments (set the source file of later definitions)
  • blank lines and `#` comments
  • `var NAME = value`, `const NAME = value`, `env NAME = value`, `env <path>`
  • `function NAME(params):` (top level only)
  • `key[.modifier...]: value` directives (inside commands)
  • command headers `name(params):` or `name:`; signatures may span lines while
    their parenthesis group is open.
- Retired forms (`> directive`, `@var`, `@const`, `@function`) fail with
  DeprecatedSyntaxError and a hint showing the modern spelling.

Values
- parse_value() types a literal: quoted string, true/false, [..]/(..) arrays,
  numbers, `backtick` dynamic expressions, otherwise a bare string.
- Every literal first goes through substitute(): each `$(...)` span is
  replaced by the trimmed stdout of running it through the platform shell.
  This is a genuine parse-time side effect; pass a fake executor to stay pure.

Calls
- parse_dependencies() and parse_call() share one grammar:
  `[group:]name[(arg=value, ...)]` with quote- and depth-aware splitting.
- parse_call() additionally rejects shell-looking lines (metacharacters outside
  a balanced call form, or a leading shell keyword) so scripts can mix calls
  with plain shell text.

Errors
- UnexpectedEndOfFileError, InvalidSyntaxError, InvalidIndentError and
  DeprecatedSyntaxError, all carrying the 1-based line number in options["line"].
"""
import re
from pathlib import Path

from .ast import *
from .environment import load
from .executor import capture
from .faults import *
from .utils import *

DIRECTIVES = frozenset(kind.value for kind in DirectiveKind) - {DirectiveKind.ENV_FILE.value}

PLATFORMS = frozenset({
    "linux",
    "macos",
    "windows",
    "unix",
    "bsd",
    "freebsd",
    "openbsd",
    "netbsd",
    "dragonfly",
    "android",
    "solaris",
})

SHELL_OPERATORS = ("|", "&&", "||", ";", ">", "<", ">>", "<<", "&", "$", "`", "[", "]", "=")

SHELL_KEYWORDS = frozenset({
    "if", "then", "else", "elif", "fi", "case", "esac", "for", "while", "until", "do", "done", "function",
})

_NAME = r"[A-Za-z_][\w-]*"
_ASSIGNMENT = re.compile(rf"^(?P<keyword>var|const|env)\s+(?P<name>{_NAME})\s*=\s*(?P<value>.*)$")
_ENV_FILE = re.compile(r"^env\s+(?P<path>[^=\s].*)$")
_DIRECTIVE = re.compile(r"^(?P<key>[a-z_]+)(?P<modifiers>(?:\.[a-z0-9_]+)*)\s*:(?P<value>.*)$")
_HEADER = re.compile(rf"^(?P<name>{_NAME})\s*(?:\((?P<params>.*)\))?\s*:$")
_WILDCARD = re.compile(r"^\*(?P<name>[A-Za-z_]\w*)?(?P<size>\[.*)?$")
_PARAMETER = re.compile(rf"^(?P<named>!)?(?P<name>{_NAME})(?:\|(?P<alias>[^:\s]*))?$")
_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_VALIDATE = re.compile(r"^(?P<target>\$?[\w-]+)\s+(?P<rule>(?:matches|in)\s+.+)$")
_PATH = re.compile(r"^[\w-]+(?::[\w-]+)*$")


class Parser:
    """
    Stateful, single-use manifest parser.

    Parameters
    - text: the whole manifest (already flattened by the include layer).
    - executor: callable(command) -> CompletedProcess-like object with
      returncode/stdout/stderr, used for `$(...)` substitution. Defaults to
      running the platform shell.
    - source: path of the manifest, used until a `# @source:` marker overrides it.
    """

    def __init__(self, text, /, *, executor=Unset, source=None):
        self._lines = text.splitlines()
        self._index = 0
        self._executor = coalesce(executor, capture)
        self._source = Path(source) if source else None

    # --- entry point ---

    def parse(self):
        """parse the whole manifest and return a ParseResult."""
        commands = []
        variables = []
        constants = []
        functions = []

        while self._index < len(self._lines):
            line = self._lines[self._index]
            stripped = line.strip()

            if self._marker(stripped) or not stripped or stripped.startswith("#"):
                self._index += 1
                continue

            self._deprecated(stripped)

            if indentation(line):
                raise self._fault(InvalidIndentError, "unexpected indentation at top level", hint="top-level definitions start at column 0")

            if match := _ASSIGNMENT.match(stripped):
                value = self.parse_value(match["value"])
                match match["keyword"]:
                    case "const":
                        if any(constant.name == match["name"] for constant in constants):
                            raise self._fault(InvalidSyntaxError, "Constant '%s' is already defined and cannot be redefined" % match["name"])
                        constants.append(Constant(match["name"], value))
                    case _:
                        _redefine(variables, Variable(match["name"], value))
                self._index += 1
            elif match := _ENV_FILE.match(stripped):
                for name, value in self._environment(match["path"]).items():
                    _redefine(variables, Variable(name, Value.string(value)))
                self._index += 1
            elif stripped.startswith("function "):
                functions.append(self._parse_function())
            elif self._is_header(stripped):
                commands.append(self._parse_command(0))
            else:
                raise self._fault(
                    InvalidSyntaxError,
                    "unexpected line %r" % stripped,
                    hint="expected a command header, var, const, env or function definition",
                )

        return ParseResult(commands, variables, constants, functions)

    # --- helpers shared by every scope ---

    @property
    def line(self):
        """1-based number of the line under the cursor."""
        return min(self._index, max(len(self._lines) - 1, 0)) + 1

    def _fault(self, cls, message, /, *, hint=Unset, line=Unset):
        code = {
            UnexpectedEndOfFileError: FaultCode.UNEXPECTED_END_OF_FILE,
            InvalidIndentError: FaultCode.INVALID_INDENT,
            DeprecatedSyntaxError: FaultCode.DEPRECATED_SYNTAX,
            SubstitutionError: FaultCode.SUBSTITUTION_FAILED,
        }.get(cls, FaultCode.INVALID_SYNTAX)
        title = re.sub(r"(?<!^)(?=[A-Z])", " ", cls.__name__.removesuffix("Error")).lower()
        return cls(
            message,
            title=title,
            code=code,
            line=coalesce(line, self.line),
            hint=coalesce(hint, "check the manifest near line %d" % coalesce(line, self.line)),
            docs=getdoc(code),
        )

    def _marker(self, stripped):
        if stripped.startswith("# @source:"):
            if path := stripped.removeprefix("# @source:").strip():
                self._source = Path(path)
            return True
        return False

    def _deprecated(self, stripped):
        if stripped.startswith(">"):
            modern = stripped[1:].strip()
            raise self._fault(
                DeprecatedSyntaxError,
                "the '>' directive prefix is no longer supported",
                hint="write %r without the leading '>'" % modern,
            )
        if match := re.match(r"^@(var|const|function)\b(.*)$", stripped):
            raise self._fault(
                DeprecatedSyntaxError,
                "'@%s' is no longer supported" % match[1],
                hint="write %r instead" % (match[1] + match[2]),
            )

    def _is_header(self, stripped):
        stripped = _strip_comment(stripped)
        if _DIRECTIVE.match(stripped) and _DIRECTIVE.match(stripped)["key"] in DIRECTIVES:
            return False
        if "(" in stripped:
            return bool(re.match(rf"^{_NAME}\s*\(", stripped))
        return bool(_HEADER.match(stripped))

    def _environment(self, path):
        path = unquote(path)
        if self._source and not Path(path).is_absolute():
            path = self._source.parent / path
        return load(path)

    # --- values ---

    def substitute(self, text, /):
        """
        replace every `$(...)` span with the trimmed stdout of running it.

        quotes inside the span protect parentheses; nested `$(...)` are part
        of the outer command and left to the shell.
        """
        if "$(" not in text:
            return text

        result = []
        index = 0
        while (start := text.find("$(", index)) != -1:
            result.append(text[index:start])
            depth = 0
            quote = None
            end = None
            for cursor in range(start + 1, len(text)):
                char = text[cursor]
                if quote:
                    if char == quote and text[cursor - 1] != "\\":
                        quote = None
                elif char in "\"'":
                    quote = char
                elif char == "(":
                    depth += 1
                elif char == ")":
                    depth -= 1
                    if not depth:
                        end = cursor
                        break
            if end is None:
                raise self._fault(InvalidSyntaxError, "unclosed command substitution in %r" % text, hint="add the missing ')'")

            command = text[start + 2:end]
            completed = self._executor(command)
            if completed.returncode:
                raise self._fault(
                    SubstitutionError,
                    "Command '%s' failed with exit code %d: %s" % (command, completed.returncode, (completed.stderr or "").strip()),
                    hint="run the command by hand to see why it fails",
                )
            result.append((completed.stdout or "").strip())
            index = end + 1

        result.append(text[index:])
        return "".join(result)

    def parse_value(self, text, /):
        """type a literal after command substitution."""
        text = text.strip()
        if len(text) >= 2 and text[0] == text[-1] == "`":
            return Value.dynamic(text[1:-1])

        text = self.substitute(text)

        if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
            return Value.string(unquote(text))
        if text in ("true", "false"):
            return Value.bool(text == "true")
        if len(text) >= 2 and (text[0], text[-1]) in (("[", "]"), ("(", ")")):
            return Value.array(item for item in map(unquote, split(text[1:-1])) if item)
        if _NUMBER.match(text):
            return Value.number(text)
        return Value.string(text)

    # --- signatures ---

    def _signature(self, depth, keyword=""):
        """
        read a header (possibly multi-line) and return (name, parameters).

        keyword is a leading word to drop (e.g. "function"); the cursor ends on
        the first line after the header.
        """
        start = self._index
        stripped = _strip_comment(self._lines[self._index].strip()).removeprefix(keyword).strip()

        if "(" in stripped and stripped.count("(") > stripped.count(")"):
            joined = stripped
            balance = stripped.count("(") - stripped.count(")")
            while balance > 0:
                self._index += 1
                if self._index >= len(self._lines):
                    raise self._fault(UnexpectedEndOfFileError, "Missing closing parenthesis in function signature", line=start + 1)
                line = self._lines[self._index]
                piece = _strip_comment(line.strip())
                if not piece:
                    continue
                if indentation(line) <= depth and not piece.startswith(")"):
                    raise self._fault(InvalidSyntaxError, "Missing closing parenthesis in function signature", line=start + 1)
                balance += piece.count("(") - piece.count(")")
                if joined.endswith(("(", ",")) or piece.startswith(")"):
                    joined += " " + piece
                else:
                    joined += ", " + piece
            stripped = joined

        self._index += 1

        stripped = re.sub(r"\(\s+", "(", stripped)
        stripped = re.sub(r",?\s*\)\s*:$", "):", stripped)
        if not (match := _HEADER.match(stripped)):
            raise self._fault(
                InvalidSyntaxError,
                "malformed header %r" % stripped,
                hint="headers look like 'name(param: str):' or 'name:'",
                line=start + 1,
            )
        return match["name"], self.parse_parameters(match["params"] or "", line=start + 1)

    def parse_parameters(self, text, /, *, line=Unset):
        """parse a comma separated parameter list."""
        parameters = []
        for piece in split(text):
            parameter = self._parameter(piece, line)
            if parameter.wildcard and parameters and parameters[-1].wildcard:
                raise self._fault(InvalidSyntaxError, "Wildcard parameters cannot be adjacent", line=line)
            if any(other.name == parameter.name for other in parameters):
                raise self._fault(InvalidSyntaxError, "Duplicate parameter name: %s" % parameter.name, line=line)
            parameters.append(parameter)
        return parameters

    def _parameter(self, text, line):
        text = text.strip()

        if text.startswith("*"):
            if ":" in text or "=" in text:
                raise self._fault(InvalidSyntaxError, "Wildcard parameter %r cannot have a type or a default" % text, line=line)
            if not (match := _WILDCARD.match(text)):
                raise self._fault(InvalidSyntaxError, "Invalid wildcard parameter: %s" % text, line=line)
            count = None
            if size := match["size"]:
                if not size.endswith("]"):
                    raise self._fault(InvalidSyntaxError, "Wildcard parameter %r is missing ']'" % text, line=line)
                if not (size := size[1:-1].strip()):
                    raise self._fault(InvalidSyntaxError, "Wildcard parameter size cannot be empty", line=line)
                try:
                    count = int(size)
                except ValueError:
                    raise self._fault(InvalidSyntaxError, "Invalid wildcard parameter size: %s" % size, line=line) from None
                if count < 1:
                    raise self._fault(InvalidSyntaxError, "Wildcard parameter size must be at least 1", line=line)
            return Parameter.star(match["name"], count)

        head, colon, tail = text.partition(":")
        if not colon:
            raise self._fault(
                InvalidSyntaxError,
                "Missing type annotation. Expected format: [!]name|alias: type [= default]",
                hint="annotate %r with one of str, bool, num or arr" % text,
                line=line,
            )
        if not (match := _PARAMETER.match(head.strip())):
            raise self._fault(InvalidSyntaxError, "Invalid parameter name: %s" % head.strip(), line=line)
        if match["alias"] is not None and len(match["alias"]) != 1:
            raise self._fault(InvalidSyntaxError, "Parameter alias must be a single character: %r" % match["alias"], line=line)

        annotation, equals, default = tail.partition("=")
        try:
            type = ParamType(annotation.strip())
        except ValueError:
            raise self._fault(
                InvalidSyntaxError,
                "Unknown parameter type: %s" % annotation.strip(),
                hint="use one of str, bool, num or arr",
                line=line,
            ) from None

        return Parameter(
            match["name"],
            type,
            alias=match["alias"],
            default=self.parse_value(default) if equals else None,
            named=bool(match["named"]),
        )

    # --- definitions ---

    def _parse_function(self):
        depth = indentation(self._lines[self._index])
        name, parameters = self._signature(depth, "function")

        body = []
        variables = []
        while self._index < len(self._lines):
            line = self._lines[self._index]
            stripped = line.strip()
            if stripped and indentation(line) <= depth:
                break
            if stripped.startswith("#") or not stripped:
                self._index += 1
                continue
            self._deprecated(stripped)
            if (match := _ASSIGNMENT.match(stripped)) and match["keyword"] == "var":
                _redefine(variables, Variable(match["name"], self.parse_value(match["value"])))
            else:
                body.append(line[INDENT_SIZE * (depth + 1):] if indentation(line) > depth else stripped)
            self._index += 1

        return Function(name, parameters, "\n".join(body), variables)

    def _parse_command(self, depth):
        if self._index >= len(self._lines):
            raise self._fault(UnexpectedEndOfFileError, "expected a command definition")

        line = self._lines[self._index]
        if indentation(line) < depth:
            raise self._fault(InvalidIndentError, "command is indented less than its scope")
        depth = indentation(line)
        name, parameters = self._signature(depth)

        directives = []
        children = []
        variables = []
        constants = []
        source = self._source

        while self._index < len(self._lines):
            line = self._lines[self._index]
            stripped = line.strip()

            if stripped and indentation(line) <= depth:
                break
            if self._marker(stripped) or not stripped or stripped.startswith("#"):
                self._index += 1
                continue

            self._deprecated(stripped)

            if indentation(line) > depth + 1:
                raise self._fault(InvalidIndentError, "line is indented deeper than expected", hint="indent body lines by exactly one level (4 spaces)")

            if match := _ASSIGNMENT.match(stripped):
                match match["keyword"]:
                    case "var":
                        _redefine(variables, Variable(match["name"], self.parse_value(match["value"])))
                    case "const":
                        if any(constant.name == match["name"] for constant in constants):
                            raise self._fault(
                                InvalidSyntaxError,
                                "Constant '%s' is already defined in this command and cannot be redefined" % match["name"],
                            )
                        constants.append(Constant(match["name"], self.parse_value(match["value"])))
                    case "env":
                        directives.append(Directive(DirectiveKind.ENV, self.parse_value(match["value"]).render(), name=match["name"]))
                self._index += 1
            elif match := _ENV_FILE.match(stripped):
                directives.append(Directive(DirectiveKind.ENV_FILE, unquote(match["path"])))
                self._index += 1
            elif stripped.startswith("function "):
                raise self._fault(InvalidSyntaxError, "functions can only be defined at the top level")
            elif stripped == "privileged":
                directives.append(Directive(DirectiveKind.PRIVILEGED, True))
                self._index += 1
            elif (match := _DIRECTIVE.match(stripped)) and match["key"] in DIRECTIVES:
                directives.append(self._directive(match, depth + 1))
            elif self._is_header(stripped):
                children.append(self._parse_command(depth + 1))
            elif match:
                raise self._fault(
                    InvalidSyntaxError,
                    "Unknown directive: %s" % match["key"],
                    hint="known directives are %s" % ", ".join(sorted(DIRECTIVES)),
                )
            else:
                raise self._fault(InvalidSyntaxError, "unexpected line %r" % stripped, hint="expected a directive, a variable or a child command")

        return Command(name, parameters, directives, children, variables, constants, source)

    # --- directives ---

    def _directive(self, match, depth):
        key = DirectiveKind(match["key"])
        modifiers = [modifier for modifier in match["modifiers"].split(".") if modifier]
        value = match["value"].strip()

        hide = False
        parallel = False
        os = None
        for modifier in modifiers:
            if modifier == "hide" and (key in HOOKS or key is DirectiveKind.ENV):
                hide = True
            elif modifier == "parallel" and key is DirectiveKind.DEPENDS:
                parallel = True
            elif modifier in PLATFORMS and key in HOOKS and os is None:
                os = modifier
            else:
                raise self._fault(InvalidSyntaxError, "Unknown modifier '%s' for directive '%s'" % (modifier, key))

        if key in HOOKS:
            if not value:
                raise self._fault(InvalidSyntaxError, "'%s' needs a script, or '|' to open a block" % key)
            if value == "|":
                return Directive(key, self._block(depth), hide=hide, os=os)
            self._single_line(key, depth)
            self._index += 1
            return Directive(key, value, hide=hide, os=os)

        self._index += 1

        match key:
            case DirectiveKind.DESC | DirectiveKind.CWD:
                return Directive(key, unquote(value))
            case DirectiveKind.ENV:
                name, equals, assigned = value.partition("=")
                if equals and re.fullmatch(_NAME, name.strip()):
                    return Directive(key, self.parse_value(assigned).render(), name=name.strip(), hide=hide)
                if not value:
                    raise self._fault(InvalidSyntaxError, "env directive needs NAME=value or a file path")
                return Directive(DirectiveKind.ENV_FILE, unquote(value), hide=hide)
            case DirectiveKind.DEPENDS:
                return Directive(key, self.parse_dependencies(value), parallel=parallel)
            case DirectiveKind.PRIVILEGED:
                match value.lower():
                    case "" | "true" | "1" | "yes":
                        return Directive(key, True)
                    case "false" | "0" | "no":
                        return Directive(key, False)
                    case _:
                        raise self._fault(InvalidSyntaxError, "Invalid privileged value: %s. Expected true or false" % value)
            case DirectiveKind.LOGS:
                format, _, path = value.partition(" ")
                if not path.strip():
                    raise self._fault(
                        InvalidSyntaxError,
                        "Invalid logs directive format. Expected: logs: json <path> or logs: txt <path>, got: %s" % value,
                    )
                if format.lower() not in ("json", "txt"):
                    raise self._fault(InvalidSyntaxError, "Invalid logs format: %s. Expected 'json' or 'txt'" % format)
                return Directive(key, unquote(path), format=format.lower())
            case DirectiveKind.REQUIRE_CONFIRM:
                return Directive(key, unquote(value))
            case DirectiveKind.IF | DirectiveKind.ELIF:
                if not value:
                    raise self._fault(InvalidSyntaxError, "'%s' needs a condition" % key)
                return Directive(key, value)
            case DirectiveKind.ELSE:
                if value:
                    raise self._fault(InvalidSyntaxError, "'else' does not take a condition")
                return Directive(key)
            case DirectiveKind.VALIDATE:
                if not (rule := _VALIDATE.match(value)):
                    raise self._fault(
                        InvalidSyntaxError,
                        "Invalid validate directive: %s" % value,
                        hint="use 'validate: name matches /regex/' or 'validate: name in [a, b]'",
                    )
                return Directive(key, rule["rule"].strip(), name=rule["target"])
            case DirectiveKind.WATCH:
                return Directive(key, tuple(item for item in map(unquote, split(value)) if item))

    def _single_line(self, key, depth):
        following = self._index + 1
        if following < len(self._lines):
            line = self._lines[following]
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and indentation(line) > depth:
                raise self._fault(
                    InvalidSyntaxError,
                    "Multiline script detected but missing '|' after '%s:'. "
                    "Add '|' for multiline scripts or put script content on the same line." % key,
                )

    def _block(self, depth):
        """collect the lines of a `|` block opened by a directive at depth."""
        start = self._index + 1
        self._index += 1
        base = depth * INDENT_SIZE
        lines = []

        while self._index < len(self._lines):
            line = self._lines[self._index]
            stripped = line.strip()
            if stripped and indentation(line) <= depth:
                break
            if not stripped and len(line) == base and base:
                break
            lines.append(line[base + INDENT_SIZE:] if len(line) > base + INDENT_SIZE else stripped)
            self._index += 1

        while lines and not lines[-1].strip():
            lines.pop()

        if not lines:
            raise self._fault(
                InvalidSyntaxError,
                "Multiline script block is empty. Add script content after '|' or use single-line format without '|'.",
                line=start,
            )
        return "\n".join(lines)

    # --- calls ---

    def parse_dependencies(self, text, /):
        """parse `a, b(x=1), group:c` into Dependency nodes."""
        dependencies = []
        for item in split(text):
            path, args, _ = self._call(item, strict=True)
            dependencies.append(Dependency(path, args))
        return tuple(dependencies)

    def _call(self, text, *, strict):
        text = text.strip()
        if "(" not in text:
            if not _PATH.match(text):
                if strict:
                    raise self._fault(InvalidSyntaxError, "Invalid dependency name: %s" % text)
                return None
            return text, {}, []

        path, _, rest = text.partition("(")
        path = path.strip()
        if not rest.rstrip().endswith(")"):
            if strict:
                raise self._fault(InvalidSyntaxError, "Unclosed parenthesis in dependency: %s" % text)
            return None
        if not _PATH.match(path):
            if strict:
                raise self._fault(InvalidSyntaxError, "Invalid dependency name: %s" % path)
            return None

        args = {}
        positionals = []
        for piece in split(rest.rstrip()[:-1]):
            name, equals, value = piece.partition("=")
            if not equals or not re.fullmatch(_NAME, name.strip()):
                if strict:
                    raise self._fault(
                        InvalidSyntaxError,
                        "Invalid argument %r in %r (expected name=value)" % (piece, text),
                    )
                positionals.append(unquote(piece))
                continue
            args[name.strip()] = unquote(value)
        return path, args, positionals


def _strip_comment(text):
    """drop an inline `#` comment that sits outside quotes."""
    quote = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#" and (not index or text[index - 1].isspace()):
            return text[:index].rstrip()
    return text


def _redefine(scope, variable):
    """latest definition wins: drop the previous binding and append."""
    scope[:] = [existing for existing in scope if existing.name != variable.name]
    scope.append(variable)


def parse(text, /, *, executor=Unset, source=None):
    """parse manifest text; see Parser for the parameters."""
    return Parser(text, executor=executor, source=source).parse()


def parse_value(text, /, *, executor=Unset):
    """type a single literal (with `$(...)` substitution)."""
    return Parser("", executor=executor).parse_value(text)


def parse_dependencies(text, /):
    """parse a dependency list; raises InvalidSyntaxError on malformed items."""
    return Parser("").parse_dependencies(text)


def parse_call(line, /):
    """
    recognize a script line that calls a command or function.

    returns (path, args, positionals) or None when the line is plain shell text.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    call = "(" in stripped and stripped.endswith(")")
    if not call and any(operator in stripped for operator in SHELL_OPERATORS):
        return None
    if stripped.split(maxsplit=1)[0].split("(", 1)[0] in SHELL_KEYWORDS:
        return None

    return Parser("")._call(stripped, strict=False)


__all__ = (
    "Parser",
    "parse",
    "parse_value",
    "parse_dependencies",
    "parse_call",
    "DIRECTIVES",
    "PLATFORMS",
)
