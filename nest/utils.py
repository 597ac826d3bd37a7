"""
Nest utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the parser, template processor and runtime.
- Public-but-internal leaning: stable enough for consumers, designed primarily
  to support the higher-level parser/runtime layers.

Overview
- UnsetType / Unset
  • Singleton sentinel to represent “value not provided” without conflating with None.
  • Falsey (bool(Unset) is False), printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, but preserve legitimate falsey values like None/0/"".

- ordinal(number)
  • Human-friendly ordinal label ("first", "second", "11th") for position-first messages.

- split(text, separator=",")
  • Quote- and nesting-aware splitter used by dependency lists, call arguments
    and parameter signatures.

- unquote(text)
  • Strip one level of matching quotes and resolve the common backslash escapes.

- indentation(line)
  • Depth of a manifest line in indentation units (4 spaces each).

Stability and contract
- Names not in __all__ are internal and may change without notice.
"""
import functools
from typing import final

INDENT_SIZE = 4


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    This is used when None is a legitimate user value, but the API needs a way
    to distinguish “not provided” from “provided as None”. A single instance,
    Unset, is exposed for use as the default in internal parameters.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0 or "" are preserved as-is; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth") for nicer phrasing.
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, 113th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def split(text, separator=",", /):
    """
    Split text on a separator that sits outside quotes and brackets.

    Parentheses and square brackets nest; single and double quotes protect their
    content (a backslash escapes the next character inside quotes). Pieces are
    stripped and empty pieces are dropped.

    Examples
    - split('a, b(x=1, y="2,3"), c') -> ['a', 'b(x=1, y="2,3")', 'c']
    """
    pieces = []
    current = []
    depth = 0
    quote = None
    escaped = False

    for char in text:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if quote:
            if char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            current.append(char)
            continue
        match char:
            case '"' | "'":
                quote = char
            case "(" | "[":
                depth += 1
            case ")" | "]":
                depth -= 1
            case _ if char == separator and depth == 0:
                if piece := "".join(current).strip():
                    pieces.append(piece)
                current.clear()
                continue
        current.append(char)

    if piece := "".join(current).strip():
        pieces.append(piece)
    return pieces


def unquote(text, /):
    """
    Strip one level of matching surrounding quotes and resolve escapes.

    Unquoted text is returned stripped but otherwise untouched.
    """
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        body = text[1:-1]
        result = []
        characters = iter(body)
        for char in characters:
            if char == "\\":
                following = next(characters, "")
                result.append({"n": "\n", "t": "\t"}.get(following, following))
            else:
                result.append(char)
        return "".join(result)
    return text


def indentation(line, /):
    """Return the indentation depth of a line in units of INDENT_SIZE spaces."""
    return (len(line) - len(line.lstrip(" "))) // INDENT_SIZE


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "ordinal",
    "split",
    "unquote",
    "indentation",
    "INDENT_SIZE",
)
