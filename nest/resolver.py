"""
Directive resolution for one command.

Overview
- DirectiveResolver wraps a command's directive list and answers "which
  directive applies here" questions. It is stateless beyond the list and the
  platform name it was built for.
- Precedence: an OS-scoped directive that matches the running platform
  (exact name, or the `unix` / `bsd` families) scores 2, an unscoped directive
  scores 1, a non-matching scoped one is ignored. The highest score wins and
  ties keep the first one seen.
- Conditional scripts: `if`/`elif`/`else` directives each claim the next script
  directive. Claimed scripts never take part in plain script resolution;
  script() evaluates the branches in order instead.

Accessors
- get(kind), value(kind), hook(kind) -> (body, hide)
- depends() -> (dependencies, parallel), privileged(), confirm(), logs(),
  validations(), environment(), watch(), script(evaluate)
"""
import sys

from .ast import DirectiveKind
from .faults import FaultCode, NoMatchingConditionError, getdoc
from .utils import Unset, coalesce

CONDITIONS = (DirectiveKind.IF, DirectiveKind.ELIF, DirectiveKind.ELSE)


def system(platform=Unset, /):
    """normalized name of the running platform (linux, macos, windows, freebsd, ...)."""
    platform = coalesce(platform, sys.platform).lower()
    if platform.startswith("linux"):
        return "linux"
    if platform == "darwin":
        return "macos"
    if platform.startswith(("win", "cygwin", "msys")):
        return "windows"
    for name in ("freebsd", "openbsd", "netbsd", "dragonfly"):
        if platform.startswith(name):
            return name
    if platform.startswith("sunos"):
        return "solaris"
    return platform


def score(os, current, /):
    """0 when the scope excludes current, 1 when unscoped, 2 when it matches."""
    if os is None:
        return 1
    os = os.lower()
    if os == current:
        return 2
    if os == "unix" and current != "windows":
        return 2
    if os == "bsd" and "bsd" in current:
        return 2
    return 0


class DirectiveResolver:
    def __init__(self, directives, /, *, platform=Unset):
        self.directives = tuple(directives)
        self.system = system(platform)
        self._claimed, self._branches = _pair(self.directives)

    def get(self, kind, /):
        """best directive of kind for the running platform, or None."""
        best = None
        rank = 0
        for index, directive in enumerate(self.directives):
            if directive.kind != kind or index in self._claimed:
                continue
            if (current := score(directive.os, self.system)) > rank:
                best, rank = directive, current
        return best

    def value(self, kind, /, default=None):
        directive = self.get(kind)
        return directive.value if directive is not None else default

    def hook(self, kind, /):
        """(body, hide) of the best hook directive of kind, or None."""
        directive = self.get(kind)
        return (directive.value, directive.hide) if directive is not None else None

    def depends(self):
        """(dependencies, parallel) of the first depends directive; ((), False) without one."""
        directive = self.get(DirectiveKind.DEPENDS)
        return (directive.value, directive.parallel) if directive is not None else ((), False)

    def privileged(self):
        return bool(self.value(DirectiveKind.PRIVILEGED, False))

    def confirm(self):
        """confirmation message ("" for the default prompt), or None when not required."""
        return self.value(DirectiveKind.REQUIRE_CONFIRM)

    def logs(self):
        """(path, format) or None."""
        directive = self.get(DirectiveKind.LOGS)
        return (directive.value, directive.format) if directive is not None else None

    def validations(self):
        """every validate rule as (target, rule); all of them must pass."""
        return [(directive.name, directive.value) for directive in self.directives if directive.kind == DirectiveKind.VALIDATE]

    def environment(self):
        """env and env-file directives in declaration order."""
        return [directive for directive in self.directives if directive.kind in (DirectiveKind.ENV, DirectiveKind.ENV_FILE)]

    def hidden(self):
        """names of env entries declared with the hide modifier."""
        return {directive.name for directive in self.directives if directive.kind == DirectiveKind.ENV and directive.hide}

    def watch(self):
        return tuple(pattern for directive in self.directives if directive.kind == DirectiveKind.WATCH for pattern in directive.value)

    def script(self, evaluate=None, /):
        """
        (body, hide) of the script that should run, or None.

        with conditional branches, evaluate(condition) decides; the first true
        branch wins, else applies otherwise, and a plain script is the last
        resort before NoMatchingConditionError.
        """
        if not self._branches:
            return self.hook(DirectiveKind.SCRIPT)

        for condition, directive in self._branches:
            if condition.kind == DirectiveKind.ELSE or evaluate(condition.value):
                return directive.value, directive.hide

        if (plain := self.hook(DirectiveKind.SCRIPT)) is not None:
            return plain

        raise NoMatchingConditionError(
            "No matching condition found and no else block provided",
            title="no matching condition",
            code=FaultCode.NO_MATCHING_CONDITION,
            hint="add an 'else:' branch or a plain 'script:' directive",
            docs=getdoc(FaultCode.NO_MATCHING_CONDITION),
        )

    @property
    def conditional(self):
        return bool(self._branches)


def _pair(directives):
    """pair each if/elif/else with the script directive that follows it."""
    claimed = set()
    branches = []
    pending = None
    for index, directive in enumerate(directives):
        if directive.kind in CONDITIONS:
            pending = directive
        elif directive.kind == DirectiveKind.SCRIPT and pending is not None:
            claimed.add(index)
            branches.append((pending, directive))
            pending = None
    return frozenset(claimed), tuple(branches)


__all__ = (
    "DirectiveResolver",
    "system",
    "score",
)
