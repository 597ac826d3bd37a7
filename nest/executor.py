"""
Shell execution for nest scripts.

Scope
- Shell: runs script text through the platform shell (or the interpreter named
  by a `#!` line), with cwd/env control, optional hidden output and a pid callback.
  capture() runs a command and collects its output (used for `$(...)`
  substitution and dynamic values).
- elevated(): whether the current process runs with administrative rights.
- preview(): rich panel describing what would run (dry-run and verbose modes).
- excerpt(): short script excerpt for diagnostics.

Notes
- Arguments are exported to the child both verbatim and uppercased
  (`name` and `NAME`), next to the assembled environment.
- On Windows scripts run through `cmd /C`; everywhere else through `sh -c`
  unless the script starts with a bash/zsh/fish/sh shebang.
"""
import os
import shutil
import subprocess
import sys

from rich.console import Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from .utils import Unset, coalesce

PREVIEW_LINES = 5

SHEBANGS = ("bash", "zsh", "fish", "sh")


def interpreter(script, /, *, platform=Unset):
    """
    return the argv prefix used to run script.

    a leading `#!` line naming bash, zsh, fish or sh selects that shell when it
    is installed; otherwise the platform default applies.
    """
    if coalesce(platform, sys.platform).startswith("win"):
        return ["cmd", "/C"]

    first = script.lstrip().partition("\n")[0]
    if first.startswith("#!"):
        words = first[2:].split()
        if words:
            name = os.path.basename(words[-1] if os.path.basename(words[0]) == "env" else words[0])
            if name in SHEBANGS and shutil.which(name):
                return [name, "-c"]
    return ["sh", "-c"]


class Shell:
    """
    default process runner used by the parser and the runtime.

    run() returns the exit status; capture() returns a CompletedProcess with
    text stdout/stderr. Test doubles only need the same two methods.
    """

    def __init__(self, *, platform=Unset):
        self.platform = coalesce(platform, sys.platform)

    def run(self, script, /, *, cwd=None, env=None, args=Unset, hide=False, spawned=None):
        environment = dict(os.environ)
        environment.update(coalesce(env, {}))
        for name, value in coalesce(args, {}).items():
            if name.isidentifier():
                environment[name] = value
                environment[name.upper()] = value

        stream = subprocess.DEVNULL if hide else None
        with subprocess.Popen(
            [*interpreter(script, platform=self.platform), script],
            cwd=cwd,
            env=environment,
            stdout=stream,
            stderr=stream,
        ) as process:
            if spawned:
                spawned(process.pid)
            return process.wait()

    def capture(self, command, /, *, cwd=None, env=None):
        environment = dict(os.environ)
        environment.update(coalesce(env, {}))
        return subprocess.run(
            [*interpreter(command, platform=self.platform), command],
            cwd=cwd,
            env=environment,
            capture_output=True,
            text=True,
        )

    def __call__(self, command, /):
        return self.capture(command)


def capture(command, /):
    """run command through the platform shell and collect its output."""
    return Shell().capture(command)


def elevated(*, environ=Unset, platform=Unset):
    """
    whether the process has administrative rights.

    on POSIX a root effective uid or a SUDO_USER variable counts as elevated;
    on Windows the shell32 admin check is used.
    """
    environ = coalesce(environ, os.environ)
    if coalesce(platform, sys.platform).startswith("win"):
        import ctypes
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    if environ.get("SUDO_USER"):
        return True
    return os.geteuid() == 0


def excerpt(script, /, limit=PREVIEW_LINES):
    """first lines of script, with a trailing note when lines were cut."""
    lines = script.splitlines()
    shown = "\n".join(lines[:limit])
    if len(lines) > limit:
        shown += "\n... (%d more lines)" % (len(lines) - limit)
    return shown


def preview(path, /, *, script, args=Unset, cwd=None, env=Unset, privileged=False, hide=False, title="dry run"):
    """
    rich panel describing one script execution.

    used instead of running in dry-run mode and in addition to running in
    verbose mode.
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold #6B6F7A", no_wrap=True)
    table.add_column()

    table.add_row("command", Text(":".join(path), style="bold #E6E6F0"))
    if args := coalesce(args, {}):
        table.add_row("args", ", ".join("%s=%s" % item for item in args.items()))
    if cwd:
        table.add_row("cwd", str(cwd))
    if env := coalesce(env, {}):
        table.add_row("env", "\n".join("%s=%s" % item for item in sorted(env.items())))
    if privileged:
        table.add_row("privileged", "yes")
    if hide:
        table.add_row("output", "hidden")

    body = Syntax(script, "bash", theme="ansi_dark", word_wrap=True)
    return Panel(Group(table, Text(""), body), title="[ %s ]" % title, title_align="left")


__all__ = (
    "Shell",
    "capture",
    "interpreter",
    "elevated",
    "excerpt",
    "preview",
    "PREVIEW_LINES",
)
