r"""
Nest runtime (command execution lifecycle).

Overview
- Runtime owns the merged command tree plus the global variables, constants and
  functions of one manifest, and executes commands by path.
- Each execution walks one state machine:

      cycle check → validation → dependencies → confirmation → environment
        → before → script → after | fallback → logs → finally

- Cycle detection is twofold: an in-process chain of visited paths (recursion,
  dependencies, parallel fan-out) and the NEST_CALL_STACK environment variable
  that child processes inherit (recursion through a re-invoked `nest`).
- Scripts are read line by line: a line naming a function runs it inline, a line
  naming a command executes that command, anything else is buffered and handed
  to the shell in one piece at each call boundary. A call that resolves to the
  command currently running is demoted to a shell line with a warning.

Failure model
- Cycle, validation, dependency and environment failures abort the execution
  before any hook runs.
- Before and script failures go to the fallback hook when there is one (it
  receives SYSTEM_ERROR_MESSAGE, error and SYSTEM_ERROR_CODE); the fallback's outcome
  becomes the command's outcome.
- After failures propagate. Logging and finally failures only warn; finally can
  never flip the captured outcome.
- Declining a confirmation prompt is a successful no-op.

Configuration
- executor: object with run()/capture() (see nest.executor.Shell).
- prompt: callable(text) -> str for confirmations (rich console input by default).
- platform, environ: override sys.platform / os.environ (tests, previews).
- shell, fancy, colorful: forwarded to warnings raised through trigger().
"""
import os
import threading
from pathlib import Path

from .ast import *
from .conditions import evaluate
from .environment import collect
from .executor import Shell, elevated, excerpt, preview
from .faults import *
from .logs import write
from .parser import parse_call
from .resolver import DirectiveResolver
from .templates import Scope, TemplateProcessor
from .utils import Unset, coalesce, unquote
from .validation import check

CALL_STACK = "NEST_CALL_STACK"


class Frame:
    """per-execution state shared by the hooks and script lines of one command."""

    def __init__(self, command, path, args, parent_args, scope, *, dry_run, verbose, visited):
        self.command = command
        self.path = tuple(path)
        self.args = dict(args)
        self.parent_args = dict(parent_args)
        self.scope = scope
        self.dry_run = dry_run
        self.verbose = verbose
        self.visited = visited
        self.env = {}
        self.hidden = set()
        self.cwd = None
        self.templates = None

    @property
    def id(self):
        return ":".join(self.path)


class Runtime:
    def __init__(
            self,
            commands,
            variables=(),
            constants=(),
            functions=(),
            /,
            *,
            executor=Unset,
            prompt=Unset,
            platform=Unset,
            environ=Unset,
            shell=False,
            fancy=True,
            colorful=True,
    ):
        self.commands = tuple(commands)
        self.variables = tuple(variables)
        self.constants = tuple(constants)
        self.functions = {function.name: function for function in functions}
        self.executor = coalesce(executor, Shell())
        self.prompt = coalesce(prompt, console.input)
        self.platform = platform
        self.environ = coalesce(environ, os.environ)
        self.shell = shell
        self.fancy = fancy
        self.colorful = colorful
        self._pids = set()
        self._lock = threading.Lock()

    @classmethod
    def from_result(cls, result, /, **options):
        """build a runtime from a (merged) ParseResult."""
        commands, variables, constants, functions = result
        return cls(commands, variables, constants, functions, **options)

    # --- public entry points ---

    def find(self, path, /):
        return find(self.commands, path)

    def execute(self, command, args=Unset, path=Unset, /, *, parent_args=Unset, dry_run=False, verbose=False):
        """
        run command (found at path) with a flat name → string argument map.

        returns None on success (including a declined confirmation) and raises
        a NestException subclass on failure.
        """
        path = tuple(coalesce(path, (command.name,)))
        self._execute(command, coalesce(args, {}), path, coalesce(parent_args, {}), dry_run=dry_run, verbose=verbose, visited=())

    def execute_with_parent_args(self, command, args, path, parent_args, /, *, dry_run=False, verbose=False):
        self.execute(command, args, path, parent_args=parent_args, dry_run=dry_run, verbose=verbose)

    def terminate(self, signal, /):
        """forward signal to every running child process."""
        with self._lock:
            pids = tuple(self._pids)
        for pid in pids:
            try:
                os.kill(pid, signal)
            except ProcessLookupError:
                continue

    # --- lifecycle ---

    def _execute(self, command, args, path, parent_args, *, dry_run, verbose, visited):
        frame = Frame(
            command,
            path,
            self.arguments(command.parameters, args),
            parent_args,
            self._scope(path, command),
            dry_run=dry_run,
            verbose=verbose,
            visited=visited,
        )
        self._guard(frame)
        frame.visited = visited + (frame.id,)

        resolver = DirectiveResolver(command.directives, platform=self.platform)
        chain = ancestors(self.commands, path)[:-1]
        frame.templates = self._templates(frame)

        if rules := resolver.validations():
            session = collect(self._environment(chain, resolver), environ=self.environ)
            check(rules, path=path, args=frame.args, lookup=lambda name: self._lookup(frame, session, name))

        self._dependencies(frame, resolver)

        if (message := resolver.confirm()) is not None and not dry_run:
            if not self._confirm(frame, message):
                return

        self._assemble(frame, chain, resolver)

        hooks = self._hooks(resolver, chain)
        bound = dict(frame.args)
        outcome = None

        try:
            if before := hooks.get(DirectiveKind.BEFORE):
                try:
                    self._hook(frame, before, "before")
                except NestException as error:
                    raise self._failed("Before script failed: %s" % error, error, frame)
            self._main(frame, resolver)
        except NestException as error:
            outcome = error
            if fallback := hooks.get(DirectiveKind.FALLBACK):
                frame.args |= {
                    "SYSTEM_ERROR_MESSAGE": str(error),
                    "error": str(error),
                    "SYSTEM_ERROR_CODE": str(error.options.get("exit_code", 1)),
                }
                try:
                    self._hook(frame, fallback, "fallback")
                    outcome = None
                except NestException as failure:
                    outcome = self._failed("Fallback script failed: %s" % failure, failure, frame)
        else:
            if after := hooks.get(DirectiveKind.AFTER):
                try:
                    self._hook(frame, after, "after")
                except NestException as error:
                    outcome = self._failed("After script failed: %s" % error, error, frame)

        if (target := resolver.logs()) is not None and not dry_run:
            self._log(frame, target, outcome, bound)

        if final := hooks.get(DirectiveKind.FINALLY):
            try:
                self._hook(frame, final, "finally")
            except NestException as error:
                self._warn(FinallyFailedWarning(
                    "finally script of '%s' failed: %s" % (frame.id, error),
                    title="finally failed",
                    code=FaultCode.FINALLY_FAILED,
                    hint="the command outcome is unchanged",
                    docs=getdoc(FaultCode.FINALLY_FAILED),
                ))

        if outcome is not None:
            raise outcome

    def _guard(self, frame):
        if frame.id in frame.visited:
            cycle = frame.visited[frame.visited.index(frame.id):] + (frame.id,)
            raise self._circular(cycle)
        stack = [entry for entry in self.environ.get(CALL_STACK, "").split(",") if entry]
        if frame.id in stack:
            raise self._circular(tuple(stack[stack.index(frame.id):]) + (frame.id,))

    @staticmethod
    def _circular(cycle):
        return CircularDependencyError(
            "Circular dependency detected: %s" % " -> ".join(cycle),
            title="circular dependency",
            code=FaultCode.CIRCULAR_DEPENDENCY,
            cycle=cycle,
            hint="break the cycle between %s" % " and ".join(sorted(set(cycle))),
            docs=getdoc(FaultCode.CIRCULAR_DEPENDENCY),
        )

    # --- arguments and scopes ---

    def arguments(self, parameters, args, positionals=(), /):
        """
        complete an argument map from a signature.

        positionals fill unnamed parameters in order, leftovers go to the
        wildcard; missing values fall back to defaults ("false" for bools).
        """
        args = {name: str(value) for name, value in args.items()}
        positionals = list(positionals)
        wildcard = None

        for parameter in parameters:
            if parameter.wildcard:
                wildcard = parameter
                continue
            if parameter.key not in args and positionals and not parameter.named:
                args[parameter.key] = positionals.pop(0)
            if parameter.key not in args:
                if parameter.default is not None:
                    args[parameter.key] = self._templates_plain().render(parameter.default)
                elif parameter.type is ParamType.BOOL:
                    args[parameter.key] = "false"

        if wildcard is not None:
            if "*" not in args:
                args["*"] = " ".join(positionals)
            if wildcard.capture and wildcard.capture not in args:
                args[wildcard.capture] = args["*"]
        return args

    def _scope(self, path, command):
        chain = ancestors(self.commands, path)[:-1]
        return Scope(
            self.variables,
            self.constants,
            parent_variables=tuple(variable for node in chain for variable in node.variables),
            parent_constants=tuple(constant for node in chain for constant in node.constants),
            local_variables=command.variables,
            local_constants=command.constants,
        )

    def _templates_plain(self):
        return TemplateProcessor(evaluator=lambda expression: self._evaluate(expression, None, None), environ=self.environ)

    def _templates(self, frame):
        return TemplateProcessor(
            evaluator=lambda expression: self._evaluate(expression, frame.cwd, frame.env),
            functions=lambda name, args, positionals: self._inline(frame, name, args, positionals),
            environ=self.environ,
        )

    def _evaluate(self, expression, cwd, env):
        completed = self.executor.capture(expression, cwd=cwd, env=env)
        if completed.returncode:
            raise ExecutionError(
                "Command '%s' failed with exit code %d: %s" % (expression, completed.returncode, (completed.stderr or "").strip()),
                title="dynamic value",
                code=FaultCode.SCRIPT_FAILED,
                exit_code=completed.returncode,
            )
        return (completed.stdout or "").strip()

    def _process(self, frame, text):
        text = frame.templates.process_function_calls(text)
        return frame.templates.process(text, frame.args, frame.scope, frame.parent_args)

    def _lookup(self, frame, session, name):
        """`$NAME` validation target: env directives, process environment, then variables (unevaluated)."""
        if name in session:
            return session[name]
        if name in self.environ:
            return self.environ[name]
        for layer in (frame.scope.parent_variables, frame.scope.variables):
            for variable in reversed(layer):
                if variable.name == name:
                    return variable.value.render()
        return None

    # --- environment ---

    def _assemble(self, frame, chain, resolver):
        """cwd, exported variables, env directives and the call stack for frame."""
        nodes = [*chain, frame.command]

        for node in reversed(nodes):
            if (cwd := DirectiveResolver(node.directives, platform=self.platform).value(DirectiveKind.CWD)) is not None:
                frame.cwd = str(Path(self._process(frame, cwd)).expanduser())
                break
        else:
            if frame.command.source is not None:
                frame.cwd = str(Path(frame.command.source).parent)

        exported = {}
        for name, value in frame.scope.mapping().items():
            exported[name] = self._process(frame, frame.templates.render(value))

        for node in nodes:
            frame.hidden |= DirectiveResolver(node.directives, platform=self.platform).hidden()
        for name, value in collect(self._environment(chain, resolver), environ=self.environ).items():
            exported[name] = self._process(frame, value)

        stack = [entry for entry in self.environ.get(CALL_STACK, "").split(",") if entry]
        exported[CALL_STACK] = ",".join([*stack, frame.id])
        frame.env = exported

    def _environment(self, chain, resolver):
        """env and env-file directives, root first."""
        directives = []
        for node in chain:
            directives.extend(DirectiveResolver(node.directives, platform=self.platform).environment())
        directives.extend(resolver.environment())
        return directives

    def _hooks(self, resolver, chain):
        """own hooks, else the closest ancestor's."""
        hooks = {}
        for kind in (DirectiveKind.BEFORE, DirectiveKind.AFTER, DirectiveKind.FALLBACK, DirectiveKind.FINALLY):
            if (hook := resolver.hook(kind)) is None:
                for node in reversed(chain):
                    if (hook := DirectiveResolver(node.directives, platform=self.platform).hook(kind)) is not None:
                        break
            if hook is not None:
                hooks[kind] = hook
        return hooks

    # --- dependencies ---

    def _dependencies(self, frame, resolver):
        dependencies, parallel = resolver.depends()
        if not dependencies:
            return

        targets = [self._dependency(frame, dependency) for dependency in dependencies]

        if not parallel:
            for dependency, command, path, args in targets:
                try:
                    self._execute(command, args, path, frame.parent_args, dry_run=frame.dry_run, verbose=frame.verbose, visited=frame.visited)
                except CircularDependencyError:
                    raise
                except NestException as error:
                    raise self._dependency_failed(frame, ["Dependency '%s' failed: %s" % (dependency.path, error)], (error,)) from error
            return

        errors = []
        lock = threading.Lock()

        def worker(dependency, command, path, args):
            try:
                self._execute(command, args, path, frame.parent_args, dry_run=frame.dry_run, verbose=frame.verbose, visited=frame.visited)
            except NestException as error:
                with lock:
                    errors.append((dependency, error))

        threads = [threading.Thread(target=worker, args=target, name="nest:%s" % target[0].path) for target in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        if errors:
            order = {dependency: index for index, dependency in enumerate(dependencies)}
            errors.sort(key=lambda item: order[item[0]])
            raise self._dependency_failed(
                frame,
                ["Dependency '%s' failed: %s" % (dependency.path, error) for dependency, error in errors],
                tuple(error for _, error in errors),
            )

    def _dependency(self, frame, dependency):
        path = dependency.segments if dependency.absolute else frame.path[:-1] + (dependency.path,)
        command = self.find(path)
        if command is None:
            raise DependencyNotFoundError(
                "Dependency not found: %s (required by %s)" % (dependency.path, frame.id),
                title="dependency not found",
                code=FaultCode.DEPENDENCY_NOT_FOUND,
                path=frame.path,
                hint="bare names refer to siblings; use 'group:name' to start from the top level",
                docs=getdoc(FaultCode.DEPENDENCY_NOT_FOUND),
            )
        args = {name: self._process(frame, value) for name, value in dependency.args.items()}
        return dependency, command, path, args

    @staticmethod
    def _dependency_failed(frame, messages, errors):
        return DependencyError(
            "\n".join(messages),
            title="dependency failed",
            code=FaultCode.DEPENDENCY_FAILED,
            path=frame.path,
            errors=errors,
            exit_code=errors[0].options.get("exit_code", 1),
            hint="fix the failing dependencies of '%s' first" % frame.id,
            docs=getdoc(FaultCode.DEPENDENCY_FAILED),
        )

    # --- confirmation ---

    def _confirm(self, frame, message):
        question = "%s [y/n]: " % message if message else "Are you sure you want to execute '%s'? [y/n]: " % " ".join(frame.path)
        while True:
            try:
                answer = self.prompt(question).strip().lower()
            except EOFError:
                return False
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False

    # --- hooks and scripts ---

    def _main(self, frame, resolver):
        script = resolver.script(lambda condition: evaluate(self._process(frame, condition)))
        if script is None:
            raise MissingScriptError(
                "Command has no script directive",
                title="missing script",
                code=FaultCode.MISSING_SCRIPT,
                path=frame.path,
                hint="add 'script: ...' to '%s'" % frame.id,
                docs=getdoc(FaultCode.MISSING_SCRIPT),
            )

        if resolver.privileged() and not frame.dry_run and not elevated(environ=self.environ, platform=self.platform):
            windows = str(coalesce(self.platform, os.name)).startswith(("win", "nt"))
            raise PrivilegeError(
                "Command '%s' requires elevated privileges" % frame.id,
                title="privileges required",
                code=FaultCode.PRIVILEGE_REQUIRED,
                path=frame.path,
                hint="run it from an administrator terminal" if windows else "run it again with sudo (sudo nest %s)" % " ".join(frame.path),
                docs=getdoc(FaultCode.PRIVILEGE_REQUIRED),
            )

        self._hook(frame, script, "script", privileged=resolver.privileged())

    def _hook(self, frame, hook, kind, *, privileged=False):
        body, hide = hook
        text = self._process(frame, body)
        if frame.dry_run or frame.verbose:
            console.print(preview(
                frame.path,
                script=text,
                args=frame.args,
                cwd=frame.cwd,
                env={name: value for name, value in frame.env.items() if name not in frame.hidden and name != CALL_STACK},
                privileged=privileged,
                hide=hide,
                title="%s · %s" % ("dry run" if frame.dry_run else "run", kind),
            ))
        if frame.dry_run:
            return None
        return self._lines(frame, text, hide=hide)

    def _lines(self, frame, text, *, hide, returns=False):
        """
        run script text line by line; returns the value of a `return` line
        when returns is set.
        """
        buffer = []

        def flush():
            if any(line.strip() and not line.strip().startswith("#") for line in buffer):
                self._shell(frame, "\n".join(buffer), hide=hide)
            buffer.clear()

        for line in text.splitlines():
            stripped = line.strip()

            if stripped.startswith("shell:"):
                buffer.append(stripped.removeprefix("shell:").strip())
                continue

            if returns and (stripped == "return" or stripped.startswith("return ")):
                flush()
                return unquote(stripped.removeprefix("return").strip())

            if (call := parse_call(stripped)) is not None:
                name, args, positionals = call
                if (function := self.functions.get(name)) is not None:
                    flush()
                    self._function(frame, function, args, positionals, hide=hide)
                    continue
                if (target := self._resolve(frame, name)) is not None:
                    command, path = target
                    if path == frame.path:
                        buffer.append(self._demote(frame, name, args, positionals))
                        continue
                    flush()
                    self._execute(
                        command,
                        self.arguments(command.parameters, args, positionals),
                        path,
                        {},
                        dry_run=frame.dry_run,
                        verbose=frame.verbose,
                        visited=frame.visited,
                    )
                    continue

            buffer.append(line)

        flush()
        return None

    def _resolve(self, frame, name):
        """command path for a call: absolute with ':', else sibling, then top level."""
        if ":" in name:
            candidates = [tuple(name.split(":"))]
        else:
            candidates = [frame.path[:-1] + (name,), (name,)]
        for path in candidates:
            if (command := self.find(path)) is not None:
                return command, path
        return None

    def _demote(self, frame, name, args, positionals):
        self._warn(SelfCallWarning(
            "'%s' calls itself; the line runs as a shell command instead" % frame.id,
            title="self call",
            code=FaultCode.SELF_CALL,
            hint="prefix the line with 'shell:' to make this explicit",
            docs=getdoc(FaultCode.SELF_CALL),
        ))
        words = [name, *positionals, *("%s=%s" % item for item in args.items())]
        if not args and not positionals and frame.command.wildcard and frame.args.get("*"):
            words.append(frame.args["*"])
        return " ".join(words)

    def _function(self, frame, function, args, positionals, *, hide):
        """run function inline and return its `return` value (or "")."""
        inner = Frame(
            frame.command,
            frame.path,
            self.arguments(function.parameters, {name: self._process(frame, value) for name, value in args.items()}, positionals),
            frame.args,
            frame.scope.child(variables=function.variables),
            dry_run=frame.dry_run,
            verbose=frame.verbose,
            visited=frame.visited,
        )
        inner.env = frame.env
        inner.hidden = frame.hidden
        inner.cwd = frame.cwd
        inner.templates = self._templates(inner)
        try:
            result = self._lines(inner, self._process(inner, function.body), hide=hide, returns=True)
        except ScriptFailedError as error:
            raise FunctionError(
                "Function '%s' failed: %s" % (function.name, error),
                title="function failed",
                code=FaultCode.FUNCTION_FAILED,
                exit_code=error.exit_code,
                details=error.options.get("details"),
                hint=error.options.get("hint"),
                docs=getdoc(FaultCode.FUNCTION_FAILED),
            ) from error
        return result or ""

    def _inline(self, frame, name, args, positionals):
        if (function := self.functions.get(name)) is None:
            return None
        if frame.dry_run:
            return None
        return self._function(frame, function, args, positionals, hide=True)

    def _shell(self, frame, script, *, hide):
        def spawned(pid):
            with self._lock:
                self._pids.add(pid)
            pids.append(pid)

        pids = []
        try:
            code = self.executor.run(script, cwd=frame.cwd, env=frame.env, args=frame.args, hide=hide, spawned=spawned)
        except OSError as error:
            code = 127
            reason = error.strerror or str(error)
        else:
            reason = None
        finally:
            with self._lock:
                self._pids.difference_update(pids)

        if code:
            details = [
                ("command", frame.id),
                ("args", ", ".join("%s=%s" % item for item in frame.args.items()) or "none"),
                ("cwd", frame.cwd or os.getcwd()),
                ("script", excerpt(script)),
                ("exit code", str(code)),
            ]
            hint = "check the script output above"
            if code == 127:
                hint = "a program in the script was not found; check that it is installed and on PATH"
            raise ScriptFailedError(
                "Command '%s' failed with exit code %d%s" % (frame.id, code, ": %s" % reason if reason else ""),
                title="script failed",
                code=FaultCode.SCRIPT_FAILED,
                path=frame.path,
                exit_code=code,
                details=details,
                hint=hint,
                docs=getdoc(FaultCode.SCRIPT_FAILED),
            )

    @staticmethod
    def _failed(message, error, frame):
        return HookError(
            message,
            title="hook failed",
            code=FaultCode.HOOK_FAILED,
            path=frame.path,
            exit_code=error.options.get("exit_code", 1),
            details=error.options.get("details"),
            hint=error.options.get("hint"),
            docs=getdoc(FaultCode.HOOK_FAILED),
        )

    # --- reporting ---

    def _log(self, frame, target, outcome, args):
        path, format = target
        try:
            write(
                self._process(frame, path),
                format,
                path=frame.path,
                args=args,
                success=outcome is None,
                error=str(outcome) if outcome is not None else None,
            )
        except OSError as error:
            self._warn(LogWriteWarning(
                "cannot write log for '%s': %s" % (frame.id, error.strerror or error),
                title="log not written",
                code=FaultCode.LOG_FAILED,
                hint="check that %r is writable" % path,
                docs=getdoc(FaultCode.LOG_FAILED),
            ))

    def _warn(self, warning):
        trigger(warning, shell=self.shell, fancy=self.fancy, colorful=self.colorful)


__all__ = (
    "Runtime",
    "CALL_STACK",
)
