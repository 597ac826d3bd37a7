"""
Runtime behavioral tests (lifecycle, dependencies, cycles, hooks, calls).

Scope
- Validate the execution order of dependencies, hooks and script calls.
- Validate cycle detection in-process and through the inherited call stack.
- Validate fallback recovery, after/finally failure handling and warnings.
- Validate conditional and OS-scoped script selection.
- Validate environment assembly, confirmation, validation and logging.

Conventions
- Test method names follow CamelCase per project convention.
- Every run goes through FakeShell, which records scripts instead of spawning
  processes; a script containing a key of `codes` exits with that status.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import TestCase

from nest import Runtime, merge, parse
from nest.faults import (
    CircularDependencyError,
    DependencyError,
    DependencyNotFoundError,
    FinallyFailedWarning,
    HookError,
    MissingScriptError,
    NoMatchingConditionError,
    PrivilegeError,
    ScriptFailedError,
    SelfCallWarning,
    ValidationError,
)


class FakeShell:
    def __init__(self, codes=None, outputs=None):
        self.codes = codes or {}
        self.outputs = outputs or {}
        self.calls = []
        self.events = []
        self.lock = threading.Lock()

    @property
    def scripts(self):
        return [call["script"] for call in self.calls]

    def run(self, script, /, *, cwd=None, env=None, args=None, hide=False, spawned=None):
        with self.lock:
            self.calls.append({"script": script, "cwd": cwd, "env": dict(env or {}), "args": dict(args or {}), "hide": hide})
            self.events.append(("run", script))
        if spawned:
            spawned(4242)
        for needle, code in self.codes.items():
            if needle in script:
                return code
        return 0

    def capture(self, command, /, *, cwd=None, env=None):
        with self.lock:
            self.events.append(("capture", command))
        return subprocess.CompletedProcess(command, 0, stdout=self.outputs.get(command, ""), stderr="")


def runtime(text, /, **options):
    commands, variables, constants, functions = parse(text)
    options.setdefault("executor", FakeShell())
    options.setdefault("environ", {})
    options.setdefault("platform", "linux")
    return Runtime(merge(commands), variables, constants, functions, **options)


def run(instance, *path, args=None, **options):
    command = instance.find(path)
    instance.execute(command, args or {}, path, **options)
    return instance.executor


class TestRuntimeLifecycle(TestCase):
    """Behavioral tests for the before → script → after/fallback → finally chain."""

    def testRunsScript(self):
        shell = run(runtime("build:\n    script: echo hi\n"), "build")
        self.assertEqual(shell.scripts, ["echo hi"])

    def testHooksRunInOrder(self):
        text = "build:\n    before: echo before\n    script: echo main\n    after: echo after\n    finally: echo finally\n"
        shell = run(runtime(text), "build")
        self.assertEqual(shell.scripts, ["echo before", "echo main", "echo after", "echo finally"])

    def testFallbackRecoversWithErrorMessage(self):
        text = "a:\n    script: exit 1\n    fallback: echo recovered {{SYSTEM_ERROR_MESSAGE}}\n"
        shell = run(runtime(text, executor=FakeShell(codes={"exit 1": 1})), "a")
        self.assertEqual(shell.scripts[1], "echo recovered Command 'a' failed with exit code 1")

    def testFallbackReceivesErrorAndCode(self):
        text = "a:\n    script: exit 2\n    fallback: echo {{error}} ({{SYSTEM_ERROR_CODE}})\n"
        shell = run(runtime(text, executor=FakeShell(codes={"exit 2": 2})), "a")
        self.assertEqual(shell.scripts[1], "echo Command 'a' failed with exit code 2 (2)")

    def testFallbackArgumentsStayOutOfLogs(self):
        with tempfile.TemporaryDirectory() as directory:
            target = Path(directory) / "a.log"
            text = "a(mode: str):\n    logs: txt %s\n    script: exit 1\n    fallback: echo {{error}}\n" % target
            run(runtime(text, executor=FakeShell(codes={"exit 1": 1})), "a", args={"mode": "fast"})
            content = target.read_text()
        self.assertIn("  Args: mode=fast\n", content)
        self.assertIn("Status: SUCCESS", content)
        self.assertNotIn("SYSTEM_ERROR", content)

    def testScriptFailurePropagatesWithDetails(self):
        text = "a:\n    script: |\n        step one\n        broken\n"
        instance = runtime(text, executor=FakeShell(codes={"broken": 127}))
        with self.assertRaises(ScriptFailedError) as context:
            run(instance, "a")
        self.assertEqual(context.exception.exit_code, 127)
        details = dict(context.exception.options["details"])
        self.assertEqual(details["exit code"], "127")
        self.assertIn("not found", context.exception.options["hint"])

    def testBeforeFailureSkipsScript(self):
        text = "a:\n    before: fail\n    script: echo main\n    finally: echo cleanup\n"
        instance = runtime(text, executor=FakeShell(codes={"fail": 2}))
        with self.assertRaises(HookError) as context:
            run(instance, "a")
        self.assertTrue(str(context.exception).startswith("Before script failed:"))
        self.assertEqual(instance.executor.scripts, ["fail", "echo cleanup"])

    def testAfterFailurePropagates(self):
        text = "a:\n    script: echo main\n    after: fail\n"
        with self.assertRaises(HookError) as context:
            run(runtime(text, executor=FakeShell(codes={"fail": 1})), "a")
        self.assertTrue(str(context.exception).startswith("After script failed:"))

    def testFallbackFailurePropagates(self):
        text = "a:\n    script: fail main\n    fallback: fail again\n"
        with self.assertRaises(HookError) as context:
            run(runtime(text, executor=FakeShell(codes={"fail": 1})), "a")
        self.assertTrue(str(context.exception).startswith("Fallback script failed:"))

    def testFinallyFailureOnlyWarns(self):
        text = "a:\n    script: echo ok\n    finally: fail\n"
        with self.assertWarns(FinallyFailedWarning):
            run(runtime(text, executor=FakeShell(codes={"fail": 1})), "a")

    def testFinallyRunsAfterFailure(self):
        text = "a:\n    script: fail\n    finally: echo cleanup\n"
        instance = runtime(text, executor=FakeShell(codes={"fail": 1}))
        with self.assertRaises(ScriptFailedError):
            run(instance, "a")
        self.assertEqual(instance.executor.scripts[-1], "echo cleanup")

    def testMissingScriptRaises(self):
        with self.assertRaises(MissingScriptError):
            run(runtime('a:\n    desc: "nothing to do"\n'), "a")

    def testDryRunExecutesNothing(self):
        text = "a:\n    depends: b\n    before: echo before\n    script: echo a\nb:\n    script: echo b\n"
        shell = run(runtime(text), "a", dry_run=True)
        self.assertEqual(shell.scripts, [])


class TestRuntimeDependencies(TestCase):
    """Behavioral tests for depends, cycles and script calls."""

    def testDependencyRunsFirst(self):
        text = "a:\n    depends: b\n    script: echo a\nb:\n    script: echo b\n"
        shell = run(runtime(text), "a")
        self.assertEqual(shell.scripts, ["echo b", "echo a"])

    def testDependencyArguments(self):
        text = (
            "lint(strict: bool = false):\n"
            "    script: lint {{strict}}\n"
            "build:\n"
            '    depends: lint(strict="true")\n'
            "    script: make\n"
        )
        shell = run(runtime(text), "build")
        self.assertEqual(shell.scripts, ["lint true", "make"])

    def testDependenciesResolveSiblingsAndAbsolutePaths(self):
        text = (
            "tools:\n"
            "    setup:\n"
            "        script: echo setup\n"
            "app:\n"
            "    prepare:\n"
            "        script: echo prepare\n"
            "    build:\n"
            "        depends: prepare, tools:setup\n"
            "        script: echo build\n"
        )
        shell = run(runtime(text), "app", "build")
        self.assertEqual(shell.scripts, ["echo prepare", "echo setup", "echo build"])

    def testMissingDependencyRaises(self):
        with self.assertRaises(DependencyNotFoundError) as context:
            run(runtime("a:\n    depends: ghost\n    script: echo a\n"), "a")
        self.assertEqual(str(context.exception), "Dependency not found: ghost (required by a)")

    def testFailedDependencyStopsCommand(self):
        text = "a:\n    depends: b\n    script: echo a\nb:\n    script: fail\n"
        instance = runtime(text, executor=FakeShell(codes={"fail": 1}))
        with self.assertRaises(DependencyError) as context:
            run(instance, "a")
        self.assertIn("Dependency 'b' failed", str(context.exception))
        self.assertNotIn("echo a", instance.executor.scripts)

    def testCircularDependencyRaises(self):
        text = "a:\n    depends: b\n    script: echo a\nb:\n    depends: a\n    script: echo b\n"
        for name in ("a", "b"):
            with self.subTest(name=name):
                with self.assertRaises(CircularDependencyError) as context:
                    run(runtime(text), name)
                self.assertIn("Circular dependency detected", str(context.exception))

    def testCircularMessageNamesTheCycle(self):
        text = "a:\n    depends: b\n    script: echo a\nb:\n    depends: a\n    script: echo b\n"
        with self.assertRaises(CircularDependencyError) as context:
            run(runtime(text), "a")
        self.assertEqual(str(context.exception), "Circular dependency detected: a -> b -> a")

    def testInheritedCallStackDetectsCycle(self):
        instance = runtime("a:\n    script: nest a\n", environ={"NEST_CALL_STACK": "a"})
        with self.assertRaises(CircularDependencyError):
            run(instance, "a")

    def testCallStackIsExported(self):
        shell = run(runtime("a:\n    script: echo a\n", environ={"NEST_CALL_STACK": "outer"}), "a")
        self.assertEqual(shell.calls[0]["env"]["NEST_CALL_STACK"], "outer,a")

    def testParallelFailuresAreAggregated(self):
        text = (
            "x:\n    script: fail x\n"
            "y:\n    script: fail y\n"
            "z:\n    script: echo z\n"
            "all:\n    depends.parallel: x, y, z\n    script: echo all\n"
        )
        instance = runtime(text, executor=FakeShell(codes={"fail": 3}))
        with self.assertRaises(DependencyError) as context:
            run(instance, "all")
        message = str(context.exception)
        self.assertIn("Dependency 'x' failed", message)
        self.assertIn("Dependency 'y' failed", message)
        self.assertEqual(len(context.exception.options["errors"]), 2)
        self.assertIn("echo z", instance.executor.scripts)
        self.assertNotIn("echo all", instance.executor.scripts)

    def testParallelDependenciesAllRun(self):
        text = "x:\n    script: echo x\ny:\n    script: echo y\nall:\n    depends.parallel: x, y\n    script: echo all\n"
        shell = run(runtime(text), "all")
        self.assertEqual(sorted(shell.scripts[:2]), ["echo x", "echo y"])
        self.assertEqual(shell.scripts[2], "echo all")

    def testScriptCallsOtherCommand(self):
        text = "clean:\n    script: echo clean\nbuild:\n    script: |\n        echo start\n        clean\n        echo end\n"
        shell = run(runtime(text), "build")
        self.assertEqual(shell.scripts, ["echo start", "echo clean", "echo end"])

    def testShellPrefixForcesShell(self):
        text = "clean:\n    script: echo clean\nbuild:\n    script: shell: clean\n"
        shell = run(runtime(text), "build")
        self.assertEqual(shell.scripts, ["clean"])

    def testSelfCallIsDemotedToShell(self):
        instance = runtime("ls(*):\n    script: ls\n")
        with self.assertWarns(SelfCallWarning):
            run(instance, "ls", args={"*": "-la"})
        self.assertEqual(instance.executor.scripts, ["ls -la"])


class TestRuntimeSelection(TestCase):
    """Behavioral tests for conditional and OS-scoped scripts."""

    CONDITIONAL = (
        "deploy(env: str):\n"
        '    if: {{env}} == "prod"\n'
        "    script: echo release\n"
        '    elif: {{env}} == "stage"\n'
        "    script: echo stage\n"
        "    else:\n"
        "    script: echo local\n"
    )

    def testConditionalBranches(self):
        for env, expected in (("prod", "echo release"), ("stage", "echo stage"), ("dev", "echo local")):
            with self.subTest(env=env):
                shell = run(runtime(self.CONDITIONAL), "deploy", args={"env": env})
                self.assertEqual(shell.scripts, [expected])

    def testNoMatchingConditionRaises(self):
        text = 'deploy(env: str):\n    if: {{env}} == "prod"\n    script: echo release\n'
        with self.assertRaises(NoMatchingConditionError):
            run(runtime(text), "deploy", args={"env": "dev"})

    def testOsScopedScriptWins(self):
        text = "a:\n    script: echo any\n    script.linux: echo linux\n"
        self.assertEqual(run(runtime(text, platform="linux"), "a").scripts, ["echo linux"])
        self.assertEqual(run(runtime(text, platform="win32"), "a").scripts, ["echo any"])

    def testUnixFamilyMatches(self):
        text = "a:\n    script.windows: echo windows\n    script.unix: echo unix\n"
        self.assertEqual(run(runtime(text, platform="darwin"), "a").scripts, ["echo unix"])


class TestRuntimeEnvironment(TestCase):
    """Behavioral tests for scopes, env directives, templates and reporting."""

    def testVariablesAndEnvAreExported(self):
        text = (
            'var GREETING = "hello"\n'
            "group:\n"
            "    env: STAGE=prod\n"
            "    cwd: /tmp\n"
            "    before: echo setup\n"
            "    child(name: str):\n"
            "        env API = {{name}}-api\n"
            "        script: echo {{GREETING}} {{name}}\n"
        )
        shell = run(runtime(text), "group", "child", args={"name": "web"})
        self.assertEqual(shell.scripts, ["echo setup", "echo hello web"])
        call = shell.calls[1]
        self.assertEqual(call["cwd"], "/tmp")
        self.assertEqual(call["env"]["STAGE"], "prod")
        self.assertEqual(call["env"]["API"], "web-api")
        self.assertEqual(call["env"]["GREETING"], "hello")
        self.assertEqual(call["args"]["name"], "web")

    def testLocalVariablesShadowGlobals(self):
        text = 'var TARGET = "global"\na:\n    var TARGET = "local"\n    script: echo {{TARGET}}\n'
        self.assertEqual(run(runtime(text), "a").scripts, ["echo local"])

    def testDefaultsFillMissingArguments(self):
        text = "a(mode: str = \"fast\", !verbose: bool):\n    script: run {{mode}} {{verbose|copy}}\n"
        self.assertEqual(run(runtime(text), "a").scripts, ["run fast "])

    def testDynamicValuesAreEvaluated(self):
        text = "var SHA = `git rev-parse HEAD`\na:\n    script: echo {{SHA}}\n"
        shell = FakeShell(outputs={"git rev-parse HEAD": "abc123\n"})
        self.assertEqual(run(runtime(text, executor=shell), "a").scripts, ["echo abc123"])

    def testFunctionsRunInline(self):
        text = (
            "function greet(name: str):\n"
            "    echo hello {{name}}\n"
            "function version():\n"
            "    return 1.2.3\n"
            "a:\n"
            "    script: |\n"
            '        greet(name="x")\n'
            "        echo {{ version() }}\n"
        )
        self.assertEqual(run(runtime(text), "a").scripts, ["echo hello x", "echo 1.2.3"])

    def testValidationRejectsValue(self):
        text = "deploy(env: str):\n    validate: env in [dev, prod]\n    script: echo deploy\n"
        instance = runtime(text)
        with self.assertRaises(ValidationError) as context:
            run(instance, "deploy", args={"env": "qa"})
        self.assertIn("is not in allowed list [dev, prod]", str(context.exception))
        self.assertEqual(instance.executor.scripts, [])

    def testValidationReadsEnvironment(self):
        text = "a:\n    validate: $REGION matches /^eu-/\n    script: echo a\n"
        self.assertEqual(run(runtime(text, environ={"REGION": "eu-west"}), "a").scripts, ["echo a"])
        with self.assertRaises(ValidationError):
            run(runtime(text, environ={"REGION": "us-east"}), "a")

    def testConfirmationDeclined(self):
        answers = iter(["maybe", "n"])
        instance = runtime("a:\n    require_confirm: \"Really?\"\n    script: rm -rf build\n", prompt=lambda text: next(answers))
        run(instance, "a")
        self.assertEqual(instance.executor.scripts, [])

    def testConfirmationAccepted(self):
        questions = []
        instance = runtime("a:\n    require_confirm:\n    script: echo go\n", prompt=lambda text: questions.append(text) or "yes")
        run(instance, "a")
        self.assertEqual(questions, ["Are you sure you want to execute 'a'? [y/n]: "])
        self.assertEqual(instance.executor.scripts, ["echo go"])

    def testValidationFailureEvaluatesNothing(self):
        text = "var STAMP = `touch marker`\ndeploy(env: str):\n    validate: env in [dev]\n    script: echo {{STAMP}}\n"
        instance = runtime(text)
        with self.assertRaises(ValidationError):
            run(instance, "deploy", args={"env": "qa"})
        self.assertEqual(instance.executor.events, [])

    def testValidationReadsEnvDirectivesUnevaluated(self):
        text = "var STAMP = `date`\na:\n    env: REGION=eu-west\n    validate: $REGION matches /^eu-/\n    validate: $STAMP in [date]\n    script: echo a\n"
        shell = run(runtime(text), "a")
        self.assertEqual(shell.scripts, ["echo a"])

    def testDeclinedConfirmationEvaluatesNothing(self):
        text = "var STAMP = `touch marker`\na:\n    require_confirm:\n    script: echo {{STAMP}}\n"
        instance = runtime(text, prompt=lambda text: "n")
        run(instance, "a")
        self.assertEqual(instance.executor.events, [])

    def testDynamicValuesSeeDependencyOutput(self):
        text = "b:\n    script: write out\na:\n    var OUT = `cat out`\n    depends: b\n    script: echo {{OUT}}\n"
        shell = run(runtime(text, executor=FakeShell(outputs={"cat out": "ok"})), "a")
        self.assertEqual(shell.events[0], ("run", "write out"))
        self.assertEqual(shell.scripts, ["write out", "echo ok"])

    def testCalleesDoNotSeeCallerArguments(self):
        text = "b:\n    script: echo {{target}}\na(target: str):\n    depends: b\n    script: |\n        b\n"
        shell = run(runtime(text), "a", args={"target": "x"}, parent_args={"target": "outer"})
        self.assertEqual(shell.scripts, ["echo outer", "echo {{target}}"])

    def testLogsAreWritten(self):
        with tempfile.TemporaryDirectory() as directory:
            target = Path(directory) / "logs" / "a.log"
            run(runtime("a(mode: str):\n    logs: txt %s\n    script: echo a\n" % target), "a", args={"mode": "fast"})
            content = target.read_text()
        self.assertIn("Command: a", content)
        self.assertIn("Args: mode=fast", content)
        self.assertIn("Status: SUCCESS", content)

    def testPrivilegedRunsWhenElevated(self):
        instance = runtime("a:\n    privileged\n    script: echo root\n", environ={"SUDO_USER": "me"})
        self.assertEqual(run(instance, "a").scripts, ["echo root"])

    @unittest.skipUnless(hasattr(os, "geteuid") and os.geteuid() != 0, "requires an unprivileged POSIX user")
    def testPrivilegedRequiresElevation(self):
        with self.assertRaises(PrivilegeError):
            run(runtime("a:\n    privileged\n    script: echo root\n"), "a")


if __name__ == "__main__":
    unittest.main()
