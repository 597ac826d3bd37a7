"""
Parser behavioral tests (headers, parameters, directives, values, faults).

Scope
- Validate the command tree built from indented manifests.
- Validate parameter grammar, wildcard rules and multi-line signatures.
- Validate directive modifiers, `|` blocks and the faults around them.
- Validate literal typing, `$(...)` substitution and dynamic values.
- Validate deprecated syntax and indentation faults.

Conventions
- Test method names follow CamelCase per project convention.
- `$(...)` substitution goes through a recording fake executor; no shell runs.
"""

from __future__ import annotations

import subprocess
import unittest
from unittest import TestCase

from nest import (
    DirectiveKind,
    ParamType,
    Value,
    ValueKind,
    parse,
    parse_call,
    parse_value,
)
from nest.faults import (
    DeprecatedSyntaxError,
    InvalidIndentError,
    InvalidSyntaxError,
    SubstitutionError,
    UnexpectedEndOfFileError,
)


class FakeExecutor:
    def __init__(self, stdout="", returncode=0, stderr=""):
        self.commands = []
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr

    def __call__(self, command):
        self.commands.append(command)
        return subprocess.CompletedProcess(command, self.returncode, stdout=self.stdout, stderr=self.stderr)


class TestParserStructure(TestCase):
    """Behavioral tests for the command tree."""

    def testSingleCommand(self):
        commands, variables, constants, functions = parse("build:\n    script: echo hi\n")
        self.assertEqual(len(commands), 1)
        self.assertEqual(commands[0].name, "build")
        self.assertEqual(commands[0].directives[0].kind, DirectiveKind.SCRIPT)
        self.assertEqual(commands[0].directives[0].value, "echo hi")
        self.assertEqual((variables, constants, functions), ((), (), ()))

    def testNestedChildren(self):
        text = (
            "dev:\n"
            "    desc: \"development\"\n"
            "    run:\n"
            "        script: npm start\n"
            "    test:\n"
            "        script: npm test\n"
            "deploy:\n"
            "    script: ./deploy.sh\n"
        )
        commands, *_ = parse(text)
        self.assertEqual([command.name for command in commands], ["dev", "deploy"])
        self.assertEqual([child.name for child in commands[0].children], ["run", "test"])
        self.assertEqual(commands[0].directives[0].value, "development")

    def testCommentsAndBlankLinesAreSkipped(self):
        text = "# tooling\n\nbuild:\n    # compile\n\n    script: make\n"
        commands, *_ = parse(text)
        self.assertEqual(commands[0].directives[0].value, "make")

    def testSourceMarkerSetsCommandSource(self):
        text = "# @source: /work/nestfile\nbuild:\n    script: make\n"
        commands, *_ = parse(text)
        self.assertEqual(str(commands[0].source), "/work/nestfile")

    def testIndentedTopLevelLineRaises(self):
        with self.assertRaises(InvalidIndentError):
            parse("    build:\n        script: make\n")

    def testOverIndentedBodyLineRaises(self):
        with self.assertRaises(InvalidIndentError):
            parse("build:\n            script: make\n")

    def testUnknownDirectiveRaises(self):
        with self.assertRaises(InvalidSyntaxError) as context:
            parse("build:\n    scirpt: make\n")
        self.assertIn("Unknown directive: scirpt", str(context.exception))

    def testErrorsCarryLineNumbers(self):
        with self.assertRaises(InvalidSyntaxError) as context:
            parse("build:\n    script: make\n\ntest:\n    bogus: 1\n")
        self.assertEqual(context.exception.line, 5)


class TestParserParameters(TestCase):
    """Behavioral tests for signatures."""

    def testTypedParametersWithDefaultsAndAliases(self):
        commands, *_ = parse("deploy(target: str, !force|f: bool = false, replicas: num = 2):\n    script: echo\n")
        target, force, replicas = commands[0].parameters
        self.assertEqual((target.name, target.type, target.required), ("target", ParamType.STR, True))
        self.assertTrue(force.named)
        self.assertEqual(force.alias, "f")
        self.assertEqual(force.default, Value.bool(False))
        self.assertEqual(replicas.default.render(), "2")

    def testMultiLineSignature(self):
        text = (
            "deploy(\n"
            "    target: str,\n"
            "    !force|f: bool = false\n"
            "):\n"
            "    script: echo {{target}}\n"
        )
        commands, *_ = parse(text)
        self.assertEqual([parameter.name for parameter in commands[0].parameters], ["target", "force"])
        self.assertEqual(commands[0].directives[0].value, "echo {{target}}")

    def testUnclosedSignatureRaises(self):
        with self.assertRaises(UnexpectedEndOfFileError):
            parse("deploy(\n    target: str,\n")

    def testMissingTypeAnnotationRaises(self):
        with self.assertRaises(InvalidSyntaxError) as context:
            parse("build(target):\n    script: make\n")
        self.assertIn("Missing type annotation", str(context.exception))

    def testUnknownTypeRaises(self):
        with self.assertRaises(InvalidSyntaxError):
            parse("build(target: int):\n    script: make\n")

    def testWildcardForms(self):
        commands, *_ = parse("copy(dest: str, *files[2]):\n    script: cp $* {{dest}}\n")
        wildcard = commands[0].parameters[1]
        self.assertTrue(wildcard.wildcard)
        self.assertEqual((wildcard.capture, wildcard.count, wildcard.key), ("files", 2, "files"))
        self.assertTrue(commands[0].wildcard)
        self.assertIsNone(wildcard.type)

    def testCaptureAndKeyOfPlainParameters(self):
        commands, *_ = parse("run(mode: str, *):\n    script: run $*\n")
        mode, star = commands[0].parameters
        self.assertEqual((mode.capture, mode.key), (None, "mode"))
        self.assertEqual((star.capture, star.key, star.type), (None, "*", None))

    def testWildcardRules(self):
        for signature in ("*[0]", "*[]", "*[two]", "*files[2", "*: str", "*, *rest"):
            with self.subTest(signature=signature):
                with self.assertRaises(InvalidSyntaxError):
                    parse("copy(%s):\n    script: cp\n" % signature)

    def testDuplicateParameterRaises(self):
        with self.assertRaises(InvalidSyntaxError):
            parse("build(a: str, a: str):\n    script: make\n")


class TestParserDirectives(TestCase):
    """Behavioral tests for directives, modifiers and blocks."""

    def testMultiLineBlock(self):
        text = (
            "build:\n"
            "    script: |\n"
            "        echo one\n"
            "        if true; then\n"
            "            echo two\n"
            "        fi\n"
            "    after: echo done\n"
        )
        commands, *_ = parse(text)
        script, after = commands[0].directives
        self.assertEqual(script.value, "echo one\nif true; then\n    echo two\nfi")
        self.assertEqual(after.value, "echo done")

    def testMissingPipeRaises(self):
        with self.assertRaises(InvalidSyntaxError) as context:
            parse("build:\n    script: echo one\n        echo two\n")
        self.assertIn("missing '|'", str(context.exception))

    def testEmptyBlockRaises(self):
        with self.assertRaises(InvalidSyntaxError):
            parse("build:\n    script: |\n\ntest:\n    script: make\n")

    def testHookModifiers(self):
        commands, *_ = parse("build:\n    script.hide.linux: make\n    before.macos: brew update\n")
        script, before = commands[0].directives
        self.assertEqual((script.hide, script.os), (True, "linux"))
        self.assertEqual((before.hide, before.os), (False, "macos"))

    def testUnknownModifierRaises(self):
        with self.assertRaises(InvalidSyntaxError):
            parse("build:\n    script.loud: make\n")

    def testDependsWithArgumentsAndParallel(self):
        commands, *_ = parse('build:\n    depends.parallel: lint, test(coverage="true"), tools:setup\n    script: make\n')
        depends = commands[0].directives[0]
        self.assertTrue(depends.parallel)
        lint, test, setup = depends.value
        self.assertEqual(lint.path, "lint")
        self.assertEqual(dict(test.args), {"coverage": "true"})
        self.assertTrue(setup.absolute)
        self.assertEqual(setup.segments, ("tools", "setup"))

    def testEnvForms(self):
        text = 'build:\n    env API = "https://example.test"\n    env.hide: TOKEN=secret\n    env: .env.local\n    script: make\n'
        commands, *_ = parse(text)
        api, token, file, _ = commands[0].directives
        self.assertEqual((api.kind, api.name, api.value), (DirectiveKind.ENV, "API", "https://example.test"))
        self.assertEqual((token.name, token.hide), ("TOKEN", True))
        self.assertEqual((file.kind, file.value), (DirectiveKind.ENV_FILE, ".env.local"))

    def testPrivilegedForms(self):
        commands, *_ = parse("a:\n    privileged\n    script: x\nb:\n    privileged: false\n    script: x\n")
        self.assertIs(commands[0].directives[0].value, True)
        self.assertIs(commands[1].directives[0].value, False)

    def testLogsDirective(self):
        commands, *_ = parse("build:\n    logs: json ./build.log\n    script: make\n")
        logs = commands[0].directives[0]
        self.assertEqual((logs.format, logs.value), ("json", "./build.log"))
        with self.assertRaises(InvalidSyntaxError):
            parse("build:\n    logs: yaml ./build.log\n    script: make\n")

    def testValidateAndConditions(self):
        text = (
            "deploy(env: str):\n"
            "    validate: env in [dev, prod]\n"
            '    if: {{env}} == "prod"\n'
            "    script: ./release.sh\n"
            "    else:\n"
            "    script: ./stage.sh\n"
        )
        commands, *_ = parse(text)
        validate, condition, _, otherwise, _ = commands[0].directives
        self.assertEqual((validate.name, validate.value), ("env", "in [dev, prod]"))
        self.assertEqual(condition.value, '{{env}} == "prod"')
        self.assertEqual(otherwise.kind, DirectiveKind.ELSE)

    def testElseWithConditionRaises(self):
        with self.assertRaises(InvalidSyntaxError):
            parse("a:\n    else: true\n    script: x\n")

    def testDeprecatedSyntaxRaises(self):
        for text in ("a:\n    > script: make\n", "@var X = 1\n", "@function f():\n    echo\n"):
            with self.subTest(text=text):
                with self.assertRaises(DeprecatedSyntaxError):
                    parse(text)


class TestParserValues(TestCase):
    """Behavioral tests for literals, variables and functions."""

    def testLiteralTyping(self):
        self.assertEqual(parse_value('"hello"'), Value.string("hello"))
        self.assertEqual(parse_value("true"), Value.bool(True))
        self.assertEqual(parse_value("[a, 'b c']"), Value.array(["a", "b c"]))
        self.assertEqual(parse_value("3").kind, ValueKind.NUMBER)
        self.assertEqual(parse_value("bare words"), Value.string("bare words"))

    def testBacktickIsDynamic(self):
        value = parse_value("`git rev-parse HEAD`")
        self.assertEqual(value, Value.dynamic("git rev-parse HEAD"))
        self.assertEqual(value.render(lambda expression: "abc123"), "abc123")

    def testSubstitutionRunsExecutor(self):
        executor = FakeExecutor(stdout="1.2.3\n")
        _, variables, _, _ = parse("var VERSION = $(cat VERSION)\n", executor=executor)
        self.assertEqual(executor.commands, ["cat VERSION"])
        self.assertEqual(variables[0].value, Value.string("1.2.3"))

    def testFailedSubstitutionRaises(self):
        executor = FakeExecutor(returncode=2, stderr="no such file")
        with self.assertRaises(SubstitutionError) as context:
            parse("var VERSION = $(cat VERSION)\n", executor=executor)
        self.assertIn("failed with exit code 2: no such file", str(context.exception))

    def testVariablesRedefineAndConstantsDoNot(self):
        _, variables, constants, _ = parse("var A = 1\nvar A = 2\nconst B = x\n")
        self.assertEqual([(variable.name, variable.value.render()) for variable in variables], [("A", "2")])
        self.assertEqual(constants[0].name, "B")
        with self.assertRaises(InvalidSyntaxError):
            parse("const B = 1\nconst B = 2\n")

    def testFunctionDefinition(self):
        text = "function greet(name: str):\n    var GREETING = hello\n    echo {{GREETING}} {{name}}\n"
        _, _, _, functions = parse(text)
        greet = functions[0]
        self.assertEqual(greet.name, "greet")
        self.assertEqual(greet.body, "echo {{GREETING}} {{name}}")
        self.assertEqual(greet.variables[0].name, "GREETING")

    def testNestedFunctionRaises(self):
        with self.assertRaises(InvalidSyntaxError):
            parse("build:\n    function helper():\n        echo\n")


class TestParseCall(TestCase):
    """Behavioral tests for script line call recognition."""

    def testCallForms(self):
        self.assertEqual(parse_call("build"), ("build", {}, []))
        self.assertEqual(parse_call('deploy(env="prod", fast)'), ("deploy", {"env": "prod"}, ["fast"]))
        self.assertEqual(parse_call("tools:setup"), ("tools:setup", {}, []))

    def testShellLinesAreNotCalls(self):
        for line in ("echo hi", "make | tee log", "if", "done", "FOO=bar", "# comment", ""):
            with self.subTest(line=line):
                self.assertIsNone(parse_call(line))


if __name__ == "__main__":
    unittest.main()
