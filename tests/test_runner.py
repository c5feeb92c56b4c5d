"""Tests for argument binding and plan execution."""

import signal

import pytest

from chore import runner as runner_mod
from chore.dag import resolve
from chore.dsl import param, recipe, recipes, sh
from chore.errors import MissingArgumentError, SubprocessFailure, TooManyArgumentsError
from chore.model import Request
from chore.parser import parse
from chore.runner import PlanRunner, RunOptions, bind_arguments, execute, prepare
from chore.ui.console import get_console


def _run(recipe_set, *requests, **options):
    plan = resolve(recipe_set, [r if isinstance(r, Request) else Request(r) for r in requests])
    return execute(recipe_set, plan, RunOptions(**options))


class TestBindArguments:
    """Positional arguments onto declared parameters."""

    def test_explicit_and_default(self):
        r = recipe("deploy", "true", params=["env", param("region", "eu")])
        assert bind_arguments(r, ["prod"]) == {"env": "prod", "region": "eu"}
        assert bind_arguments(r, ["prod", "us"]) == {"env": "prod", "region": "us"}

    def test_missing_required(self):
        r = recipe("deploy", "true", params=["env"])
        with pytest.raises(MissingArgumentError) as exc_info:
            bind_arguments(r, [])
        assert exc_info.value.parameter == "env"

    def test_too_many(self):
        r = recipe("build", "true")
        with pytest.raises(TooManyArgumentsError):
            bind_arguments(r, ["extra"])

    def test_prepare_substitutes_parameters_and_variables(self):
        recipe_set = recipes(
            recipe("build", "cargo build --{{ profile }} {{ target }}", params=[param("profile", "debug")]),
            variables={"target": "x86_64"},
        )
        plan = resolve(recipe_set, [Request("build", ("release",))])
        [prepared] = prepare(recipe_set, plan)
        assert prepared.values == {"profile": "release"}
        assert [c.text for c in prepared.commands] == ["cargo build --release x86_64"]

    def test_parameters_shadow_variables(self):
        recipe_set = recipes(
            recipe("say", "echo {{ word }}", params=[param("word", "param")]),
            variables={"word": "variable"},
        )
        [prepared] = prepare(recipe_set, resolve(recipe_set, [Request("say")]))
        assert prepared.commands[0].text == "echo param"


class TestExecute:
    """Running plans against a real shell."""

    def test_dependencies_run_first(self, workdir, read_log):
        recipe_set = parse(
            "lint: fmt-check\n"
            "  echo lint >> log.txt\n"
            "fmt-check:\n"
            "  echo fmt-check >> log.txt\n"
        )
        assert _run(recipe_set, "lint") == 0
        assert read_log() == ["fmt-check", "lint"]

    def test_shared_prerequisite_runs_once(self, workdir, read_log):
        recipe_set = recipes(
            recipe("c", "echo c >> log.txt"),
            recipe("a", "echo a >> log.txt", needs=["c"]),
            recipe("b", "echo b >> log.txt", needs=["c"]),
        )
        assert _run(recipe_set, "a", "b") == 0
        assert read_log() == ["c", "a", "b"]

    def test_failure_short_circuits(self, workdir, read_log):
        recipe_set = recipes(
            recipe("x", "exit 3", "echo cmd2 >> log.txt"),
            recipe("after", "echo after >> log.txt", needs=["x"]),
        )
        assert _run(recipe_set, "after") == 3
        assert read_log() == []

    def test_failure_is_reported(self, workdir, capsys):
        recipe_set = recipes(recipe("x", "exit 1"))
        assert _run(recipe_set, "x") == 1
        err = capsys.readouterr().err
        assert "RECIPE FAILED: x" in err
        assert "Exit code: 1" in err

    def test_runner_raises_subprocess_failure(self, workdir):
        recipe_set = recipes(recipe("x", "exit 7"))
        prepared = prepare(recipe_set, resolve(recipe_set, [Request("x")]))
        with pytest.raises(SubprocessFailure) as exc_info:
            PlanRunner().run(prepared)
        assert exc_info.value.status == 7
        assert exc_info.value.exit_status == 7
        assert exc_info.value.command == "exit 7"

    def test_killed_by_signal_uses_reserved_status(self, workdir):
        recipe_set = recipes(recipe("x", "kill -TERM $$"))
        prepared = prepare(recipe_set, resolve(recipe_set, [Request("x")]))
        with pytest.raises(SubprocessFailure) as exc_info:
            PlanRunner().run(prepared)
        assert exc_info.value.signal == signal.SIGTERM
        assert exc_info.value.exit_status == 1

    def test_ignored_failure_continues(self, workdir, read_log, capsys):
        recipe_set = recipes(recipe("x", sh("exit 4", ignore_errors=True), "echo after >> log.txt"))
        assert _run(recipe_set, "x") == 0
        assert read_log() == ["after"]
        assert "(ignored)" in capsys.readouterr().err

    def test_arguments_are_substituted(self, workdir, read_log):
        recipe_set = parse("greet name greeting='hi':\n  echo {{ greeting }}-{{ name }} >> log.txt\n")
        assert _run(recipe_set, Request("greet", ("bob",))) == 0
        assert read_log() == ["hi-bob"]

    def test_dependency_uses_its_defaults(self, workdir, read_log):
        recipe_set = parse(
            "deploy env: build\n  echo deploy-{{ env }} >> log.txt\n"
            "build mode='debug':\n  echo build-{{ mode }} >> log.txt\n"
        )
        assert _run(recipe_set, Request("deploy", ("prod",))) == 0
        assert read_log() == ["build-debug", "deploy-prod"]

    def test_missing_argument_fails_before_anything_runs(self, workdir, read_log):
        recipe_set = parse("first:\n  echo first >> log.txt\nsecond x:\n  echo {{ x }} >> log.txt\n")
        plan = resolve(recipe_set, [Request("first"), Request("second")])
        with pytest.raises(MissingArgumentError):
            execute(recipe_set, plan)
        assert read_log() == []

    def test_dependency_with_required_parameter(self, workdir, read_log):
        recipe_set = parse("top: needs-arg\n  echo top >> log.txt\nneeds-arg x:\n  echo {{ x }} >> log.txt\n")
        plan = resolve(recipe_set, [Request("top")])
        with pytest.raises(MissingArgumentError) as exc_info:
            execute(recipe_set, plan)
        assert exc_info.value.as_dependency is True
        assert read_log() == []

    def test_environment_is_inherited(self, workdir, read_log, monkeypatch):
        monkeypatch.setenv("CHORE_TEST_VALUE", "from-env")
        recipe_set = recipes(recipe("x", 'echo "$CHORE_TEST_VALUE" >> log.txt'))
        assert _run(recipe_set, "x") == 0
        assert read_log() == ["from-env"]

    def test_custom_shell(self, workdir, read_log):
        recipe_set = recipes(recipe("x", "echo shell >> log.txt"))
        plan = resolve(recipe_set, [Request("x")])
        assert execute(recipe_set, plan, RunOptions.with_shell("sh -c")) == 0
        assert read_log() == ["shell"]


class TestEcho:
    """Which lines are echoed before they run."""

    def test_lines_are_echoed(self, workdir, capsys):
        recipe_set = recipes(recipe("x", ": loud", sh(": hushed", quiet=True)))
        _run(recipe_set, "x")
        err = capsys.readouterr().err
        assert ": loud" in err
        assert "hushed" not in err

    def test_quiet_recipe(self, workdir, capsys):
        recipe_set = parse("@x:\n  : loud\n")
        _run(recipe_set, "x")
        assert "loud" not in capsys.readouterr().err

    def test_quiet_option(self, workdir, capsys):
        recipe_set = recipes(recipe("x", ": loud"))
        _run(recipe_set, "x", quiet=True)
        assert "loud" not in capsys.readouterr().err

    def test_dry_run_runs_nothing(self, workdir, read_log, capsys):
        recipe_set = recipes(
            recipe("a", "echo a >> log.txt"),
            recipe("b", sh("echo b >> log.txt", quiet=True), needs=["a"]),
        )
        assert _run(recipe_set, "b", dry_run=True) == 0
        assert read_log() == []
        err = capsys.readouterr().err
        assert err.index("echo a >> log.txt") < err.index("echo b >> log.txt")


class _FakeProc:
    """Popen stand-in whose first wait() is interrupted."""

    started = []

    def __init__(self, argv):
        self.argv = argv
        self.pid = 4242
        self.returncode = None
        self.signals = []
        self._waits = 0
        _FakeProc.started.append(self)

    def wait(self):
        self._waits += 1
        if self._waits == 1:
            raise KeyboardInterrupt
        self.returncode = -signal.SIGINT
        return self.returncode

    def poll(self):
        return self.returncode

    def send_signal(self, signum):
        self.signals.append(signum)


class TestInterrupt:
    """Ctrl-C reaches the running child and stops the plan."""

    def test_interrupt_is_forwarded_and_stops(self, workdir, monkeypatch):
        _FakeProc.started = []
        monkeypatch.setattr(runner_mod.subprocess, "Popen", _FakeProc)
        recipe_set = recipes(recipe("a", "sleep 100", "echo never"), recipe("b", "echo never", needs=["a"]))
        prepared = prepare(recipe_set, resolve(recipe_set, [Request("b")]))

        with pytest.raises(KeyboardInterrupt):
            PlanRunner(RunOptions(quiet=True)).run(prepared)

        assert len(_FakeProc.started) == 1
        assert _FakeProc.started[0].signals == [signal.SIGINT]
        assert _FakeProc.started[0].argv == ["sh", "-cu", "sleep 100"]

    def test_sigterm_is_forwarded(self, workdir):
        runner = PlanRunner()
        proc = _FakeProc(["sh"])
        runner._current = proc
        runner._forward(signal.SIGTERM, None)
        assert proc.signals == [signal.SIGTERM]
        assert runner._terminated == signal.SIGTERM

    def test_nothing_starts_after_sigterm(self, workdir, read_log):
        recipe_set = recipes(recipe("a", "echo a >> log.txt"))
        prepared = prepare(recipe_set, resolve(recipe_set, [Request("a")]))
        runner = PlanRunner()
        runner._terminated = signal.SIGTERM
        with pytest.raises(SubprocessFailure) as exc_info:
            runner.run(prepared)
        assert exc_info.value.exit_status == 1
        assert read_log() == []
        assert exc_info.value.started is False
        assert "not started" in str(exc_info.value)

    def test_not_started_is_reported(self, capsys):
        failure = SubprocessFailure(recipe="a", command="make", status=-15, signal=15, started=False)
        get_console().print_failure(failure)
        err = capsys.readouterr().err
        assert "Not started" in err
        assert "Exit code" not in err
