"""Tests for the execution error hierarchy."""

import pickle

import pytest

from agentbench.exec.errors import (
    CustomizerStateError,
    ExecError,
    SandboxClosedError,
    SandboxError,
    SandboxTimeoutError,
    SpecValidationError,
)


class TestErrorHierarchy:
    def test_all_errors_share_a_base(self) -> None:
        for cls in (
            CustomizerStateError,
            SandboxClosedError,
            SandboxError,
            SandboxTimeoutError,
            SpecValidationError,
        ):
            assert issubclass(cls, ExecError)

    def test_timeout_is_not_a_sandbox_error(self) -> None:
        assert not issubclass(SandboxTimeoutError, SandboxError)

    def test_validation_error_is_value_error(self) -> None:
        assert issubclass(SpecValidationError, ValueError)

    def test_state_errors_are_runtime_errors(self) -> None:
        assert issubclass(SandboxClosedError, RuntimeError)
        assert issubclass(CustomizerStateError, RuntimeError)


class TestSandboxError:
    def test_message_with_detail(self) -> None:
        err = SandboxError("container crashed")
        assert "container crashed" in str(err)
        assert err.detail == "container crashed"

    def test_message_without_detail(self) -> None:
        err = SandboxError()
        assert "Sandbox error" in str(err)

    def test_cause_is_preserved(self) -> None:
        cause = FileNotFoundError("docker")
        try:
            try:
                raise cause
            except OSError as exc:
                raise SandboxError("Failed to run docker") from exc
        except SandboxError as err:
            assert err.__cause__ is cause


class TestSandboxClosedError:
    def test_default_message(self) -> None:
        assert "closed" in str(SandboxClosedError())


class TestSandboxTimeoutError:
    def test_attributes(self) -> None:
        err = SandboxTimeoutError("Process timed out after 30.0s", timeout=30.0, elapsed=30.5)
        assert err.timeout == 30.0
        assert err.elapsed == 30.5
        assert err.has_timeout_details is True
        assert "30.0s" in str(err)

    def test_message_only(self) -> None:
        err = SandboxTimeoutError("gave up")
        assert err.timeout is None
        assert err.elapsed is None
        assert err.has_timeout_details is False
        assert err.detailed_message == "gave up"

    def test_detailed_message_with_timeout(self) -> None:
        err = SandboxTimeoutError("timed out", timeout=2.0)
        assert err.detailed_message == "timed out (timeout: 2.0s)"

    def test_detailed_message_with_timeout_and_elapsed(self) -> None:
        err = SandboxTimeoutError("timed out", timeout=2.0, elapsed=2.25)
        assert err.detailed_message == "timed out (timeout: 2.0s, elapsed: 2.250s)"

    def test_detailed_message_with_elapsed_only(self) -> None:
        err = SandboxTimeoutError("timed out", elapsed=1.0)
        assert err.has_timeout_details is False
        assert "elapsed: 1.000s" in err.detailed_message

    def test_fields_survive_chaining(self) -> None:
        with pytest.raises(SandboxTimeoutError) as exc_info:
            try:
                raise TimeoutError
            except TimeoutError as exc:
                raise SandboxTimeoutError("timed out", timeout=1.0) from exc
        assert exc_info.value.timeout == 1.0
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    def test_pickle_round_trip_keeps_fields(self) -> None:
        err = SandboxTimeoutError("timed out", timeout=1.5, elapsed=1.6)
        clone = pickle.loads(pickle.dumps(err))
        assert clone.timeout == 1.5
        assert clone.elapsed == 1.6
        assert str(clone) == "timed out"
