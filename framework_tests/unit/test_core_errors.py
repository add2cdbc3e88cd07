"""Tests for error hierarchy and formatting."""

import pytest

from pages_e2e.core.errors import (
    PagesE2EError,
    ConfigurationError,
    ConfigurationDriftError,
    DeploymentCheckError,
    DeploymentFailedError,
    DeploymentTimeoutError,
    GitCommandError,
    MutexReleaseError,
    MutexTimeoutError,
    OperationTimeoutError,
    ProvisioningTimeoutError,
    RemoteCallError,
    TeardownError,
)
from pages_e2e.remote.http import HttpResponse


class TestBaseError:
    """Test base PagesE2EError class."""

    def test_basic_error_creation(self) -> None:
        error = PagesE2EError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {}

    def test_error_with_details(self) -> None:
        details = {"fixture": "basic"}
        error = PagesE2EError("Test error", details)
        assert error.details == details

    @pytest.mark.parametrize(
        "error_cls",
        [ConfigurationError, RemoteCallError, OperationTimeoutError, TeardownError],
    )
    def test_hierarchy(self, error_cls: type) -> None:
        assert issubclass(error_cls, PagesE2EError)


class TestRemoteCallError:
    """Test remote call error formatting."""

    def test_format_with_message(self) -> None:
        error = RemoteCallError("Could not create Deployment.", 500, "Internal Server Error", "boom")
        assert str(error) == "Could not create Deployment.\n\n500 Internal Server Error\nboom"

    def test_format_without_message(self) -> None:
        error = RemoteCallError(status=404, reason="Not Found", body="{}")
        assert str(error) == "404 Not Found\n{}"

    def test_from_response(self) -> None:
        response = HttpResponse(status=409, reason="Conflict", text='{"id": "x"}')
        error = RemoteCallError.from_response(response, "Locked.")
        assert error.status == 409
        assert error.reason == "Conflict"
        assert error.body == '{"id": "x"}'
        assert error.message == "Locked."

    def test_from_no_response(self) -> None:
        error = RemoteCallError.from_response(None, "Nothing came back.")
        assert error.status is None
        assert error.body == ""

    def test_subclasses_keep_fields(self) -> None:
        response = HttpResponse(status=412, reason="Precondition Failed", text="")
        error = MutexReleaseError.from_response(response, "Could not release Mutex.")
        assert isinstance(error, RemoteCallError)
        assert error.status == 412

        check = DeploymentCheckError("Too many.", failures=6, threshold=5)
        assert check.failures == 6
        assert check.threshold == 5


class TestTimeoutErrors:
    """Test timeout error messages."""

    @pytest.mark.parametrize(
        "error_cls,operation",
        [
            (MutexTimeoutError, "Mutex acquisition"),
            (DeploymentTimeoutError, "Deployment"),
            (ProvisioningTimeoutError, "Edge provisioning"),
        ],
    )
    def test_message_names_operation(self, error_cls: type, operation: str) -> None:
        error = error_cls(30.0, 31.5)
        assert str(error) == f"{operation} did not complete within the timeout of 30s."
        assert error.timeout == 30.0
        assert error.elapsed == 31.5


class TestDeploymentErrors:
    """Test deployment and configuration error formatting."""

    def test_deployment_failed(self) -> None:
        error = DeploymentFailedError("dep-1", "build", "failure", "https://dash/acct/pages/view/p/dep-1")
        text = str(error)
        assert text.startswith("Deployment dep-1 has failed.")
        assert "Stage: build" in text
        assert "Status: failure" in text
        assert text.endswith("https://dash/acct/pages/view/p/dep-1")

    def test_configuration_drift(self) -> None:
        error = ConfigurationDriftError("KV namespace bindings", {"A": 1}, {})
        assert error.kind == "KV namespace bindings"
        assert "KV namespace bindings not set correctly." in str(error)
        assert "Expected: {'A': 1}" in str(error)
        assert "Actual: {}" in str(error)

    def test_teardown_error(self) -> None:
        cause = RuntimeError("gone")
        error = TeardownError("Delete Git branch", cause)
        assert error.cause is cause
        assert str(error) == "Failed to teardown Delete Git branch: gone"

    def test_git_command_error(self) -> None:
        error = GitCommandError("git push -f origin b", 128, "fatal: denied\n")
        assert error.returncode == 128
        assert str(error) == "`git push -f origin b` exited with status 128\nfatal: denied"
