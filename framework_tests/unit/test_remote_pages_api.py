"""Tests for the Pages control-plane client."""

import asyncio
from typing import Any

import pytest

from pages_e2e.core.errors import RemoteCallError
from pages_e2e.core.types import HostConfig, ProjectCredentials
from pages_e2e.remote.pages_api import PagesApiClient

HOST = HostConfig(api="https://api.example.com", dash="https://dash.example.com")
PROJECT_URL = "https://api.example.com/client/v4/accounts/acct/pages/projects/e2e-project"


@pytest.fixture
def api(fake_http: Any, credentials: ProjectCredentials) -> PagesApiClient:
    return PagesApiClient(fake_http, HOST, credentials)


class TestDeployHooks:
    """Test deploy hook creation, invocation and deletion."""

    def test_create_deploy_hook(self, api: PagesApiClient, fake_http: Any, make_response: Any) -> None:
        fake_http.queue_responses(make_response(200, {"result": {"hook_id": "hook-1"}}))

        hook_id = asyncio.run(api.create_deploy_hook("basic-1", "basic-1"))

        assert hook_id == "hook-1"
        method, url, headers, body = fake_http.requests[0]
        assert (method, url) == ("POST", f"{PROJECT_URL}/deploy_hooks")
        assert headers["Authorization"] == "Bearer token"
        assert body == {"name": "basic-1", "branch": "basic-1"}

    def test_create_deploy_hook_missing_field(
        self, api: PagesApiClient, fake_http: Any, make_response: Any
    ) -> None:
        fake_http.queue_responses(make_response(200, {"result": {}}))

        with pytest.raises(RemoteCallError) as exc_info:
            asyncio.run(api.create_deploy_hook("b", "b"))

        assert exc_info.value.message == "Could not create Deploy Hook."
        assert exc_info.value.status == 200
        assert exc_info.value.body == '{"result": {}}'

    def test_create_deploy_hook_empty_id(
        self, api: PagesApiClient, fake_http: Any, make_response: Any
    ) -> None:
        fake_http.queue_responses(make_response(200, {"result": {"hook_id": ""}}))

        with pytest.raises(RemoteCallError, match="Missing `hook_id`"):
            asyncio.run(api.create_deploy_hook("b", "b"))

    def test_create_deploy_hook_http_error(
        self, api: PagesApiClient, fake_http: Any, make_response: Any
    ) -> None:
        fake_http.queue_responses(make_response(403, "forbidden", reason="Forbidden"))

        with pytest.raises(RemoteCallError) as exc_info:
            asyncio.run(api.create_deploy_hook("b", "b"))

        assert str(exc_info.value) == "Could not create Deploy Hook.\n\n403 Forbidden\nforbidden"

    def test_invoke_deploy_hook_is_unauthenticated(
        self, api: PagesApiClient, fake_http: Any, make_response: Any
    ) -> None:
        fake_http.queue_responses(make_response(200, {"result": {"id": "dep-1"}}))

        deployment_id = asyncio.run(api.invoke_deploy_hook("hook-1"))

        assert deployment_id == "dep-1"
        method, url, headers, _ = fake_http.requests[0]
        assert method == "POST"
        assert url == "https://api.example.com/client/v4/pages/webhooks/deploy_hooks/hook-1"
        assert "Authorization" not in headers

    def test_invoke_unparseable(self, api: PagesApiClient, fake_http: Any, make_response: Any) -> None:
        fake_http.queue_responses(make_response(200, "<html>"))

        with pytest.raises(RemoteCallError, match="Could not create Deployment."):
            asyncio.run(api.invoke_deploy_hook("hook-1"))

    def test_delete_deploy_hook(self, api: PagesApiClient, fake_http: Any, make_response: Any) -> None:
        fake_http.queue_responses(make_response(200, {}), make_response(404, "gone"))

        asyncio.run(api.delete_deploy_hook("hook-1"))
        with pytest.raises(RemoteCallError):
            asyncio.run(api.delete_deploy_hook("hook-1"))

        assert fake_http.requests[0][:2] == ("DELETE", f"{PROJECT_URL}/deploy_hooks/hook-1")

    def test_transport_error_keeps_context(self, api: PagesApiClient, fake_http: Any) -> None:
        fake_http.queue_responses(RemoteCallError("POST x failed: refused"))

        with pytest.raises(RemoteCallError, match="Could not create Deploy Hook. POST x failed"):
            asyncio.run(api.create_deploy_hook("b", "b"))


class TestDeploymentsAndProjects:
    """Test deployment status and project reads/writes."""

    def test_get_deployment(self, api: PagesApiClient, fake_http: Any, make_response: Any) -> None:
        fake_http.queue_responses(
            make_response(
                200,
                {
                    "result": {
                        "url": "https://abc.e2e-project.pages.dev",
                        "latest_stage": {"name": "build", "status": "active"},
                    }
                },
            )
        )

        deployment = asyncio.run(api.get_deployment("dep-1"))

        assert deployment.id == "dep-1"
        assert deployment.url == "https://abc.e2e-project.pages.dev"
        assert (deployment.stage, deployment.status) == ("build", "active")
        assert fake_http.requests[0][1] == f"{PROJECT_URL}/deployments/dep-1"

    def test_get_deployment_missing_stage(
        self, api: PagesApiClient, fake_http: Any, make_response: Any
    ) -> None:
        fake_http.queue_responses(make_response(200, {"result": {"url": "https://x"}}))

        with pytest.raises(RemoteCallError):
            asyncio.run(api.get_deployment("dep-1"))

    def test_get_and_update_project(self, api: PagesApiClient, fake_http: Any, make_response: Any) -> None:
        project = {"name": "e2e-project", "build_config": {"build_command": "make"}}
        fake_http.queue_responses(
            make_response(200, {"result": project}), make_response(200, {"result": project})
        )

        assert asyncio.run(api.get_project()) == project
        assert asyncio.run(api.update_project({"build_config": {}})) == project

        method, url, headers, body = fake_http.requests[1]
        assert (method, url) == ("PATCH", PROJECT_URL)
        assert headers["Content-Type"] == "application/json"
        assert body == {"build_config": {}}

    def test_project_without_result(self, api: PagesApiClient, fake_http: Any, make_response: Any) -> None:
        fake_http.queue_responses(make_response(200, {"result": None}))

        with pytest.raises(RemoteCallError, match="Could not get project."):
            asyncio.run(api.get_project())

    def test_dashboard_url(self, api: PagesApiClient) -> None:
        assert api.dashboard_url("dep-1") == "https://dash.example.com/acct/pages/view/e2e-project/dep-1"
