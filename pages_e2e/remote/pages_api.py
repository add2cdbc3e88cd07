"""Client for the Pages control-plane API.

Every call reads the full response and validates the fields it needs; any
non-OK status, unparseable body or missing field surfaces as a
``RemoteCallError`` carrying the status, reason and raw body.
"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import RemoteCallError
from ..core.log import Logger, get_logger
from ..core.types import Deployment, HostConfig, ProjectCredentials
from .http import HttpClient, HttpResponse

M = TypeVar("M", bound=BaseModel)


class _HookCreated(BaseModel):
    hook_id: str


class _HookInvoked(BaseModel):
    id: str


class _LatestStage(BaseModel):
    name: str
    status: str


class _DeploymentResult(BaseModel):
    url: str
    latest_stage: _LatestStage


class _Envelope(BaseModel, Generic[M]):
    result: M


def _parse_result(response: HttpResponse, model: Type[M], message: str) -> M:
    """Validate ``{"result": ...}`` against ``model``."""
    if not response.ok:
        raise RemoteCallError.from_response(response, message)
    try:
        parsed = _Envelope[model].model_validate_json(response.text)
    except ValidationError as e:
        raise RemoteCallError.from_response(response, message) from e
    result = parsed.result
    for name, value in result.model_dump().items():
        if value in (None, ""):
            raise RemoteCallError.from_response(response, f"{message} Missing `{name}`.")
    return result


class PagesApiClient:
    """Bearer-authenticated calls against one Pages project."""

    def __init__(
        self,
        http: HttpClient,
        host: HostConfig,
        credentials: ProjectCredentials,
        logger: Optional[Logger] = None,
    ) -> None:
        self._http = http
        self._host = host
        self._credentials = credentials
        self._logger = logger or get_logger(__name__)

    @property
    def project_name(self) -> str:
        return self._credentials.project_name

    @property
    def _project_url(self) -> str:
        return (
            f"{self._host.api}/client/v4/accounts/{self._credentials.account_id}"
            f"/pages/projects/{self._credentials.project_name}"
        )

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._credentials.api_token}"}

    def dashboard_url(self, deployment_id: str) -> str:
        return (
            f"{self._host.dash}/{self._credentials.account_id}/pages/view/"
            f"{self._credentials.project_name}/{deployment_id}"
        )

    async def _request(self, method: str, url: str, message: str, **kwargs: Any) -> HttpResponse:
        try:
            return await self._http.request(method, url, **kwargs)
        except RemoteCallError as e:
            raise RemoteCallError(f"{message} {e.message}") from e

    async def create_deploy_hook(self, name: str, branch: str) -> str:
        """Create a deploy hook building ``branch``; returns the hook id."""
        message = "Could not create Deploy Hook."
        response = await self._request(
            "POST",
            f"{self._project_url}/deploy_hooks",
            message,
            headers=self._auth_headers,
            json_body={"name": name, "branch": branch},
        )
        return _parse_result(response, _HookCreated, message).hook_id

    async def delete_deploy_hook(self, hook_id: str) -> None:
        message = f"Could not delete Deploy Hook {hook_id}."
        response = await self._request(
            "DELETE",
            f"{self._project_url}/deploy_hooks/{hook_id}",
            message,
            headers=self._auth_headers,
        )
        if not response.ok:
            raise RemoteCallError.from_response(response, message)

    async def invoke_deploy_hook(self, hook_id: str) -> str:
        """Fire a deploy hook; returns the id of the deployment it created."""
        message = "Could not create Deployment."
        response = await self._request(
            "POST",
            f"{self._host.api}/client/v4/pages/webhooks/deploy_hooks/{hook_id}",
            message,
        )
        return _parse_result(response, _HookInvoked, message).id

    async def get_deployment(self, deployment_id: str) -> Deployment:
        message = "Could not parse Deployment API response."
        response = await self._request(
            "GET",
            f"{self._project_url}/deployments/{deployment_id}",
            message,
            headers=self._auth_headers,
        )
        result = _parse_result(response, _DeploymentResult, message)
        return Deployment(
            id=deployment_id,
            url=result.url,
            stage=result.latest_stage.name,
            status=result.latest_stage.status,
        )

    async def get_project(self) -> Dict[str, Any]:
        response = await self._request(
            "GET", self._project_url, "Could not get project.", headers=self._auth_headers
        )
        return self._project_from(response, "Could not get project.")

    async def update_project(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """PATCH the project; returns the project as stored after the write."""
        response = await self._request(
            "PATCH",
            self._project_url,
            "Could not update project.",
            headers={**self._auth_headers, "Content-Type": "application/json"},
            json_body=payload,
        )
        return self._project_from(response, "Could not update project.")

    @staticmethod
    def _project_from(response: HttpResponse, message: str) -> Dict[str, Any]:
        if not response.ok:
            raise RemoteCallError.from_response(response, message)
        try:
            project = response.json()["result"]
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteCallError.from_response(response, message) from e
        if not isinstance(project, dict):
            raise RemoteCallError.from_response(response, message)
        return project
