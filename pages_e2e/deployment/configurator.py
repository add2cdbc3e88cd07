"""Reconciles a Pages project's build and preview deployment configuration.

Each binding kind is replaced wholesale: names present remotely but not
desired are nulled out, desired names are written. Running the same
reconciliation twice produces the same project.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..core.enums import BindingKind
from ..core.errors import ConfigurationDriftError
from ..core.log import Logger, get_logger, log_event
from ..remote.pages_api import PagesApiClient

Descriptor = Dict[str, Any]
BindingSet = Dict[BindingKind, Dict[str, Descriptor]]


@dataclass(frozen=True)
class DesiredProjectState:
    """What a fixture needs the remote project to look like."""

    build_command: str = ""
    destination_dir: str = ""
    root_dir: str = ""
    compatibility_date: str = "2023-03-26"
    compatibility_flags: List[str] = field(default_factory=list)
    bindings: BindingSet = field(default_factory=dict)

    def bindings_for(self, kind: BindingKind) -> Dict[str, Descriptor]:
        return self.bindings.get(kind, {})


@dataclass(frozen=True)
class BindingDiff:
    """Changes for one binding kind."""

    to_null: List[str]
    to_set: Dict[str, Descriptor]

    def as_payload(self) -> Dict[str, Optional[Descriptor]]:
        payload: Dict[str, Optional[Descriptor]] = {name: None for name in self.to_null}
        payload.update(self.to_set)
        return payload


def diff_bindings(existing_keys: Iterable[str], desired: Dict[str, Descriptor]) -> BindingDiff:
    """Null every existing name that is not desired and set every desired one."""
    return BindingDiff(
        to_null=[name for name in existing_keys if name not in desired],
        to_set=dict(desired),
    )


def _preview(project: Dict[str, Any]) -> Dict[str, Any]:
    return (project.get("deployment_configs") or {}).get("preview") or {}


def build_update_payload(project: Dict[str, Any], desired_state: DesiredProjectState) -> Dict[str, Any]:
    """PATCH body turning ``project`` into ``desired_state``."""
    preview = _preview(project)
    preview_payload: Dict[str, Any] = {
        "compatibility_date": desired_state.compatibility_date,
        "compatibility_flags": list(desired_state.compatibility_flags),
    }
    for kind in BindingKind:
        existing = preview.get(kind.value) or {}
        preview_payload[kind.value] = diff_bindings(
            existing.keys(), desired_state.bindings_for(kind)
        ).as_payload()
    return {
        "build_config": {
            "build_command": desired_state.build_command,
            "destination_dir": desired_state.destination_dir,
            "root_dir": desired_state.root_dir,
        },
        "deployment_configs": {"preview": preview_payload},
    }


def _expect(kind: str, expected: Any, actual: Any) -> None:
    if expected != actual:
        raise ConfigurationDriftError(kind, expected, actual)


def verify_project(project: Dict[str, Any], desired_state: DesiredProjectState) -> None:
    """Check every written field against ``project``.

    Raises:
        ConfigurationDriftError: On the first field that does not match
    """
    build_config = project.get("build_config") or {}
    _expect("Build command", desired_state.build_command, build_config.get("build_command"))
    _expect("Build output directory", desired_state.destination_dir, build_config.get("destination_dir"))
    _expect("Root directory", desired_state.root_dir, build_config.get("root_dir"))

    preview = _preview(project)
    _expect(
        BindingKind.ENV_VARS.label,
        desired_state.bindings_for(BindingKind.ENV_VARS),
        preview.get(BindingKind.ENV_VARS.value) or {},
    )
    _expect("Compatibility date", desired_state.compatibility_date, preview.get("compatibility_date"))
    _expect(
        "Compatibility flags",
        list(desired_state.compatibility_flags),
        preview.get("compatibility_flags") or [],
    )
    for kind in BindingKind:
        if kind is BindingKind.ENV_VARS:
            continue
        _expect(kind.label, desired_state.bindings_for(kind), preview.get(kind.value) or {})


class ProjectConfigurator:
    """Applies a ``DesiredProjectState`` to the remote project.

    Must only run while holding the project's mutex.
    """

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self._logger = logger or get_logger(__name__)

    async def reconcile(self, api: PagesApiClient, desired_state: DesiredProjectState) -> Dict[str, Any]:
        log_event(self._logger, "deployment", f"Configuring project {api.project_name}...")
        self._logger.debug("Getting initial project state...")
        initial = await api.get_project()

        payload = build_update_payload(initial, desired_state)
        self._logger.debug("Update payload: %s", payload)

        project = await api.update_project(payload)
        verify_project(project, desired_state)
        self._logger.info("Project %s configured.", api.project_name)
        return project
