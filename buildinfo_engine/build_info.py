from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Optional, Tuple, Mapping, Dict, Any
from enum import Enum

ARTIFACTORY_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def format_build_date(value: datetime) -> str:
    # Millisecond precision followed by a +hhmm offset, e.g. 2024-01-02T03:04:05.678+0000
    return value.strftime(ARTIFACTORY_DATE_FORMAT)[:-3] + value.strftime("%z")


class BuildType(Enum):
    GENERIC = "GENERIC"
    MAVEN = "MAVEN"
    ANT = "ANT"
    IVY = "IVY"
    GRADLE = "GRADLE"


@dataclass(frozen=True)
class Agent:
    name: str
    version: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "version": self.version}


@dataclass(frozen=True)
class LicenseControl:
    run_checks: bool = False
    include_published_artifacts: bool = False
    auto_discover: bool = False
    violation_recipients: Optional[str] = None  # Whitespace/comma separated addresses
    scopes: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "runChecks": self.run_checks,
            "includePublishedArtifacts": self.include_published_artifacts,
            "autoDiscover": self.auto_discover,
        }
        if self.violation_recipients:
            data["licenseViolationsRecipientsList"] = self.violation_recipients
        if self.scopes:
            data["scopesList"] = self.scopes
        return data


@dataclass(frozen=True)
class BuildRetention:
    delete_build_artifacts: bool = False
    count: Optional[int] = None
    days_to_keep: Optional[int] = None
    minimum_build_date: Optional[datetime] = None
    build_numbers_not_to_be_deleted: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "build_numbers_not_to_be_deleted", tuple(self.build_numbers_not_to_be_deleted))

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "deleteBuildArtifacts": self.delete_build_artifacts,
            "buildNumbersNotToBeDiscarded": list(self.build_numbers_not_to_be_deleted),
        }
        if self.count is not None:
            data["count"] = self.count
        if self.minimum_build_date is not None:
            data["minimumBuildDate"] = format_build_date(self.minimum_build_date)
        return data


@dataclass(frozen=True)
class BuildInfo:
    """The build descriptor published to the repository server. Built once, never mutated."""
    name: str
    number: str
    started: datetime
    duration_millis: int
    type: BuildType = BuildType.GENERIC
    agent: Optional[Agent] = None
    build_agent: Optional[Agent] = None
    url: Optional[str] = None
    artifactory_principal: str = ""
    principal: Optional[str] = None
    parent_name: Optional[str] = None
    parent_number: Optional[str] = None
    parent_build_id: Optional[str] = None  # Raw upstream project name, kept for older servers
    vcs_revision: Optional[str] = None
    license_control: LicenseControl = field(default_factory=LicenseControl)
    build_retention: BuildRetention = field(default_factory=BuildRetention)
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view over a private copy, the caller's dict stays detached
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "version": "1.0.1",
            "name": self.name,
            "number": self.number,
            "type": self.type.value,
            "started": format_build_date(self.started),
            "durationMillis": self.duration_millis,
            "artifactoryPrincipal": self.artifactory_principal,
            "licenseControl": self.license_control.to_dict(),
            "buildRetention": self.build_retention.to_dict(),
            "properties": dict(self.properties),
        }
        if self.agent:
            data["agent"] = self.agent.to_dict()
        if self.build_agent:
            data["buildAgent"] = self.build_agent.to_dict()
        if self.url:
            data["url"] = self.url
        if self.principal:
            data["principal"] = self.principal
        if self.parent_name:
            data["parentName"] = self.parent_name
            data["parentNumber"] = self.parent_number
        if self.parent_build_id:
            data["parentBuildId"] = self.parent_build_id
        if self.vcs_revision:
            data["vcsRevision"] = self.vcs_revision
        return data
