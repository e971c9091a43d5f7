from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
import yaml
from pathlib import Path

DEFAULT_SERVER_TIMEOUT = 300  # Seconds


@dataclass
class Credentials:
    username: Optional[str] = None
    password: Optional[str] = None

    def to_dict(self) -> dict:
        # Passwords are never echoed back
        return {"username": self.username}


@dataclass
class ArtifactoryServer:
    url: str
    timeout: int = DEFAULT_SERVER_TIMEOUT
    deployer_credentials: Optional[Credentials] = None
    resolver_credentials: Optional[Credentials] = None

    def get_resolving_credentials(self) -> Credentials:
        return self.resolver_credentials or Credentials()

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "timeout": self.timeout,
            "deployer_credentials": self.deployer_credentials.to_dict() if self.deployer_credentials else None,
            "resolver_credentials": self.resolver_credentials.to_dict() if self.resolver_credentials else None,
        }


@dataclass
class ServerDetails:
    repository_key: Optional[str] = None
    snapshots_repository_key: Optional[str] = None
    download_repository_key: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "repository_key": self.repository_key,
            "snapshots_repository_key": self.snapshots_repository_key,
            "download_repository_key": self.download_repository_key,
        }


@dataclass
class IncludesExcludes:
    include_patterns: str = ""
    exclude_patterns: str = ""

    def to_dict(self) -> dict:
        return {"include_patterns": self.include_patterns, "exclude_patterns": self.exclude_patterns}


@dataclass
class PublisherConfig:
    """Deployment and build-info settings of a job. Also drives the build descriptor."""
    server: ArtifactoryServer
    details: ServerDetails = field(default_factory=ServerDetails)
    override_default_deployer: bool = False
    override_credentials: Optional[Credentials] = None
    artifacts_pattern: Optional[str] = None
    ivy_pattern: Optional[str] = None
    maven2_compatible: bool = True
    deploy_artifacts: bool = True
    deploy_ivy: bool = False
    deploy_maven: bool = False
    even_if_unstable: bool = False
    skip_build_info_deploy: bool = False
    includes_excludes: Optional[IncludesExcludes] = None  # Deployment patterns
    filter_excluded_artifacts_from_build: bool = False
    copy_aggregated_artifacts: bool = False
    publish_aggregated_artifacts: bool = False
    aggregate_artifacts_path: Optional[str] = None
    run_checks: bool = False
    violation_recipients: Optional[str] = None
    scopes: Optional[str] = None
    include_publish_artifacts: bool = False
    license_auto_discovery: bool = True
    discard_old_builds: bool = False
    discard_build_artifacts: bool = False
    include_env_vars: bool = False
    env_vars_patterns: Optional[IncludesExcludes] = None
    matrix_params: Optional[str] = None
    enable_issue_tracker_integration: bool = False
    aggregate_build_issues: bool = False
    aggregation_build_status: Optional[str] = None

    def to_dict(self) -> dict:
        data = {k: v for k, v in self.__dict__.items()
                if k not in ("server", "details", "override_credentials", "includes_excludes", "env_vars_patterns")}
        data["server"] = self.server.to_dict()
        data["details"] = self.details.to_dict()
        data["override_credentials"] = self.override_credentials.to_dict() if self.override_credentials else None
        data["includes_excludes"] = self.includes_excludes.to_dict() if self.includes_excludes else None
        data["env_vars_patterns"] = self.env_vars_patterns.to_dict() if self.env_vars_patterns else None
        return data


@dataclass
class ResolverConfig:
    server: ArtifactoryServer
    details: ServerDetails = field(default_factory=ServerDetails)
    override_credentials: Optional[Credentials] = None

    def to_dict(self) -> dict:
        return {
            "server": self.server.to_dict(),
            "details": self.details.to_dict(),
            "override_credentials": self.override_credentials.to_dict() if self.override_credentials else None,
        }


_PUBLISHER_FLAGS = [
    'override_default_deployer', 'maven2_compatible', 'deploy_artifacts', 'deploy_ivy', 'deploy_maven',
    'even_if_unstable', 'skip_build_info_deploy', 'filter_excluded_artifacts_from_build',
    'copy_aggregated_artifacts', 'publish_aggregated_artifacts', 'run_checks', 'include_publish_artifacts',
    'license_auto_discovery', 'discard_old_builds', 'discard_build_artifacts', 'include_env_vars',
    'enable_issue_tracker_integration', 'aggregate_build_issues',
]
_PUBLISHER_STRINGS = [
    'artifacts_pattern', 'ivy_pattern', 'aggregate_artifacts_path', 'violation_recipients', 'scopes',
    'matrix_params', 'aggregation_build_status',
]
_DETAILS_KEYS = ['repository_key', 'snapshots_repository_key', 'download_repository_key']


def _parse_credentials(data: Any, where: str, file_name: str) -> Optional[Credentials]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"'{where}' in {file_name} must be a dictionary with 'username' and 'password'. "
                         f"Found type: {type(data)}")
    return Credentials(username=data.get('username'), password=data.get('password'))


def _parse_includes_excludes(data: Any, where: str, file_name: str) -> Optional[IncludesExcludes]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"'{where}' in {file_name} must be a dictionary with 'include' and 'exclude'. "
                         f"Found type: {type(data)}")
    return IncludesExcludes(include_patterns=data.get('include') or "",
                            exclude_patterns=data.get('exclude') or "")


def _parse_server(data: Any, file_name: str) -> ArtifactoryServer:
    if not isinstance(data, dict) or not data.get('url'):
        raise ValueError(f"Artifactory server configuration in {file_name} must have a 'url' field.")
    timeout_val = data.get('timeout', DEFAULT_SERVER_TIMEOUT)
    try:
        timeout = int(timeout_val)
    except (TypeError, ValueError):
        raise ValueError(
            f"Invalid 'timeout' value '{timeout_val}' in artifactory config for {file_name}. "
            "It must be an integer."
        )
    return ArtifactoryServer(
        url=data['url'].rstrip('/'),
        timeout=timeout,
        deployer_credentials=_parse_credentials(data.get('deployer'), 'artifactory.deployer', file_name),
        resolver_credentials=_parse_credentials(data.get('resolver'), 'artifactory.resolver', file_name),
    )


def _parse_details(data: dict) -> ServerDetails:
    return ServerDetails(**{key: data.get(key) for key in _DETAILS_KEYS})


def _parse_publisher(data: dict, server: ArtifactoryServer, file_name: str) -> PublisherConfig:
    kwargs: Dict[str, Any] = {}
    for flag in _PUBLISHER_FLAGS:
        if flag in data:
            if not isinstance(data[flag], bool):
                raise ValueError(f"Publisher option '{flag}' in {file_name} must be true or false. "
                                 f"Found: {data[flag]!r}")
            kwargs[flag] = data[flag]
    for key in _PUBLISHER_STRINGS:
        if data.get(key) is not None:
            kwargs[key] = str(data[key])
    return PublisherConfig(
        server=server,
        details=_parse_details(data),
        override_credentials=_parse_credentials(data.get('credentials'), 'publisher.credentials', file_name),
        includes_excludes=_parse_includes_excludes(data.get('deployment_patterns'),
                                                   'publisher.deployment_patterns', file_name),
        env_vars_patterns=_parse_includes_excludes(data.get('env_vars_patterns'),
                                                   'publisher.env_vars_patterns', file_name),
        **kwargs
    )


@dataclass
class JobConfig:
    name: str
    description: Optional[str] = None
    publisher: Optional[PublisherConfig] = None
    resolver: Optional[ResolverConfig] = None
    raw_config: Optional[str] = None # The raw YAML string of the job configuration

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "publisher": self.publisher.to_dict() if self.publisher else None,
            "resolver": self.resolver.to_dict() if self.resolver else None,
            "raw_config": self.raw_config,
        }

    @classmethod
    def from_yaml(cls, file_path: Path, raw_yaml_content: str) -> 'JobConfig':
        config = yaml.safe_load(raw_yaml_content) or {}
        job_data = config.get('job', {}) if isinstance(config, dict) else None
        if not isinstance(job_data, dict) or 'name' not in job_data:
            raise ValueError(f"Job config {file_path.name} must contain 'name' under 'job' key.")

        publisher_data = job_data.get('publisher')
        resolver_data = job_data.get('resolver')
        server_data = job_data.get('artifactory')

        if (publisher_data is not None or resolver_data is not None) and server_data is None:
            raise ValueError(
                f"Job config {file_path.name} declares a publisher or resolver but no 'artifactory' server."
            )
        server = _parse_server(server_data, file_path.name) if server_data is not None else None

        publisher = None
        if publisher_data is not None:
            if not isinstance(publisher_data, dict):
                raise ValueError(f"Publisher configuration in {file_path.name} must be a dictionary. "
                                 f"Found type: {type(publisher_data)}")
            publisher = _parse_publisher(publisher_data, server, file_path.name)

        resolver = None
        if resolver_data is not None:
            if not isinstance(resolver_data, dict):
                raise ValueError(f"Resolver configuration in {file_path.name} must be a dictionary. "
                                 f"Found type: {type(resolver_data)}")
            resolver = ResolverConfig(
                server=server,
                details=_parse_details(resolver_data),
                override_credentials=_parse_credentials(resolver_data.get('credentials'),
                                                        'resolver.credentials', file_path.name),
            )

        return cls(
            name=job_data['name'],
            description=job_data.get('description'),
            publisher=publisher,
            resolver=resolver,
            raw_config=raw_yaml_content
        )
