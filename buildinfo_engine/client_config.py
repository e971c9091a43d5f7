"""
Extractor client configuration.

Everything an external extractor needs to publish a build on its own, grouped in
root/resolver/publisher/info sections and flattened to prefixed property keys.
"""
from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Mapping, Any

from .patterns import IncludeExcludePatterns, path_conflicts

# --- Property names ---
BUILD_INFO_CONFIG_PREFIX = "buildInfoConfig."
PROP_PROPS_FILE = BUILD_INFO_CONFIG_PREFIX + "propertiesFile"
PROPS_FILE_ENV_VAR = "BUILDINFO_PROPFILE"

ARTIFACTORY_PREFIX = "artifactory."
PROP_RESOLVE_PREFIX = ARTIFACTORY_PREFIX + "resolve."
PROP_PUBLISH_PREFIX = ARTIFACTORY_PREFIX + "publish."
PROP_DEPLOY_PARAM_PROP_PREFIX = ARTIFACTORY_PREFIX + "deploy."

BUILD_INFO_PREFIX = "buildInfo."
BUILD_INFO_ENVIRONMENT_PREFIX = BUILD_INFO_PREFIX + "env."
LICENSE_CONTROL_PREFIX = BUILD_INFO_PREFIX + "licenseControl."
ISSUES_PREFIX = BUILD_INFO_PREFIX + "issues."

# Prefixes accepted verbatim from build variables
RECOGNIZED_PREFIXES = (ARTIFACTORY_PREFIX, BUILD_INFO_PREFIX, BUILD_INFO_CONFIG_PREFIX)

# Matrix params mirrored from the build info
MATRIX_BUILD_NAME = "build.name"
MATRIX_BUILD_NUMBER = "build.number"
MATRIX_BUILD_TIMESTAMP = "build.timestamp"
MATRIX_VCS_REVISION = "vcs.revision"
MATRIX_BUILD_PARENT_NAME = "build.parentName"
MATRIX_BUILD_PARENT_NUMBER = "build.parentNumber"


def _to_property_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(section: Any, prefix: str) -> Dict[str, str]:
    """Maps each non-None field to prefix + the field's 'key' metadata."""
    properties = {}
    for section_field in fields(section):
        key = section_field.metadata.get("key")
        if not key:
            continue
        value = _to_property_value(getattr(section, section_field.name))
        if value is not None:
            properties[prefix + key] = value
    return properties


def _prop(key: str, default: Any = None):
    return field(default=default, metadata={"key": key})


@dataclass
class ResolverSection:
    context_url: Optional[str] = _prop("contextUrl")
    repo_key: Optional[str] = _prop("repoKey")
    username: Optional[str] = _prop("username")
    password: Optional[str] = _prop("password")

    def to_properties(self) -> Dict[str, str]:
        return _flatten(self, PROP_RESOLVE_PREFIX)


@dataclass
class PublisherSection:
    context_url: Optional[str] = _prop("contextUrl")
    repo_key: Optional[str] = _prop("repoKey")
    snapshot_repo_key: Optional[str] = _prop("snapshotRepoKey")
    username: Optional[str] = _prop("username")
    password: Optional[str] = _prop("password")
    publish_artifacts: Optional[bool] = _prop("artifacts")
    publish_build_info: Optional[bool] = _prop("buildInfo")
    even_unstable: Optional[bool] = _prop("unstable")
    ivy: Optional[bool] = _prop("ivy")
    maven: Optional[bool] = _prop("maven")
    m2_compatible: Optional[bool] = _prop("ivy.m2compatible")
    ivy_pattern: Optional[str] = _prop("ivy.ivyPattern")
    ivy_artifact_pattern: Optional[str] = _prop("ivy.artPattern")
    include_patterns: Optional[str] = _prop("includePatterns")
    exclude_patterns: Optional[str] = _prop("excludePatterns")
    filter_excluded_artifacts_from_build: Optional[bool] = _prop("filterExcludedArtifactsFromBuild")
    copy_aggregated_artifacts: Optional[bool] = _prop("copyAggregatedArtifacts")
    publish_aggregated_artifacts: Optional[bool] = _prop("publishAggregatedArtifacts")
    aggregate_artifacts: Optional[str] = _prop("aggregateArtifacts")
    matrix_params: Dict[str, str] = field(default_factory=dict)

    def add_matrix_param(self, key: str, value: str):
        self.matrix_params[key] = value

    def to_properties(self) -> Dict[str, str]:
        properties = _flatten(self, PROP_PUBLISH_PREFIX)
        for key, value in self.matrix_params.items():
            if key.startswith(PROP_DEPLOY_PARAM_PROP_PREFIX):
                properties[key] = value
            else:
                properties[PROP_DEPLOY_PARAM_PROP_PREFIX + key] = value
        return properties


@dataclass
class LicenseControlSection:
    run_checks: Optional[bool] = _prop("runChecks")
    include_published_artifacts: Optional[bool] = _prop("includePublishedArtifacts")
    auto_discover: Optional[bool] = _prop("autoDiscover")
    violation_recipients: Optional[str] = _prop("violationRecipients")
    scopes: Optional[str] = _prop("scopes")

    def to_properties(self) -> Dict[str, str]:
        return _flatten(self, LICENSE_CONTROL_PREFIX)


@dataclass
class IssuesSection:
    tracker_name: Optional[str] = _prop("tracker.name")
    tracker_version: Optional[str] = _prop("tracker.version")
    aggregate_build_issues: Optional[bool] = _prop("aggregate")
    aggregation_build_status: Optional[str] = _prop("aggregationBuildStatus")
    affected_issues: Optional[str] = _prop("affectedIssues")

    def to_properties(self) -> Dict[str, str]:
        return _flatten(self, ISSUES_PREFIX)


@dataclass
class InfoSection:
    build_name: Optional[str] = _prop("build.name")
    build_number: Optional[str] = _prop("build.number")
    build_started: Optional[int] = _prop("build.started")  # Epoch millis
    build_timestamp: Optional[str] = _prop("build.timestamp")
    vcs_revision: Optional[str] = _prop("vcs.revision")
    build_url: Optional[str] = _prop("buildUrl")
    parent_build_name: Optional[str] = _prop("build.parentName")
    parent_build_number: Optional[str] = _prop("build.parentNumber")
    principal: Optional[str] = _prop("principal")
    agent_name: Optional[str] = _prop("agent.name")
    agent_version: Optional[str] = _prop("agent.version")
    build_retention_count: Optional[int] = _prop("buildRetention.count")
    build_retention_days: Optional[int] = _prop("buildRetention.daysToKeep")
    delete_build_artifacts: Optional[bool] = _prop("buildRetention.deleteBuildArtifacts")
    build_numbers_not_to_delete: Optional[str] = _prop("buildRetention.buildNumbersNotToDelete")
    license_control: LicenseControlSection = field(default_factory=LicenseControlSection)
    issues: IssuesSection = field(default_factory=IssuesSection)
    env_vars: Dict[str, str] = field(default_factory=dict)  # Keys already carry the env prefix

    def add_build_variables(self, variables: Mapping[str, str], patterns: IncludeExcludePatterns):
        for key, value in variables.items():
            if path_conflicts(key, patterns):
                continue
            self.env_vars[BUILD_INFO_ENVIRONMENT_PREFIX + key] = value

    def to_properties(self) -> Dict[str, str]:
        properties = _flatten(self, BUILD_INFO_PREFIX)
        properties.update(self.license_control.to_properties())
        properties.update(self.issues.to_properties())
        properties.update(self.env_vars)
        return properties


@dataclass
class ClientConfiguration:
    timeout: Optional[int] = _prop(ARTIFACTORY_PREFIX + "timeout")
    activate_recorder: Optional[bool] = _prop(BUILD_INFO_CONFIG_PREFIX + "activateRecorder")
    properties_file: Optional[str] = _prop(PROP_PROPS_FILE)
    include_env_vars: Optional[bool] = _prop(BUILD_INFO_CONFIG_PREFIX + "includeEnvVars")
    env_vars_include_patterns: Optional[str] = _prop(BUILD_INFO_CONFIG_PREFIX + "envVarsIncludePatterns")
    env_vars_exclude_patterns: Optional[str] = _prop(BUILD_INFO_CONFIG_PREFIX + "envVarsExcludePatterns")
    resolver: ResolverSection = field(default_factory=ResolverSection)
    publisher: PublisherSection = field(default_factory=PublisherSection)
    info: InfoSection = field(default_factory=InfoSection)
    # Raw properties taken over from build variables, written last
    extra_properties: Dict[str, str] = field(default_factory=dict)

    def fill_from_properties(self, properties: Mapping[str, str], patterns: IncludeExcludePatterns):
        for key, value in properties.items():
            if not key.startswith(RECOGNIZED_PREFIXES):
                continue
            if path_conflicts(key, patterns):
                continue
            self.extra_properties[key] = value

    def get_all_root_config(self) -> Dict[str, str]:
        return _flatten(self, "")

    def get_all_properties(self) -> Dict[str, str]:
        properties = {}
        properties.update(self.resolver.to_properties())
        properties.update(self.publisher.to_properties())
        properties.update(self.info.to_properties())
        properties.update(self.extra_properties)
        return properties

    def to_properties(self) -> Dict[str, str]:
        properties = self.get_all_root_config()
        properties.update(self.get_all_properties())
        return properties
