import logging
from typing import Dict, Optional

import httpx

from .agent_manager import AgentManager
from .client_config import (ClientConfiguration, PROP_DEPLOY_PARAM_PROP_PREFIX, MATRIX_BUILD_NAME,
                            MATRIX_BUILD_NUMBER, MATRIX_BUILD_TIMESTAMP, MATRIX_VCS_REVISION,
                            MATRIX_BUILD_PARENT_NAME, MATRIX_BUILD_PARENT_NUMBER)
from .credentials import get_preferred_deployer, get_preferred_resolver
from .env_utils import diff_only_left, get_vcs_revision, parse_matrix_params, sanitize_build_name
from .job import IncludesExcludes, PublisherConfig, ResolverConfig
from .logger_setup import logger
from .models import BuildContext
from .patterns import IncludeExcludePatterns
from .persister import persist_configuration
from .retention import create_build_retention

AGENT_NAME = "pyforge"


class IssueTrackerHelper:
    """Hook for issue tracker integrations. The base hook adds nothing; subclasses add their data."""

    def set_issue_tracker_info(self, configuration: ClientConfiguration):
        pass


def _set_resolver_info(configuration: ClientConfiguration, resolver: ResolverConfig):
    credentials = get_preferred_resolver(resolver)
    configuration.timeout = resolver.server.timeout
    configuration.resolver.context_url = resolver.server.url
    configuration.resolver.repo_key = resolver.details.download_repository_key
    configuration.resolver.username = credentials.username
    configuration.resolver.password = credentials.password


def _add_matrix_params(publisher: PublisherConfig, configuration: ClientConfiguration, env: Dict[str, str]):
    for key, value in parse_matrix_params(publisher.matrix_params, env).items():
        configuration.publisher.add_matrix_param(key, value)


def _set_publisher_info(env: Dict[str, str], context: BuildContext, publisher: PublisherConfig,
                        configuration: ClientConfiguration):
    """Sets everything needed to publish artifacts and build info."""
    configuration.activate_recorder = True
    info = configuration.info
    publisher_section = configuration.publisher

    build_name = sanitize_build_name(context.job_name)
    info.build_name = build_name
    publisher_section.add_matrix_param(MATRIX_BUILD_NAME, build_name)
    build_number = str(context.build_number)
    info.build_number = build_number
    publisher_section.add_matrix_param(MATRIX_BUILD_NUMBER, build_number)

    started_millis = int(context.start_time.timestamp() * 1000)
    info.build_started = started_millis
    info.build_timestamp = str(started_millis)
    publisher_section.add_matrix_param(MATRIX_BUILD_TIMESTAMP, str(started_millis))

    vcs_revision = get_vcs_revision(env)
    if vcs_revision:
        info.vcs_revision = vcs_revision
        publisher_section.add_matrix_param(MATRIX_VCS_REVISION, vcs_revision)

    if publisher.artifacts_pattern and publisher.artifacts_pattern.strip():
        publisher_section.ivy_artifact_pattern = publisher.artifacts_pattern
    if publisher.ivy_pattern and publisher.ivy_pattern.strip():
        publisher_section.ivy_pattern = publisher.ivy_pattern
    publisher_section.m2_compatible = publisher.maven2_compatible
    if context.build_url and context.build_url.strip():
        info.build_url = context.build_url

    user_name = None
    parent = context.get_upstream_cause()
    if parent is not None:
        parent_project = sanitize_build_name(parent.upstream_project)
        info.parent_build_name = parent_project
        publisher_section.add_matrix_param(MATRIX_BUILD_PARENT_NAME, parent_project)
        parent_build_number = str(parent.upstream_build)
        info.parent_build_number = parent_build_number
        publisher_section.add_matrix_param(MATRIX_BUILD_PARENT_NUMBER, parent_build_number)
        user_name = "auto"

    info.principal = context.get_user_cause_principal(user_name)
    info.agent_name = AGENT_NAME
    info.agent_version = context.server_version

    server = publisher.server
    deployer = get_preferred_deployer(publisher, server)
    if deployer.username and deployer.username.strip():
        publisher_section.username = deployer.username
        publisher_section.password = deployer.password

    configuration.timeout = server.timeout
    publisher_section.context_url = server.url
    publisher_section.repo_key = publisher.details.repository_key
    publisher_section.snapshot_repo_key = publisher.details.snapshots_repository_key

    license_control = info.license_control
    license_control.run_checks = publisher.run_checks
    license_control.include_published_artifacts = publisher.include_publish_artifacts
    license_control.auto_discover = publisher.license_auto_discovery
    publisher_section.copy_aggregated_artifacts = publisher.copy_aggregated_artifacts
    publisher_section.publish_aggregated_artifacts = publisher.publish_aggregated_artifacts
    if publisher.aggregate_artifacts_path and publisher.aggregate_artifacts_path.strip():
        publisher_section.aggregate_artifacts = publisher.aggregate_artifacts_path
    if publisher.run_checks:
        if publisher.violation_recipients and publisher.violation_recipients.strip():
            license_control.violation_recipients = publisher.violation_recipients
        if publisher.scopes and publisher.scopes.strip():
            license_control.scopes = publisher.scopes

    if publisher.discard_old_builds:
        retention = create_build_retention(context, publisher.discard_build_artifacts)
        if context.log_rotator is not None:
            info.build_retention_count = retention.count
            info.build_retention_days = retention.days_to_keep
            info.delete_build_artifacts = retention.delete_build_artifacts
        # Each number is followed by a comma, e.g. "5,3,"
        info.build_numbers_not_to_delete = "".join(f"{number}," for number in retention.build_numbers_not_to_be_deleted)

    publisher_section.publish_artifacts = publisher.deploy_artifacts
    publisher_section.even_unstable = publisher.even_if_unstable
    publisher_section.ivy = publisher.deploy_ivy
    publisher_section.maven = publisher.deploy_maven
    deployment_patterns = publisher.includes_excludes
    if deployment_patterns is not None:
        if deployment_patterns.include_patterns and deployment_patterns.include_patterns.strip():
            publisher_section.include_patterns = deployment_patterns.include_patterns
        if deployment_patterns.exclude_patterns and deployment_patterns.exclude_patterns.strip():
            publisher_section.exclude_patterns = deployment_patterns.exclude_patterns
    publisher_section.filter_excluded_artifacts_from_build = publisher.filter_excluded_artifacts_from_build
    publisher_section.publish_build_info = not publisher.skip_build_info_deploy
    configuration.include_env_vars = publisher.include_env_vars
    if publisher.env_vars_patterns is not None:
        configuration.env_vars_include_patterns = publisher.env_vars_patterns.include_patterns
        configuration.env_vars_exclude_patterns = publisher.env_vars_patterns.exclude_patterns
    _add_matrix_params(publisher, configuration, env)


def _add_env_vars(env: Dict[str, str], context: BuildContext, configuration: ClientConfiguration,
                  env_vars_patterns: IncludesExcludes):
    patterns = IncludeExcludePatterns.from_strings(env_vars_patterns.include_patterns,
                                                   env_vars_patterns.exclude_patterns)

    # Only what the CI server added on top of the host process environment
    configuration.info.add_build_variables(diff_only_left(env, context.host_env), patterns)

    build_variables = context.build_variables
    configuration.info.add_build_variables(diff_only_left(build_variables, context.host_env), patterns)

    configuration.fill_from_properties(build_variables, patterns)
    for key, value in build_variables.items():
        if key.startswith(PROP_DEPLOY_PARAM_PROP_PREFIX):
            configuration.publisher.add_matrix_param(key, value)


def add_builder_info_arguments(env: Dict[str, str], context: BuildContext,
                               publisher: Optional[PublisherConfig] = None,
                               resolver: Optional[ResolverConfig] = None,
                               issue_tracker: Optional[IssueTrackerHelper] = None,
                               build_logger: Optional[logging.Logger] = None,
                               agent_manager: Optional[AgentManager] = None,
                               http_client: Optional[httpx.Client] = None) -> ClientConfiguration:
    """
    Assembles the extractor configuration for a build and persists it as a
    properties file. ``env`` receives the build's contributed variables and the
    properties file location; nothing else is added to it.
    """
    build_logger = build_logger or logger

    env.update(context.contributed_env)

    build_logger.debug("*** Start env vars ***")
    for key, value in env.items():
        build_logger.debug(f"{key} = {value}")
    build_logger.debug("*** End env vars ***")

    configuration = ClientConfiguration()

    if resolver is not None:
        _set_resolver_info(configuration, resolver)

    if publisher is not None:
        _set_publisher_info(env, context, publisher, configuration)

    if issue_tracker is not None and publisher is not None and publisher.enable_issue_tracker_integration:
        configuration.info.issues.aggregate_build_issues = publisher.aggregate_build_issues
        configuration.info.issues.aggregation_build_status = publisher.aggregation_build_status
        issue_tracker.set_issue_tracker_info(configuration)

    env_vars_patterns = IncludesExcludes("", "")
    if publisher is not None and publisher.env_vars_patterns is not None:
        env_vars_patterns = publisher.env_vars_patterns
    _add_env_vars(env, context, configuration, env_vars_patterns)

    persist_configuration(context, configuration, env, build_logger=build_logger,
                          agent_manager=agent_manager, http_client=http_client)
    return configuration
