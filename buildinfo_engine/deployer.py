import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from .build_info import Agent, BuildInfo, BuildRetention, BuildType, LicenseControl
from .client import ArtifactoryBuildInfoClient
from .client_config import BUILD_INFO_ENVIRONMENT_PREFIX
from .env_utils import diff_only_left, get_vcs_revision, sanitize_build_name
from .extractor import AGENT_NAME
from .job import PublisherConfig
from .logger_setup import logger
from .models import BuildContext
from .patterns import IncludeExcludePatterns, path_conflicts
from .retention import create_build_retention


class BuildInfoDeployer:
    """Handles build info creation and deployment for a single build."""

    def __init__(self, config: PublisherConfig, context: BuildContext,
                 client: Optional[ArtifactoryBuildInfoClient] = None,
                 build_logger: Optional[logging.Logger] = None,
                 now: Optional[datetime] = None):
        self.config = config
        self.context = context
        self.client = client
        self.logger = build_logger or logger
        self.now = now

    def _now(self) -> datetime:
        return self.now or datetime.now(timezone.utc)

    def create_build_info(self, build_agent_name: str, build_agent_version: str,
                          build_type: BuildType = BuildType.GENERIC) -> BuildInfo:
        context = self.context
        config = self.config

        started = context.start_time
        duration = int((self._now() - started).total_seconds() * 1000)

        artifactory_principal = config.server.get_resolving_credentials().username
        if not artifactory_principal or not artifactory_principal.strip():
            artifactory_principal = ""

        user_cause = context.get_user_cause_principal()
        principal = user_cause

        parent_name = None
        parent_number = None
        parent_build_id = None
        parent = context.get_upstream_cause()
        if parent is not None:
            parent_name = sanitize_build_name(parent.upstream_project)
            parent_number = str(parent.upstream_build)
            if not user_cause or not user_cause.strip():
                principal = "auto"
            # Older servers only understand the raw upstream project name
            parent_build_id = parent.upstream_project

        url = context.build_url if context.build_url and context.build_url.strip() else None

        build_info = BuildInfo(
            name=sanitize_build_name(context.job_name),
            number=str(context.build_number),
            type=build_type,
            started=started,
            duration_millis=duration,
            agent=Agent(AGENT_NAME, context.server_version),
            build_agent=Agent(build_agent_name, build_agent_version),
            url=url,
            artifactory_principal=artifactory_principal,
            principal=principal,
            parent_name=parent_name,
            parent_number=parent_number,
            parent_build_id=parent_build_id,
            vcs_revision=get_vcs_revision(context.env),
            license_control=self._create_license_control(),
            build_retention=self._create_build_retention(),
            properties=self._collect_properties(),
        )
        self.logger.debug(f"Created build info for {build_info.name} #{build_info.number}")
        return build_info

    def _create_license_control(self) -> LicenseControl:
        config = self.config
        violation_recipients = None
        scopes = None
        if config.run_checks:
            if config.violation_recipients and config.violation_recipients.strip():
                violation_recipients = config.violation_recipients
            if config.scopes and config.scopes.strip():
                scopes = config.scopes
        return LicenseControl(
            run_checks=config.run_checks,
            include_published_artifacts=config.include_publish_artifacts,
            auto_discover=config.license_auto_discovery,
            violation_recipients=violation_recipients,
            scopes=scopes,
        )

    def _create_build_retention(self) -> BuildRetention:
        if self.config.discard_old_builds:
            return create_build_retention(self.context, self.config.discard_build_artifacts, now=self._now())
        return BuildRetention(delete_build_artifacts=self.config.discard_build_artifacts)

    def _collect_properties(self) -> Dict[str, str]:
        properties: Dict[str, str] = {}
        if not self.config.include_env_vars:
            return properties

        env_vars_patterns = self.config.env_vars_patterns
        if env_vars_patterns is not None:
            patterns = IncludeExcludePatterns.from_strings(env_vars_patterns.include_patterns,
                                                           env_vars_patterns.exclude_patterns)
        else:
            patterns = IncludeExcludePatterns.include_all()

        # Build variables first, then CI environment, then system properties
        for key, value in self.context.build_variables.items():
            if not path_conflicts(key, patterns):
                properties[BUILD_INFO_ENVIRONMENT_PREFIX + key] = value

        for key, value in diff_only_left(self.context.env, self.context.host_env).items():
            if not path_conflicts(key, patterns):
                properties[BUILD_INFO_ENVIRONMENT_PREFIX + key] = value

        # System properties go in without the environment prefix
        for key, value in self.context.system_properties.items():
            if not path_conflicts(key, patterns):
                properties[key] = value
        return properties

    def deploy(self, build_agent_name: str, build_agent_version: str,
               build_type: BuildType = BuildType.GENERIC) -> BuildInfo:
        build_info = self.create_build_info(build_agent_name, build_agent_version, build_type)
        if self.config.skip_build_info_deploy:
            self.logger.info("Build info deployment is disabled for this job. Skipping.")
            return build_info
        if self.client is None:
            raise ValueError("No repository client configured; cannot deploy build info.")
        self.logger.info(f"Deploying build info to: {self.config.server.url}/api/build")
        self.client.send_build_info(build_info)
        return build_info
