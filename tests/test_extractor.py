from pathlib import Path

from buildinfo_engine.extractor import IssueTrackerHelper, add_builder_info_arguments
from buildinfo_engine.job import ArtifactoryServer, Credentials, IncludesExcludes
from buildinfo_engine.models import BuildRecord, LogRotator, UpstreamCause, UserCause
from buildinfo_engine.properties import load_properties


def _read(path):
    with open(path, 'rb') as f:
        return load_properties(f)


def test_publisher_configuration_is_persisted(publisher, make_context):
    publisher.matrix_params = "team=${TEAM}; badpair; stage=qa"
    publisher.include_env_vars = True
    context = make_context(
        env={"GIT_COMMIT": "abc123", "TEAM": "core"},
        contributed_env={"CONTRIBUTED": "1"},
        build_url="http://ci/job/my/job/project/42/",
    )
    env = dict(context.env)

    configuration = add_builder_info_arguments(env, context, publisher=publisher)

    assert env["CONTRIBUTED"] == "1"
    properties_file = env["BUILDINFO_PROPFILE"]
    assert env["buildInfoConfig.propertiesFile"] == properties_file
    assert configuration.properties_file == properties_file
    assert Path(properties_file).parent == Path(context.workspace)
    assert Path(properties_file).name.startswith("buildInfo")

    props = _read(properties_file)
    assert props["buildInfo.build.name"] == "my :: project"
    assert props["buildInfo.build.number"] == "42"
    assert props["buildInfo.vcs.revision"] == "abc123"
    assert props["buildInfo.agent.name"] == "pyforge"
    assert props["buildInfo.buildUrl"] == "http://ci/job/my/job/project/42/"
    assert props["artifactory.deploy.build.name"] == "my :: project"
    assert props["artifactory.deploy.build.number"] == "42"
    assert props["artifactory.deploy.vcs.revision"] == "abc123"
    assert props["artifactory.deploy.team"] == "core"
    assert props["artifactory.deploy.stage"] == "qa"
    assert "artifactory.deploy.badpair" not in props
    assert props["artifactory.publish.contextUrl"] == "http://repo.example.com/artifactory"
    assert props["artifactory.publish.repoKey"] == "libs-release-local"
    assert props["artifactory.publish.snapshotRepoKey"] == "libs-snapshot-local"
    assert props["artifactory.publish.username"] == "deployer"
    assert props["artifactory.publish.password"] == "deployer-secret"
    assert props["artifactory.publish.buildInfo"] == "true"
    assert props["buildInfoConfig.activateRecorder"] == "true"
    assert props["buildInfoConfig.includeEnvVars"] == "true"
    assert props["buildInfoConfig.propertiesFile"] == properties_file
    assert props["artifactory.timeout"] == "120"
    assert props["buildInfo.env.GIT_COMMIT"] == "abc123"
    assert props["buildInfo.env.CONTRIBUTED"] == "1"
    assert "artifactory.resolve.repoKey" not in props


def test_started_timestamp_matches_matrix_param(publisher, make_context):
    context = make_context()
    configuration = add_builder_info_arguments({}, context, publisher=publisher)
    millis = int(context.start_time.timestamp() * 1000)
    assert configuration.info.build_started == millis
    assert configuration.publisher.matrix_params["build.timestamp"] == str(millis)


def test_resolver_only(resolver, make_context):
    env = {}
    configuration = add_builder_info_arguments(env, make_context(), resolver=resolver)

    assert configuration.resolver.repo_key == "remote-repos"
    assert configuration.resolver.username == "reader"
    assert configuration.activate_recorder is None
    assert configuration.info.build_name is None
    props = _read(env["BUILDINFO_PROPFILE"])
    assert props["artifactory.resolve.contextUrl"] == "http://repo.example.com/artifactory"
    assert not any(key.startswith("artifactory.publish.") for key in props)


def test_neither_publisher_nor_resolver(make_context):
    env = {}
    context = make_context(build_variables={"PARAM": "value"})
    configuration = add_builder_info_arguments(env, context)
    assert configuration.info.env_vars == {"buildInfo.env.PARAM": "value"}
    assert Path(env["BUILDINFO_PROPFILE"]).is_file()


def test_publisher_timeout_wins_over_resolver(publisher, resolver, make_context):
    resolver.server = ArtifactoryServer(url="http://resolve.example.com", timeout=30)
    configuration = add_builder_info_arguments({}, make_context(), publisher=publisher, resolver=resolver)
    assert configuration.timeout == 120
    assert configuration.resolver.context_url == "http://resolve.example.com"


def test_upstream_and_user_causes(publisher, make_context):
    context = make_context(causes=[UpstreamCause("parent/job", 9)])
    configuration = add_builder_info_arguments({}, context, publisher=publisher)
    assert configuration.info.parent_build_name == "parent :: job"
    assert configuration.info.parent_build_number == "9"
    assert configuration.info.principal == "auto"
    assert configuration.publisher.matrix_params["build.parentName"] == "parent :: job"

    context = make_context(causes=[UpstreamCause("parent/job", 9), UserCause("bob")])
    configuration = add_builder_info_arguments({}, context, publisher=publisher)
    assert configuration.info.principal == "bob"


def test_overridden_deployer_credentials(publisher, make_context):
    publisher.override_default_deployer = True
    publisher.override_credentials = Credentials("job-user", "job-pass")
    configuration = add_builder_info_arguments({}, make_context(), publisher=publisher)
    assert configuration.publisher.username == "job-user"
    assert configuration.publisher.password == "job-pass"


def test_retention_only_transfers_set_limits(publisher, make_context):
    publisher.discard_old_builds = True
    publisher.discard_build_artifacts = True
    context = make_context(builds=[BuildRecord(5, True), BuildRecord(4), BuildRecord(3, True)],
                           log_rotator=LogRotator(days_to_keep=-1, num_to_keep=10))
    configuration = add_builder_info_arguments({}, context, publisher=publisher)

    assert configuration.info.build_retention_count == 10
    assert configuration.info.build_retention_days is None
    assert configuration.info.delete_build_artifacts is True
    assert configuration.info.build_numbers_not_to_delete == "5,3,"


def test_kept_build_numbers_are_written_with_trailing_commas(publisher, make_context):
    publisher.discard_old_builds = True
    context = make_context(builds=[BuildRecord(7, True), BuildRecord(6, True)])
    env = {}
    add_builder_info_arguments(env, context, publisher=publisher)
    assert _read(env["BUILDINFO_PROPFILE"])["buildInfo.buildRetention.buildNumbersNotToDelete"] == "7,6,"

    env = {}
    add_builder_info_arguments(env, make_context(), publisher=publisher)
    assert _read(env["BUILDINFO_PROPFILE"])["buildInfo.buildRetention.buildNumbersNotToDelete"] == ""


def test_retention_skipped_unless_discarding_old_builds(publisher, make_context):
    context = make_context(builds=[BuildRecord(5, True)], log_rotator=LogRotator(days_to_keep=3, num_to_keep=10))
    configuration = add_builder_info_arguments({}, context, publisher=publisher)
    assert configuration.info.build_retention_count is None
    assert configuration.info.build_numbers_not_to_delete is None


def test_env_var_patterns_filter_properties(publisher, make_context):
    publisher.env_vars_patterns = IncludesExcludes("BUILD_*", "*SECRET*")
    context = make_context(
        env={"BUILD_TAG": "tag-1", "BUILD_SECRET": "s", "OTHER": "x", "HOME": "/root"},
        host_env={"HOME": "/root"},
    )
    configuration = add_builder_info_arguments(dict(context.env), context, publisher=publisher)
    assert configuration.info.env_vars == {"buildInfo.env.BUILD_TAG": "tag-1"}
    assert configuration.env_vars_include_patterns == "BUILD_*"
    assert configuration.env_vars_exclude_patterns == "*SECRET*"


def test_host_environment_is_not_persisted(publisher, make_context):
    context = make_context(env={"PATH": "/usr/bin", "CI_VAR": "1"}, host_env={"PATH": "/usr/bin"})
    env = dict(context.env)
    configuration = add_builder_info_arguments(env, context, publisher=publisher)
    assert "buildInfo.env.PATH" not in configuration.info.env_vars
    assert configuration.info.env_vars["buildInfo.env.CI_VAR"] == "1"


def test_build_variables_feed_recognized_properties_and_matrix_params(publisher, make_context):
    context = make_context(build_variables={
        "artifactory.deploy.release": "candidate",
        "buildInfo.licenseControl.runChecks": "true",
        "unrelated": "x",
    })
    configuration = add_builder_info_arguments({}, context, publisher=publisher)
    assert configuration.publisher.matrix_params["artifactory.deploy.release"] == "candidate"
    assert configuration.extra_properties["buildInfo.licenseControl.runChecks"] == "true"
    assert "unrelated" not in configuration.extra_properties
    assert configuration.to_properties()["artifactory.deploy.release"] == "candidate"


class RecordingIssueTracker(IssueTrackerHelper):
    def __init__(self):
        self.calls = []

    def set_issue_tracker_info(self, configuration):
        self.calls.append(configuration)
        configuration.info.issues.tracker_name = "JIRA"


def test_issue_tracker_hook_requires_flag_and_publisher(publisher, make_context):
    tracker = RecordingIssueTracker()
    add_builder_info_arguments({}, make_context(), publisher=publisher, issue_tracker=tracker)
    assert tracker.calls == []

    publisher.enable_issue_tracker_integration = True
    publisher.aggregate_build_issues = True
    configuration = add_builder_info_arguments({}, make_context(), publisher=publisher, issue_tracker=tracker)
    assert tracker.calls == [configuration]
    props = configuration.to_properties()
    assert props["buildInfo.issues.tracker.name"] == "JIRA"
    assert props["buildInfo.issues.aggregate"] == "true"

    add_builder_info_arguments({}, make_context(), issue_tracker=tracker)
    assert len(tracker.calls) == 1


def test_base_issue_tracker_adds_nothing(publisher, make_context):
    publisher.enable_issue_tracker_integration = True
    configuration = add_builder_info_arguments({}, make_context(), publisher=publisher,
                                               issue_tracker=IssueTrackerHelper())
    assert configuration.info.issues.tracker_name is None
    assert "buildInfo.issues.tracker.name" not in configuration.to_properties()
