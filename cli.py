import click
import json
from pathlib import Path

from buildinfo_engine.agent_manager import AgentManager
from buildinfo_engine.build_info import BuildType
from buildinfo_engine.client import ArtifactoryBuildInfoClient
from buildinfo_engine.credentials import get_preferred_deployer
from buildinfo_engine.deployer import BuildInfoDeployer
from buildinfo_engine.errors import BuildInfoError
from buildinfo_engine.extractor import add_builder_info_arguments
from buildinfo_engine.job_manager import JobManager
from buildinfo_engine.logger_setup import DATA_ROOT, get_build_logger, close_build_logger
from buildinfo_engine.models import BuildContext
from buildinfo_engine.properties import load_properties

BUILD_AGENT_NAME = "pyforge-cli"
BUILD_AGENT_VERSION = "1.0.0"


def _load_context(context_file: str) -> BuildContext:
    with open(context_file, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return BuildContext.from_dict(data)


def _get_job_or_fail(job_manager: JobManager, job_name: str):
    job = job_manager.get_job(job_name)
    if not job:
        raise click.ClickException(f"Job '{job_name}' not found.")
    return job


@click.group()
@click.option("--jobs-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding the job YAML files.")
@click.pass_context
def cli(ctx, jobs_dir):
    """PyForge build info: assemble and publish build info for CI builds."""
    ctx.obj = {"job_manager": JobManager(jobs_dir)}


@cli.command("list-jobs")
@click.pass_obj
def list_jobs(obj):
    """Lists all configured jobs."""
    jobs = obj["job_manager"].list_jobs()
    if not jobs:
        click.echo("No jobs configured.")
        return
    click.echo("Available jobs:")
    for job in jobs:
        click.echo(f"- {job.name}")
        click.echo(f"  Description: {job.description}")
        if job.publisher:
            click.echo(f"  Publisher: {job.publisher.server.url} (Repo: {job.publisher.details.repository_key})")
        if job.resolver:
            click.echo(f"  Resolver: {job.resolver.server.url} (Repo: {job.resolver.details.download_repository_key})")


@cli.command("build-info")
@click.argument("job_name")
@click.argument("context_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--build-type", type=click.Choice([t.value for t in BuildType]), default=BuildType.GENERIC.value)
@click.pass_obj
def build_info(obj, job_name: str, context_file: str, build_type: str):
    """Prints the build info JSON for a build context."""
    job = _get_job_or_fail(obj["job_manager"], job_name)
    if not job.publisher:
        raise click.ClickException(f"Job '{job_name}' has no publisher configuration.")
    context = _load_context(context_file)
    deployer = BuildInfoDeployer(job.publisher, context)
    info = deployer.create_build_info(BUILD_AGENT_NAME, BUILD_AGENT_VERSION, BuildType(build_type))
    click.echo(json.dumps(info.to_dict(), indent=2))


@cli.command("extractor-config")
@click.argument("job_name")
@click.argument("context_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def extractor_config(obj, job_name: str, context_file: str):
    """Writes the extractor properties file and prints the variables to export."""
    job = _get_job_or_fail(obj["job_manager"], job_name)
    context = _load_context(context_file)
    env = dict(context.env)
    build_logger, log_path = get_build_logger(job.name, context.build_id)
    try:
        add_builder_info_arguments(env, context, job.publisher, job.resolver,
                                   build_logger=build_logger, agent_manager=AgentManager(DATA_ROOT))
    except BuildInfoError as e:
        raise click.ClickException(str(e))
    finally:
        close_build_logger(build_logger)
    for key in ("BUILDINFO_PROPFILE", "buildInfoConfig.propertiesFile"):
        click.echo(f"{key}={env[key]}")
    click.echo(f"Build log: {log_path}", err=True)


@cli.command("show-config")
@click.argument("properties_file", type=click.Path(exists=True, dir_okay=False))
def show_config(properties_file: str):
    """Shows a persisted extractor properties file, passwords masked."""
    with open(properties_file, 'rb') as f:
        properties = load_properties(f)
    for key in sorted(properties):
        value = "********" if key.endswith(".password") else properties[key]
        click.echo(f"{key} = {value}")


@cli.command("deploy")
@click.argument("job_name")
@click.argument("context_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def deploy(obj, job_name: str, context_file: str):
    """Creates the build info and publishes it to the job's repository server."""
    job = _get_job_or_fail(obj["job_manager"], job_name)
    if not job.publisher:
        raise click.ClickException(f"Job '{job_name}' has no publisher configuration.")
    context = _load_context(context_file)
    server = job.publisher.server
    credentials = get_preferred_deployer(job.publisher, server)
    build_logger, _ = get_build_logger(job.name, context.build_id)
    try:
        with ArtifactoryBuildInfoClient(server.url, credentials.username, credentials.password,
                                        timeout=server.timeout) as client:
            info = BuildInfoDeployer(job.publisher, context, client=client,
                                     build_logger=build_logger).deploy(BUILD_AGENT_NAME, BUILD_AGENT_VERSION)
    except BuildInfoError as e:
        raise click.ClickException(str(e))
    finally:
        close_build_logger(build_logger)
    click.echo(f"Build info for {info.name} #{info.number} deployed to {server.url}")


if __name__ == '__main__':
    cli()
