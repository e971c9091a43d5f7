from datetime import datetime, timezone

import pytest

from buildinfo_engine.job import ArtifactoryServer, Credentials, PublisherConfig, ResolverConfig, ServerDetails
from buildinfo_engine.models import BuildContext

STARTED = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def server():
    return ArtifactoryServer(
        url="http://repo.example.com/artifactory",
        timeout=120,
        deployer_credentials=Credentials("deployer", "deployer-secret"),
        resolver_credentials=Credentials("reader", "reader-secret"),
    )


@pytest.fixture
def publisher(server):
    return PublisherConfig(
        server=server,
        details=ServerDetails(repository_key="libs-release-local", snapshots_repository_key="libs-snapshot-local"),
    )


@pytest.fixture
def resolver(server):
    return ResolverConfig(server=server, details=ServerDetails(download_repository_key="remote-repos"))


@pytest.fixture
def make_context(tmp_path):
    def _make(**overrides):
        values = dict(
            job_name="my/project",
            build_number=42,
            start_time=STARTED,
            workspace=str(tmp_path / "workspace"),
            server_version="2.1.0",
            host_env={},
            system_properties={},
        )
        values.update(overrides)
        return BuildContext(**values)
    return _make
