from typing import Optional

from .job import ArtifactoryServer, Credentials, PublisherConfig, ResolverConfig


def get_preferred_deployer(publisher: PublisherConfig, server: Optional[ArtifactoryServer] = None) -> Credentials:
    """Job-level deployer credentials win over the server defaults when the job overrides them."""
    server = server or publisher.server
    overrides = publisher.override_credentials
    if publisher.override_default_deployer and overrides and overrides.username:
        return overrides
    if server and server.deployer_credentials:
        return server.deployer_credentials
    return Credentials()


def get_preferred_resolver(resolver: ResolverConfig, server: Optional[ArtifactoryServer] = None) -> Credentials:
    server = server or resolver.server
    overrides = resolver.override_credentials
    if overrides and overrides.username:
        return overrides
    if server:
        return server.get_resolving_credentials()
    return Credentials()
