import json
from typing import Optional

import httpx

from .build_info import BuildInfo
from .errors import BuildInfoDeployError
from .logger_setup import logger

BUILD_REST_URL = "/api/build"
BUILD_INFO_CONTENT_TYPE = "application/vnd.org.jfrog.artifactory+json"


class ArtifactoryBuildInfoClient:
    """Publishes build descriptors straight to the repository server's build API."""

    def __init__(self, url: str, username: Optional[str] = None, password: Optional[str] = None,
                 timeout: float = 300, transport: Optional[httpx.BaseTransport] = None):
        self.url = url.rstrip('/')
        auth = (username, password or "") if username else None
        self._client = httpx.Client(base_url=self.url, auth=auth,
                                    timeout=httpx.Timeout(10.0, read=float(timeout)),
                                    transport=transport)

    def send_build_info(self, build_info: BuildInfo):
        body = json.dumps(build_info.to_dict())
        logger.info(f"Deploying build info for {build_info.name} #{build_info.number} to {self.url}")
        try:
            response = self._client.put(BUILD_REST_URL, content=body,
                                        headers={"Content-Type": BUILD_INFO_CONTENT_TYPE})
        except httpx.HTTPError as e:
            raise BuildInfoDeployError(f"Failed to send build info to {self.url}: {e}") from e
        if not response.is_success:
            raise BuildInfoDeployError(
                f"Failed to send build info to {self.url}: HTTP {response.status_code} {response.text}",
                status_code=response.status_code,
            )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
