import logging
import os
import tempfile
import uuid
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Dict, Optional

import httpx

from .agent_manager import AgentManager
from .client_config import ClientConfiguration, PROP_PROPS_FILE, PROPS_FILE_ENV_VAR
from .errors import BuildInfoConfigurationError
from .logger_setup import logger
from .models import BuildContext
from .properties import store_properties

PROPERTIES_FILE_PREFIX = "buildInfo"
PROPERTIES_FILE_SUFFIX = ".properties"
AGENT_UPLOAD_TIMEOUT = httpx.Timeout(10.0, read=300.0)


def _create_local_temp_file(workspace: Path) -> Path:
    workspace.mkdir(parents=True, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix=PROPERTIES_FILE_PREFIX, suffix=PROPERTIES_FILE_SUFFIX, dir=str(workspace))
    os.close(fd)
    return Path(path)


def _allocate_remote_path(workspace: str) -> str:
    if not (PurePosixPath(workspace).is_absolute() or PureWindowsPath(workspace).is_absolute()):
        raise BuildInfoConfigurationError(f"Agent workspace must be an absolute path, got '{workspace}'")
    # The agent owns the file system; a random name keeps concurrent builds apart
    return f"{workspace.rstrip('/')}/{PROPERTIES_FILE_PREFIX}{uuid.uuid4().hex}{PROPERTIES_FILE_SUFFIX}"


def _copy_to_agent(context: BuildContext, configuration: ClientConfiguration, remote_path: str,
                   agent_manager: Optional[AgentManager], http_client: Optional[httpx.Client]):
    agent_info = agent_manager.get_agent(context.agent_name) if agent_manager else None
    if not agent_info:
        raise BuildInfoConfigurationError(
            f"Agent '{context.agent_name}' executing build #{context.build_number} of '{context.job_name}' "
            "is not configured; cannot copy the build info properties file to it."
        )

    tmp_file = None
    try:
        with tempfile.NamedTemporaryFile(prefix=PROPERTIES_FILE_PREFIX, suffix=PROPERTIES_FILE_SUFFIX,
                                         delete=False) as tmp:
            tmp_file = Path(tmp.name)
            store_properties(configuration.to_properties(), tmp, comment="")

        with open(tmp_file, 'rb') as file_to_upload:
            files = {'file': (Path(remote_path).name, file_to_upload)}
            data = {'path': remote_path}
            if http_client is not None:
                response = http_client.post(agent_info.file_upload_url(), data=data, files=files)
                response.raise_for_status()
            else:
                with httpx.Client(timeout=AGENT_UPLOAD_TIMEOUT) as client:
                    response = client.post(agent_info.file_upload_url(), data=data, files=files)
                    response.raise_for_status()
        logger.debug(f"Copied build info properties to agent {agent_info.name}: {remote_path}")
    except (OSError, httpx.HTTPError) as e:
        raise BuildInfoConfigurationError(
            f"Failed to copy build info properties file to agent {agent_info.name} ({remote_path}): {e}"
        ) from e
    finally:
        if tmp_file is not None and tmp_file.exists():
            tmp_file.unlink()


def persist_configuration(context: BuildContext, configuration: ClientConfiguration, env: Dict[str, str],
                          build_logger: Optional[logging.Logger] = None,
                          agent_manager: Optional[AgentManager] = None,
                          http_client: Optional[httpx.Client] = None) -> str:
    """
    Writes the configuration to a build-scoped properties file and points the
    BUILDINFO_PROPFILE and buildInfoConfig.propertiesFile entries of ``env`` at it.
    Callers pass ``env`` on to the extractor process.
    """
    build_logger = build_logger or logger

    if context.is_remote():
        properties_file = _allocate_remote_path(context.workspace)
    else:
        try:
            properties_file = str(_create_local_temp_file(Path(context.workspace)))
        except OSError as e:
            raise BuildInfoConfigurationError(
                f"Could not create build info properties file in workspace {context.workspace}: {e}"
            ) from e
    configuration.properties_file = properties_file

    build_logger.info(f"*** Adding env var: {PROPS_FILE_ENV_VAR}={properties_file}")
    build_logger.info(f"*** Adding env var: {PROP_PROPS_FILE}={properties_file}")
    env[PROPS_FILE_ENV_VAR] = properties_file
    env[PROP_PROPS_FILE] = properties_file

    build_logger.info("*** Persisting properties file.")
    if not context.is_remote():
        try:
            with open(properties_file, 'wb') as f:
                store_properties(configuration.to_properties(), f, comment="")
        except OSError as e:
            raise BuildInfoConfigurationError(
                f"Could not write build info properties file {properties_file}: {e}"
            ) from e
    else:
        _copy_to_agent(context, configuration, properties_file, agent_manager, http_client)

    return properties_file
