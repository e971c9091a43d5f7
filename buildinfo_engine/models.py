import getpass
import os
import platform
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Optional, Union, Mapping


@dataclass
class UserCause:
    user_name: str

    def to_dict(self) -> dict:
        return {"type": "user", "user_name": self.user_name}


@dataclass
class UpstreamCause:
    upstream_project: str  # Full name of the triggering job, unsanitized
    upstream_build: int

    def to_dict(self) -> dict:
        return {"type": "upstream", "upstream_project": self.upstream_project,
                "upstream_build": self.upstream_build}


Cause = Union[UserCause, UpstreamCause]


@dataclass
class BuildRecord:
    number: int
    keep_forever: bool = False

    def to_dict(self) -> dict:
        return {"number": self.number, "keep_forever": self.keep_forever}


@dataclass
class LogRotator:
    days_to_keep: int = -1  # -1 means no limit
    num_to_keep: int = -1

    def to_dict(self) -> dict:
        return {"days_to_keep": self.days_to_keep, "num_to_keep": self.num_to_keep}


def default_system_properties() -> Dict[str, str]:
    """Snapshot of the host process properties, in the dotted naming extractors expect."""
    try:
        user_name = getpass.getuser()
    except (KeyError, OSError):
        user_name = ""
    return {
        "os.name": platform.system(),
        "os.arch": platform.machine(),
        "os.version": platform.release(),
        "python.version": platform.python_version(),
        "python.implementation": platform.python_implementation(),
        "file.encoding": sys.getfilesystemencoding(),
        "user.name": user_name,
        "user.home": os.path.expanduser("~"),
    }


def _cause_from_dict(data: dict) -> Cause:
    cause_type = data.get("type")
    if cause_type == "user":
        return UserCause(user_name=data["user_name"])
    if cause_type == "upstream":
        return UpstreamCause(upstream_project=data["upstream_project"],
                             upstream_build=int(data["upstream_build"]))
    raise ValueError(f"Unknown build cause type '{cause_type}'. Expected 'user' or 'upstream'.")


@dataclass
class BuildContext:
    """Read-only view of a running build, as handed over by the CI server."""
    job_name: str  # Full (possibly folder/job) name
    build_number: int
    start_time: datetime
    workspace: str
    causes: List[Cause] = field(default_factory=list)
    build_variables: Dict[str, str] = field(default_factory=dict)
    env: Dict[str, str] = field(default_factory=dict)  # Full build environment
    contributed_env: Dict[str, str] = field(default_factory=dict)  # Set by environment contributing actions
    server_version: str = ""
    build_url: Optional[str] = None
    log_rotator: Optional[LogRotator] = None
    builds: List[BuildRecord] = field(default_factory=list)
    agent_name: Optional[str] = None  # None when executing on the server itself
    host_env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    system_properties: Mapping[str, str] = field(default_factory=default_system_properties)

    @property
    def build_id(self) -> str:
        return str(self.build_number)

    def get_builds(self) -> List[BuildRecord]:
        """Job history, newest first. Override to query the CI server lazily."""
        return list(self.builds)

    def get_upstream_cause(self) -> Optional[UpstreamCause]:
        for cause in self.causes:
            if isinstance(cause, UpstreamCause):
                return cause
        return None

    def get_user_cause_principal(self, default: Optional[str] = None) -> Optional[str]:
        for cause in self.causes:
            if isinstance(cause, UserCause):
                return cause.user_name
        return default

    def is_remote(self) -> bool:
        return bool(self.agent_name)

    def to_dict(self) -> dict:
        return {
            "job_name": self.job_name,
            "build_number": self.build_number,
            "start_time": self.start_time.isoformat(),
            "workspace": self.workspace,
            "causes": [c.to_dict() for c in self.causes],
            "build_variables": self.build_variables,
            "env": self.env,
            "contributed_env": self.contributed_env,
            "server_version": self.server_version,
            "build_url": self.build_url,
            "log_rotator": self.log_rotator.to_dict() if self.log_rotator else None,
            "builds": [b.to_dict() for b in self.builds],
            "agent_name": self.agent_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BuildContext':
        if 'job_name' not in data or 'build_number' not in data:
            raise ValueError("Build context must contain 'job_name' and 'build_number'.")

        start_time_val = data.get('start_time')
        if start_time_val:
            if start_time_val.endswith("Z"):
                start_time_val = start_time_val[:-1] + "+00:00"
            start_time = datetime.fromisoformat(start_time_val)
            if start_time.tzinfo is None:
                start_time = start_time.replace(tzinfo=timezone.utc)
        else:
            start_time = datetime.now(timezone.utc)

        rotator_data = data.get('log_rotator')
        log_rotator = None
        if rotator_data is not None:
            log_rotator = LogRotator(days_to_keep=int(rotator_data.get('days_to_keep', -1)),
                                     num_to_keep=int(rotator_data.get('num_to_keep', -1)))

        context = cls(
            job_name=data['job_name'],
            build_number=int(data['build_number']),
            start_time=start_time,
            workspace=data.get('workspace') or os.getcwd(),
        )
        # The rest of the fields are set after initial construction
        context.causes = [_cause_from_dict(c) for c in data.get('causes', [])]
        context.build_variables = dict(data.get('build_variables', {}))
        context.env = dict(data.get('env', {}))
        context.contributed_env = dict(data.get('contributed_env', {}))
        context.server_version = data.get('server_version', "")
        context.build_url = data.get('build_url')
        context.log_rotator = log_rotator
        context.builds = [BuildRecord(number=int(b['number']), keep_forever=bool(b.get('keep_forever', False)))
                          for b in data.get('builds', [])]
        context.agent_name = data.get('agent_name')
        if 'host_env' in data:
            context.host_env = dict(data['host_env'])
        if 'system_properties' in data:
            context.system_properties = dict(data['system_properties'])
        return context
