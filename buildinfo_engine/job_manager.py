import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional

from .job import JobConfig
from .logger_setup import logger

JOBS_CONFIG_DIR_NAME = "jobs_config"

class JobManager:
    def __init__(self, jobs_config_dir: Optional[Path] = None):
        if jobs_config_dir:
            self.jobs_config_dir = jobs_config_dir
        elif os.environ.get("PYFORGE_BUILDINFO_JOBS_DIR"):
            self.jobs_config_dir = Path(os.environ["PYFORGE_BUILDINFO_JOBS_DIR"])
        else:
            self.jobs_config_dir = Path(__file__).resolve().parent.parent / JOBS_CONFIG_DIR_NAME

        self.jobs: Dict[str, JobConfig] = {}
        self.load_jobs()

    def load_jobs(self):
        self.jobs = {}
        logger.info(f"Loading jobs from {self.jobs_config_dir}...")
        if not self.jobs_config_dir.exists() or not self.jobs_config_dir.is_dir():
            logger.warning(f"Jobs config directory not found or is not a directory: {self.jobs_config_dir}")
            return

        for config_file in sorted(self.jobs_config_dir.glob("*.yaml")):
            job = self._parse_job_config(config_file)
            if job:
                if job.name in self.jobs:
                    logger.warning(f"Duplicate job name '{job.name}' found in {config_file.name}. Overwriting previous definition.")
                self.jobs[job.name] = job
                logger.debug(f"Successfully loaded job: {job.name} from {config_file.name}")
        logger.info(f"Loaded {len(self.jobs)} jobs.")

    def _parse_job_config(self, config_file: Path) -> Optional[JobConfig]:
        try:
            with open(config_file, 'r') as f:
                raw_yaml_content = f.read()

            return JobConfig.from_yaml(config_file, raw_yaml_content)

        except ValueError as ve: # Catch specific error from JobConfig.from_yaml
            logger.error(f"Validation error parsing job config {config_file.name}: {ve}")
            return None
        except yaml.YAMLError as ye:
            logger.error(f"YAML syntax error in job config {config_file.name}: {ye}")
            return None
        except OSError as oe:
            logger.error(f"Could not read job config {config_file.name}: {oe}")
            return None

    def get_job(self, name: str) -> Optional[JobConfig]:
        return self.jobs.get(name)

    def list_jobs(self) -> List[JobConfig]:
        return list(self.jobs.values())

