import logging
import os
import coloredlogs
from pathlib import Path

DATA_ROOT = Path(os.environ.get("PYFORGE_BUILDINFO_DATA_DIR", Path(__file__).resolve().parent.parent / "data"))
LOGS_DIR = DATA_ROOT / "build_logs"

def setup_global_logger():
    logger = logging.getLogger("pyforge.buildinfo")
    logger.setLevel(logging.DEBUG)

    # coloredlogs installs its own console handler on 'logger'
    coloredlogs.install(level='DEBUG', logger=logger, fmt='%(asctime)s %(name)s %(levelname)s %(message)s')
    return logger

def get_build_logger(job_name: str, build_id: str, logs_dir: Path = None):
    """Creates a specific logger for a build's info-assembly step."""
    # Job names may be path-like (folder/job), keep them as sub directories
    build_log_dir = (logs_dir or LOGS_DIR) / job_name
    build_log_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = build_log_dir / f"{build_id}.log"

    logger = logging.getLogger(f"pyforge.buildinfo.build.{job_name}.{build_id}")
    logger.setLevel(logging.DEBUG)
    # Build output stays in the build log, not on the console
    logger.propagate = False

    if not any(isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(log_file_path)
               for h in logger.handlers):
        fh = logging.FileHandler(log_file_path, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger, str(log_file_path)

def close_build_logger(build_logger: logging.Logger):
    for handler in list(build_logger.handlers):
        handler.close()
        build_logger.removeHandler(handler)

# Initialize global logger
logger = setup_global_logger()
