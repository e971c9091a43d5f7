from flask import Flask, request, jsonify
import os
import shutil
import sys
import logging
import platform # For OS info
from pathlib import Path

# --- Agent Configuration ---
AGENT_WORKSPACE_ROOT = Path(os.environ.get("PYFORGE_AGENT_WORKSPACE", Path.home() / "pyforge_agent_workspace"))
AGENT_PORT = int(os.environ.get("PYFORGE_AGENT_PORT", 8081))

# --- Logging ---
logger = logging.getLogger("PyForgeAgent")
if not logger.handlers:
    logging.basicConfig(stream=sys.stdout, level=logging.INFO,
                        format='%(asctime)s - %(levelname)s - AGENT - %(message)s')

app = Flask(__name__)


def _resolve_inside_workspace(raw_path: str) -> Path:
    workspace_root = AGENT_WORKSPACE_ROOT.resolve()
    target = Path(raw_path)
    if not target.is_absolute():
        target = workspace_root / target
    target = target.resolve()
    if target != workspace_root and workspace_root not in target.parents:
        raise ValueError(f"Path '{raw_path}' is outside the agent workspace {workspace_root}")
    return target


@app.route('/api/v1/workspace/file', methods=['POST'])
def receive_workspace_file():
    """Stores an uploaded file (e.g. a build info properties file) at the requested workspace path."""
    uploaded = request.files.get('file')
    raw_path = request.form.get('path')
    if uploaded is None or not raw_path:
        return jsonify({"error": "Both 'file' and 'path' are required"}), 400

    try:
        target = _resolve_inside_workspace(raw_path)
    except ValueError as e:
        logger.warning(str(e))
        return jsonify({"error": str(e)}), 400

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        uploaded.save(str(target))
    except OSError as e:
        logger.error(f"Could not store uploaded file at {target}: {e}", exc_info=True)
        return jsonify({"error": f"Could not store file: {e}"}), 500

    logger.info(f"Stored workspace file {target} ({target.stat().st_size} bytes)")
    return jsonify({"path": str(target)}), 201


@app.route('/health', methods=['GET'])
def health_check():
    try:
        disk_info = shutil.disk_usage(str(AGENT_WORKSPACE_ROOT))
    except OSError as e:
        logger.error(f"Error collecting health stats: {e}", exc_info=True)
        return jsonify({"status": "unhealthy", "error": str(e)}), 500

    health_data = {
        "status": "healthy",
        "agent_workspace": str(AGENT_WORKSPACE_ROOT),
        "python_version": sys.version,
        "platform": platform.platform(),
        "disk_workspace_total_gb": round(disk_info.total / (1024**3), 2),
        "disk_workspace_free_gb": round(disk_info.free / (1024**3), 2),
    }
    return jsonify(health_data), 200


def main():
    AGENT_WORKSPACE_ROOT.mkdir(parents=True, exist_ok=True)
    logger.info(f"PyForge build info agent starting on port {AGENT_PORT}")
    logger.info(f"Agent Workspace: {AGENT_WORKSPACE_ROOT}")
    app.run(host='0.0.0.0', port=AGENT_PORT, debug=False)


if __name__ == '__main__':
    main()
