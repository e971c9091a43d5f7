import json
from pathlib import Path
from typing import Dict, Optional, Any
from .logger_setup import logger # Import the global logger

AGENT_CONFIG_FILE_NAME = "agents_config.json" # Relative to data directory

class AgentInfo:
    def __init__(self, name: str, address: str):
        self.name = name
        self.address = address.rstrip('/')  # e.g., http://localhost:8081

    def file_upload_url(self) -> str:
        return f"{self.address}/api/v1/workspace/file"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentInfo':
        if not data.get('address'):
            raise ValueError(f"Agent '{data.get('name')}' has no 'address'.")
        return cls(
            name=data['name'],
            address=data['address'],
        )


class AgentManager:
    """Known build agents, keyed by name, loaded from agents_config.json."""

    def __init__(self, data_root: Path):
        self.config_file = data_root / AGENT_CONFIG_FILE_NAME
        self.agents: Dict[str, AgentInfo] = {}  # name -> AgentInfo
        self.logger = logger
        self.load_agents()

    def load_agents(self):
        self.agents = {}
        if not self.config_file.exists():
            self.logger.warning(f"Agent configuration file not found: {self.config_file}. No agents loaded.")
            return

        try:
            with open(self.config_file, 'r') as f:
                agents_data_list = json.load(f)

            if not isinstance(agents_data_list, list):
                 self.logger.error(f"Agent configuration file {self.config_file} is not a list. Skipping.")
                 return

            for agent_config_dict in agents_data_list:
                try:
                    agent_name = agent_config_dict.get("name")
                    if not agent_name:
                        self.logger.warning(f"Agent configuration missing 'name': {agent_config_dict}. Skipping.")
                        continue

                    agent_info = AgentInfo.from_dict(agent_config_dict)
                    self.agents[agent_info.name] = agent_info
                except (ValueError, TypeError, AttributeError) as e_val:
                    self.logger.error(f"Invalid configuration for agent '{agent_config_dict}': {e_val}. Skipping.")

            self.logger.info(f"Loaded {len(self.agents)} agent(s) from {self.config_file}")
        except json.JSONDecodeError:
            self.logger.error(f"Error decoding JSON from agent config file: {self.config_file}")

    def get_agent(self, name: str) -> Optional[AgentInfo]:
        return self.agents.get(name)
