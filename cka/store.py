"""
Per-stack configuration store
Merges config maps and mirrors them to Pulumi.<stack>.yaml for local management
"""

import logging
import os
import subprocess
from typing import Dict, Mapping, Optional

from pulumi import automation as auto

from .context import short_stack_name
from .errors import CleanupError

logger = logging.getLogger(__name__)

ConfigMap = Dict[str, auto.ConfigValue]


def merge_config_maps(global_map: Optional[Mapping[str, auto.ConfigValue]],
                      stack_map: Optional[Mapping[str, auto.ConfigValue]]) -> ConfigMap:
    """Global entries first, stack entries win on key collision"""
    merged = dict(global_map or {})
    merged.update(stack_map or {})
    return merged


class ConfigStore:
    """Local Pulumi.<stack>.yaml files in the project directory"""

    def __init__(self, cwd: str, pulumi_bin: str = "pulumi"):
        self.cwd = cwd
        self.pulumi_bin = pulumi_bin

    def stack_file(self, stack_name: str) -> str:
        return os.path.join(self.cwd, f"Pulumi.{short_stack_name(stack_name)}.yaml")

    def persist(self, stack_name: str, config_map: Mapping[str, auto.ConfigValue]):
        """Set every entry through the pulumi CLI so the stack file matches the engine"""
        for key, config_value in config_map.items():
            cmd = [self.pulumi_bin, "config", "set", "--stack", stack_name]
            if config_value.secret:
                cmd.append("--secret")
            cmd += [key, "--", str(config_value.value)]
            logger.debug("Setting config %s on %s", key, stack_name)
            subprocess.run(cmd, cwd=self.cwd, check=True, capture_output=True)

    def remove(self, stack_name: str):
        """Delete the stack file; a file that is already gone counts as removed"""
        path = self.stack_file(stack_name)
        try:
            os.remove(path)
        except FileNotFoundError:
            # destroy may be re-run after failing part way through
            logger.debug("%s already removed", path)
            return
        except OSError as e:
            raise CleanupError(f"Could not remove {path}: {e}") from e
        logger.debug("Removed %s", path)
