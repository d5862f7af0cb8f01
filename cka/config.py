"""
Configuration management for the cka CLI and its Pulumi programs
"""

import json
import os
import re
from typing import Any, Dict, List

import pulumi
import yaml
from pulumi import automation as auto

from .errors import ConfigurationMissing

CONFIG_FILE_NAME = "cka-config.json"
PROJECT_FILE_NAME = "Pulumi.yaml"

# Environment names end up inside stack names such as app-<env>-init
ENV_NAME_PATTERN = r"[a-z0-9]+"

# Keys each command needs before any stack is touched
INIT_REQUIRED_KEYS = ("hostname", "acmeEmail")
APP_REQUIRED_KEYS = ("hostname",)


class ProjectConfig:
    """Settings read from cka-config.json in the project root"""

    def __init__(self, data: Dict[str, Any]):
        init = data.get("init")
        if not init:
            raise ConfigurationMissing(f'Must provide an "init" section in "{CONFIG_FILE_NAME}"')
        self.init = init
        destroy = data.get("destroy") or {}

        # Required
        self.aws_region = self._require("awsRegion")
        self.pulumi_organization = self._require("pulumiOrganization")

        # Platform
        self.hostname = init.get("hostname") or ""
        self.acme_email = init.get("acmeEmail") or ""
        self.use_direnv = init.get("useDirenv") or False
        self.encryption_config_key_arn = init.get("encryptionConfigKeyArn") or ""
        self.grafana_user = init.get("grafanaUser") or "ckaadmin"
        self.grafana_password = init.get("grafanaPassword") or "ckaadminpass"

        # Apps
        self.app_environments: List[str] = init.get("appEnvironments") or ["staging"]
        for env in self.app_environments:
            if not isinstance(env, str) or not re.fullmatch(ENV_NAME_PATTERN, env):
                raise ConfigurationMissing(
                    f'Invalid app environment "{env}" in "{CONFIG_FILE_NAME}"; '
                    "use lowercase letters and digits only"
                )
        self.app_image = init.get("appImage") or "nginx:stable"
        self.app_port = int(init.get("appPort") or 80)

        # Destroy
        self.remove_stacks = destroy.get("removeStacks", True)

    def _require(self, key: str) -> str:
        value = self.init.get(key)
        if not value:
            raise ConfigurationMissing(f'Missing "init.{key}" in "{CONFIG_FILE_NAME}"')
        return value

    def require_settings(self, *keys: str):
        """Fail before any stack runs when a command needs settings that are unset"""
        for key in keys:
            self._require(key)

    def db_user(self, env: str) -> str:
        return self.init.get(f"{env}DbUser") or "ckaadmin"

    def db_password(self, env: str) -> str:
        return self.init.get(f"{env}DbPassword") or "ckaadminpass"

    @property
    def global_config_map(self) -> Dict[str, auto.ConfigValue]:
        """Config set on every stack before it is applied"""
        return {
            "aws:region": auto.ConfigValue(value=self.aws_region),
            "pulumi_organization": auto.ConfigValue(value=self.pulumi_organization),
        }


def load_project_config(cwd: str) -> ProjectConfig:
    """Load cka-config.json from the directory the CLI runs in"""
    path = os.path.join(cwd, CONFIG_FILE_NAME)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationMissing(f'Must provide "{CONFIG_FILE_NAME}" in your project root folder')
    except json.JSONDecodeError as e:
        raise ConfigurationMissing(f'"{CONFIG_FILE_NAME}" is not valid JSON: {e}')
    if not isinstance(data, dict):
        raise ConfigurationMissing(f'"{CONFIG_FILE_NAME}" must contain a JSON object')
    return ProjectConfig(data)


def get_project_name(cwd: str) -> str:
    """Read the Pulumi project name from Pulumi.yaml"""
    path = os.path.join(cwd, PROJECT_FILE_NAME)
    try:
        with open(path, "r") as f:
            project = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationMissing(
            f'Pulumi project file "{PROJECT_FILE_NAME}" is not found in project root. '
            "You must first create a Pulumi project."
        )
    name = project.get("name")
    if not name:
        raise ConfigurationMissing(f'"{PROJECT_FILE_NAME}" has no project name')
    return name


class StackConfig:
    """Per-stack settings as seen from inside a Pulumi program"""

    def __init__(self):
        self.config = pulumi.Config()

        # Shared
        self.organization = self.config.require("pulumi_organization")
        self.aws_region = pulumi.Config("aws").get("region") or "us-west-1"

        # Cluster
        self.cluster_version = self.config.get("cluster_version") or "1.31"
        self.instance_type = self.config.get("instance_type") or "t3.large"
        self.node_count = self.config.get_int("node_count") or 2
        self.vpc_cidr = self.config.get("vpc_cidr") or "10.0.0.0/16"
        self.encryption_config_key_arn = self.config.get("encryption_config_key_arn")

        # Ingress / TLS / monitoring
        self.hostname = self.config.get("hostname")
        self.acme_email = self.config.get("acme_email")
        self.grafana_user = self.config.get("grafana_user") or "ckaadmin"

        # Apps
        self.app_image = self.config.get("app_image") or "nginx:stable"
        self.app_port = self.config.get_int("app_port") or 80
        self.db_user = self.config.get("db_user") or "ckaadmin"

    @property
    def grafana_password(self) -> pulumi.Output:
        return self.config.require_secret("grafana_password")

    @property
    def db_password(self) -> pulumi.Output:
        return self.config.require_secret("db_password")

    @property
    def common_tags(self) -> Dict[str, str]:
        """Tags applied to AWS resources"""
        return {
            "Project": pulumi.get_project(),
            "Stack": pulumi.get_stack(),
            "ManagedBy": "pulumi",
        }
