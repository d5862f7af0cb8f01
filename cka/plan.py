"""
Stack plans
Up order is data; destroy order is derived from it
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from pulumi import automation as auto

from .config import ProjectConfig

CLUSTER_STACKS = ("cluster", "karpenter")

KUBECONFIG_REF = {"cluster": ["kubeconfig"]}


@dataclass(frozen=True)
class StackSpec:
    """One stack in a plan and the outputs of earlier stacks it reads"""

    name: str
    config_map: Dict[str, auto.ConfigValue] = field(default_factory=dict)
    references: Dict[str, List[str]] = field(default_factory=dict)


class StackPlan:
    """Ordered stacks; every referenced stack that is in the plan comes first"""

    def __init__(self, specs: Iterable[StackSpec]):
        self.specs: Tuple[StackSpec, ...] = tuple(specs)
        seen = set()
        names = {spec.name for spec in self.specs}
        for spec in self.specs:
            if not spec.name:
                raise ValueError("stack name must not be empty")
            if spec.name in seen:
                raise ValueError(f"duplicate stack '{spec.name}' in plan")
            for ref in spec.references:
                if ref in names and ref not in seen:
                    raise ValueError(f"stack '{spec.name}' references '{ref}' which comes later in the plan")
            seen.add(spec.name)

    def __iter__(self):
        return iter(self.specs)

    def __len__(self):
        return len(self.specs)

    def __add__(self, other: "StackPlan") -> "StackPlan":
        return StackPlan(self.specs + other.specs)

    @property
    def names(self) -> List[str]:
        return [spec.name for spec in self.specs]

    def up_order(self) -> List[StackSpec]:
        return list(self.specs)

    def destroy_order(self, keep: Iterable[str] = ()) -> List[StackSpec]:
        kept = set(keep)
        return [spec for spec in reversed(self.specs) if spec.name not in kept]


def platform_plan(config: ProjectConfig) -> StackPlan:
    """cluster -> autoscaling -> ingress -> TLS -> sidecars -> monitoring"""
    cluster_config = {}
    if config.encryption_config_key_arn:
        cluster_config["encryption_config_key_arn"] = auto.ConfigValue(value=config.encryption_config_key_arn)

    return StackPlan([
        StackSpec("cluster", cluster_config),
        StackSpec("karpenter", references={
            "cluster": ["kubeconfig", "cluster_name", "cluster_endpoint", "node_role_name", "node_role_arn"],
        }),
        StackSpec("cert-manager", references={"cluster": ["kubeconfig", "cluster_name"]}),
        StackSpec("emissary", references=KUBECONFIG_REF),
        StackSpec("tls", {
            "hostname": auto.ConfigValue(value=config.hostname),
            "acme_email": auto.ConfigValue(value=config.acme_email),
        }, references={"cluster": ["kubeconfig"], "emissary": ["namespace"], "cert-manager": ["namespace"]}),
        StackSpec("dapr", references=KUBECONFIG_REF),
        StackSpec("kube-prometheus-stack", {
            "hostname": auto.ConfigValue(value=config.hostname),
            "grafana_user": auto.ConfigValue(value=config.grafana_user),
            "grafana_password": auto.ConfigValue(value=config.grafana_password, secret=True),
        }, references={"cluster": ["kubeconfig"], "emissary": ["namespace"], "tls": ["wildcard_tls_secret_name"]}),
    ])


def app_plan(config: ProjectConfig) -> StackPlan:
    """Per environment: namespace -> database -> app -> ingress"""
    specs = []
    for env in config.app_environments:
        init = f"app-{env}-init"
        db = f"db-{env}"
        app = f"app-{env}"
        specs += [
            StackSpec(init, references=KUBECONFIG_REF),
            StackSpec(db, {
                "db_user": auto.ConfigValue(value=config.db_user(env)),
                "db_password": auto.ConfigValue(value=config.db_password(env), secret=True),
            }, references={"cluster": ["kubeconfig", "vpc_id", "subnet_ids", "vpc_cidr"], init: ["namespace"]}),
            StackSpec(app, {
                "app_image": auto.ConfigValue(value=config.app_image),
                "app_port": auto.ConfigValue(value=str(config.app_port)),
            }, references={"cluster": ["kubeconfig"], init: ["namespace"], db: ["db_endpoint"]}),
            StackSpec(f"app-{env}-ingress", {
                "hostname": auto.ConfigValue(value=config.hostname),
            }, references={
                "cluster": ["kubeconfig"], "emissary": ["namespace"], "tls": ["tls_secret_name", "wildcard_tls_secret_name"],
                init: ["namespace"], app: ["service_name", "service_port"],
            }),
        ]
    return StackPlan(specs)


def full_plan(config: ProjectConfig) -> StackPlan:
    return platform_plan(config) + app_plan(config)
