"""
Stack programs
One function per stack; each takes the ExecutionContext and returns its outputs
"""
import re
from functools import partial

from ..config import ENV_NAME_PATTERN

from .app import create_app_ingress_stack, create_app_init_stack, create_app_stack
from .cert_manager import create_cert_manager_stack
from .cluster import create_cluster_stack
from .dapr import create_dapr_stack
from .db import create_db_stack
from .emissary import create_emissary_stack
from .karpenter import create_karpenter_stack
from .monitoring import create_monitoring_stack
from .tls import create_tls_stack

PLATFORM_STACKS = {
    "cluster": create_cluster_stack,
    "karpenter": create_karpenter_stack,
    "cert-manager": create_cert_manager_stack,
    "emissary": create_emissary_stack,
    "tls": create_tls_stack,
    "dapr": create_dapr_stack,
    "kube-prometheus-stack": create_monitoring_stack,
}

# Environment stacks, e.g. app-staging-init, db-prod
ENV_STACKS = [
    (re.compile(r"^app-(?P<env>" + ENV_NAME_PATTERN + r")-init$"), create_app_init_stack),
    (re.compile(r"^app-(?P<env>" + ENV_NAME_PATTERN + r")-ingress$"), create_app_ingress_stack),
    (re.compile(r"^db-(?P<env>" + ENV_NAME_PATTERN + r")$"), create_db_stack),
    (re.compile(r"^app-(?P<env>" + ENV_NAME_PATTERN + r")$"), create_app_stack),
]


def resolve_stack_program(stack):
    """Stack program for a short stack name; unknown stacks are a ValueError"""
    if stack in PLATFORM_STACKS:
        return PLATFORM_STACKS[stack]
    for pattern, program in ENV_STACKS:
        match = pattern.match(stack or "")
        if match:
            return partial(program, env=match.group("env"))
    raise ValueError(f"No Pulumi program for stack '{stack}'")


__all__ = [
    "PLATFORM_STACKS",
    "resolve_stack_program",
]
