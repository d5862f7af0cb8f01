"""
Dapr
Sidecar runtime injected into annotated application pods
"""
import pulumi_kubernetes as k8s

from ..references import StackReferences
from .common import cluster_provider, k8s_opts

NAMESPACE = "dapr-system"


def create_dapr_stack(ctx):
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)

    namespace = k8s.core.v1.Namespace(NAMESPACE,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=NAMESPACE),
        opts=k8s_opts(provider))

    dapr = k8s.helm.v3.Release("dapr",
        chart="dapr",
        namespace=namespace.metadata.name,
        repository_opts=k8s.helm.v3.RepositoryOptsArgs(
            repo="https://dapr.github.io/helm-charts/"
        ),
        values={"global": {"ha": {"enabled": False}}},
        opts=k8s_opts(provider))

    return {
        "namespace": namespace.metadata.name,
        "release_name": dapr.name,
    }
