"""
Kube Prometheus Stack
Prometheus, Alertmanager and Grafana, with Grafana served at grafana.<hostname>
"""
import pulumi
import pulumi_kubernetes as k8s

from ..config import StackConfig
from ..references import StackReferences
from .common import cluster_provider, k8s_opts
from .emissary import create_route

NAMESPACE = "kube-prometheus-stack"
RELEASE_NAME = "kube-prometheus-stack"


def create_monitoring_stack(ctx):
    config = StackConfig()
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)

    namespace = k8s.core.v1.Namespace(NAMESPACE,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=NAMESPACE),
        opts=k8s_opts(provider))

    release = k8s.helm.v3.Release(RELEASE_NAME,
        name=RELEASE_NAME,
        chart="kube-prometheus-stack",
        namespace=namespace.metadata.name,
        repository_opts=k8s.helm.v3.RepositoryOptsArgs(
            repo="https://prometheus-community.github.io/helm-charts"
        ),
        values={
            "grafana": {
                "adminUser": config.grafana_user,
                "adminPassword": config.grafana_password,
            },
        },
        opts=k8s_opts(provider))

    outputs = {
        "namespace": namespace.metadata.name,
        "release_name": release.name,
    }

    if config.hostname:
        grafana_host = f"grafana.{config.hostname}"
        create_route("grafana", grafana_host,
            tls_secret_name=refs.get_output("tls", "wildcard_tls_secret_name"),
            namespace=refs.get_output("emissary", "namespace"),
            service=f"{RELEASE_NAME}-grafana.{NAMESPACE}:80",
            provider=provider)
        outputs["grafana_url"] = f"https://{grafana_host}"
    else:
        pulumi.log.warn("No hostname configured; Grafana is not exposed through Emissary")

    return outputs
