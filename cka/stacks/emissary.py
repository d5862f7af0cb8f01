"""
Emissary Ingress
Edge proxy for every HTTP(S) route into the cluster
"""
import pulumi_kubernetes as k8s

from ..references import StackReferences
from .common import cluster_provider, k8s_opts

NAMESPACE = "emissary"


def _listener(name, port, protocol_stack, namespace, provider, depends_on):
    return k8s.apiextensions.CustomResource(f"emissary-listener-{name}",
        api_version="getambassador.io/v3alpha1",
        kind="Listener",
        metadata=k8s.meta.v1.ObjectMetaArgs(name=f"emissary-{name}-listener", namespace=namespace),
        spec={
            "port": port,
            "protocol": protocol_stack,
            "securityModel": "XFP",
            "hostBinding": {"namespace": {"from": "ALL"}},
        },
        opts=k8s_opts(provider, depends_on=depends_on))


def create_emissary_stack(ctx):
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)

    namespace = k8s.core.v1.Namespace(NAMESPACE,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=NAMESPACE),
        opts=k8s_opts(provider))

    emissary = k8s.helm.v3.Release("emissary-ingress",
        chart="emissary-ingress",
        namespace=namespace.metadata.name,
        repository_opts=k8s.helm.v3.RepositoryOptsArgs(
            repo="https://app.getambassador.io"
        ),
        values={
            "service": {
                "annotations": {
                    "service.beta.kubernetes.io/aws-load-balancer-type": "nlb",
                },
            },
        },
        opts=k8s_opts(provider))

    _listener("http", 8080, "HTTP", NAMESPACE, provider, [emissary])
    _listener("https", 8443, "HTTPS", NAMESPACE, provider, [emissary])

    return {
        "namespace": namespace.metadata.name,
        "release_name": emissary.name,
    }


def create_route(name, hostname, tls_secret_name, namespace, service, provider, prefix="/"):
    """Emissary Host + Mapping sending https://hostname{prefix} to service"""
    host = k8s.apiextensions.CustomResource(f"{name}-host",
        api_version="getambassador.io/v3alpha1",
        kind="Host",
        metadata=k8s.meta.v1.ObjectMetaArgs(name=f"{name}-host", namespace=namespace),
        spec={
            "hostname": hostname,
            "tlsSecret": {"name": tls_secret_name},
            "requestPolicy": {"insecure": {"action": "Redirect"}},
        },
        opts=k8s_opts(provider))

    mapping = k8s.apiextensions.CustomResource(f"{name}-mapping",
        api_version="getambassador.io/v3alpha1",
        kind="Mapping",
        metadata=k8s.meta.v1.ObjectMetaArgs(name=f"{name}-mapping", namespace=namespace),
        spec={
            "hostname": hostname,
            "prefix": prefix,
            "service": service,
        },
        opts=k8s_opts(provider, depends_on=[host]))

    return {"host": host, "mapping": mapping}
