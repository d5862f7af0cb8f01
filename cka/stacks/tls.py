"""
TLS
Let's Encrypt ClusterIssuer plus root and wildcard certificates for the hostname
"""
import pulumi
import pulumi_kubernetes as k8s

from ..config import StackConfig
from ..references import StackReferences
from .common import cluster_provider, k8s_opts

ISSUER_NAME = "letsencrypt-dns-issuer"
ROOT_TLS_SECRET = "root-domain-tls"
WILDCARD_TLS_SECRET = "subdomain-wildcard-tls"


def _certificate(name, dns_name, secret_name, namespace, provider, issuer):
    return k8s.apiextensions.CustomResource(name,
        api_version="cert-manager.io/v1",
        kind="Certificate",
        metadata=k8s.meta.v1.ObjectMetaArgs(name=name, namespace=namespace),
        spec={
            "secretName": secret_name,
            "dnsNames": [dns_name],
            "issuerRef": {"name": ISSUER_NAME, "kind": "ClusterIssuer"},
        },
        opts=k8s_opts(provider, depends_on=[issuer]))


def create_tls_stack(ctx):
    config = StackConfig()
    if not config.hostname or not config.acme_email:
        raise ValueError("tls stack needs 'hostname' and 'acme_email' config")

    refs = StackReferences(ctx)
    provider = cluster_provider(refs)
    emissary_namespace = refs.get_output("emissary", "namespace")

    issuer = k8s.apiextensions.CustomResource("letsencrypt-cluster-issuer",
        api_version="cert-manager.io/v1",
        kind="ClusterIssuer",
        metadata=k8s.meta.v1.ObjectMetaArgs(name=ISSUER_NAME),
        spec={
            "acme": {
                "email": config.acme_email,
                "server": "https://acme-v02.api.letsencrypt.org/directory",
                "privateKeySecretRef": {"name": "letsencrypt-pk-secret"},
                "solvers": [{
                    "selector": {"dnsZones": [config.hostname]},
                    "dns01": {"route53": {"region": config.aws_region}},
                }],
            },
        },
        opts=k8s_opts(provider))

    _certificate("root-domain-cert", config.hostname, ROOT_TLS_SECRET,
                 emissary_namespace, provider, issuer)
    _certificate("subdomain-wildcard-cert", f"*.{config.hostname}", WILDCARD_TLS_SECRET,
                 emissary_namespace, provider, issuer)

    pulumi.log.info(f"Requested certificates for {config.hostname} and *.{config.hostname}")

    return {
        "issuer_name": ISSUER_NAME,
        "tls_secret_name": ROOT_TLS_SECRET,
        "wildcard_tls_secret_name": WILDCARD_TLS_SECRET,
        "hostname": config.hostname,
    }
