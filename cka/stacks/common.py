"""
Shared pieces for stack programs
"""
import pulumi
import pulumi_kubernetes as k8s

from ..references import StackReferences


def render_kubeconfig(endpoint, ca_data, cluster_name) -> str:
    """Kubeconfig that authenticates through `aws eks get-token`"""
    return f"""apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: {ca_data}
    server: {endpoint}
  name: {cluster_name}
contexts:
- context:
    cluster: {cluster_name}
    user: {cluster_name}
  name: {cluster_name}
current-context: {cluster_name}
kind: Config
users:
- name: {cluster_name}
  user:
    exec:
      apiVersion: client.authentication.k8s.io/v1beta1
      command: aws
      args:
        - eks
        - get-token
        - --cluster-name
        - {cluster_name}
"""


def cluster_provider(refs: StackReferences) -> k8s.Provider:
    """Kubernetes provider for the cluster stack's kubeconfig output"""
    return k8s.Provider("k8s-provider",
        kubeconfig=refs.get_output("cluster", "kubeconfig"))


def k8s_opts(provider: k8s.Provider, depends_on=None) -> pulumi.ResourceOptions:
    return pulumi.ResourceOptions(provider=provider, depends_on=depends_on or [])


def pod_identity_trust_policy() -> dict:
    return {
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"Service": "pods.eks.amazonaws.com"},
            "Action": ["sts:AssumeRole", "sts:TagSession"]
        }]
    }
