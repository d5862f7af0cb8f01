"""
cert-manager
Issues certificates, solving ACME DNS-01 challenges through Route53
"""
import json
import pulumi_aws as aws
import pulumi_kubernetes as k8s

from ..references import StackReferences
from .common import cluster_provider, k8s_opts, pod_identity_trust_policy

NAMESPACE = "cert-manager"
SERVICE_ACCOUNT = "cert-manager"


def create_cert_manager_stack(ctx):
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)

    policy = aws.iam.Policy("cert-manager-route53-policy",
        policy=json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Effect": "Allow",
                "Action": "route53:GetChange",
                "Resource": "arn:aws:route53:::change/*"
            }, {
                "Effect": "Allow",
                "Action": [
                    "route53:ChangeResourceRecordSets",
                    "route53:ListResourceRecordSets"
                ],
                "Resource": "arn:aws:route53:::hostedzone/*"
            }, {
                "Effect": "Allow",
                "Action": "route53:ListHostedZonesByName",
                "Resource": "*"
            }]
        }))

    role = aws.iam.Role("cert-manager-role",
        assume_role_policy=json.dumps(pod_identity_trust_policy()))

    aws.iam.RolePolicyAttachment("cert-manager-policy-attach",
        role=role.name,
        policy_arn=policy.arn)

    pod_identity = aws.eks.PodIdentityAssociation("cert-manager-pod-identity",
        cluster_name=refs.get_output("cluster", "cluster_name"),
        namespace=NAMESPACE,
        service_account=SERVICE_ACCOUNT,
        role_arn=role.arn)

    namespace = k8s.core.v1.Namespace(NAMESPACE,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=NAMESPACE),
        opts=k8s_opts(provider))

    release = k8s.helm.v3.Release("cert-manager",
        chart="cert-manager",
        namespace=namespace.metadata.name,
        repository_opts=k8s.helm.v3.RepositoryOptsArgs(
            repo="https://charts.jetstack.io"
        ),
        values={
            "installCRDs": True,
            "serviceAccount": {"name": SERVICE_ACCOUNT},
        },
        opts=k8s_opts(provider, depends_on=[pod_identity]))

    return {
        "namespace": namespace.metadata.name,
        "release_name": release.name,
        "role_arn": role.arn,
    }
