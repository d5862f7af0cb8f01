"""
Karpenter - Autoscaling
Provisions nodes to fit pending pods
"""
import json
import pulumi
import pulumi_aws as aws
import pulumi_kubernetes as k8s

from ..references import StackReferences
from .common import cluster_provider, k8s_opts, pod_identity_trust_policy

KARPENTER_VERSION = "1.0.6"


def create_karpenter_stack(ctx):
    """Karpenter controller, its IAM access and a default NodePool"""
    refs = StackReferences(ctx)
    cluster_name = refs.get_output("cluster", "cluster_name")
    cluster_endpoint = refs.get_output("cluster", "cluster_endpoint")
    node_role_name = refs.get_output("cluster", "node_role_name")
    node_role_arn = refs.get_output("cluster", "node_role_arn")
    provider = cluster_provider(refs)

    policy = aws.iam.Policy("karpenter-controller-policy",
        policy=node_role_arn.apply(lambda arn: json.dumps({
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Action": [
                        "ec2:CreateFleet",
                        "ec2:CreateLaunchTemplate",
                        "ec2:CreateTags",
                        "ec2:DeleteLaunchTemplate",
                        "ec2:Describe*",
                        "ec2:RunInstances",
                        "ec2:TerminateInstances",
                        "eks:DescribeCluster",
                        "iam:GetInstanceProfile",
                        "iam:CreateInstanceProfile",
                        "iam:TagInstanceProfile",
                        "iam:AddRoleToInstanceProfile",
                        "pricing:GetProducts",
                        "ssm:GetParameter",
                    ],
                    "Resource": "*"
                },
                {
                    "Effect": "Allow",
                    "Action": "iam:PassRole",
                    "Resource": arn
                },
            ]
        })))

    role = aws.iam.Role("karpenter-controller-role",
        assume_role_policy=json.dumps(pod_identity_trust_policy()))

    aws.iam.RolePolicyAttachment("karpenter-policy-attach",
        role=role.name,
        policy_arn=policy.arn)

    pod_identity = aws.eks.PodIdentityAssociation("karpenter-pod-identity",
        cluster_name=cluster_name,
        namespace="kube-system",
        service_account="karpenter",
        role_arn=role.arn)

    karpenter = k8s.helm.v3.Release("karpenter",
        chart="karpenter",
        version=KARPENTER_VERSION,
        namespace="kube-system",
        repository_opts=k8s.helm.v3.RepositoryOptsArgs(
            repo="oci://public.ecr.aws/karpenter"
        ),
        values={
            "settings": {
                "clusterName": cluster_name,
                "clusterEndpoint": cluster_endpoint,
            },
            "serviceAccount": {"name": "karpenter"},
        },
        opts=k8s_opts(provider, depends_on=[pod_identity]))

    node_class = k8s.apiextensions.CustomResource("default-node-class",
        api_version="karpenter.k8s.aws/v1",
        kind="EC2NodeClass",
        metadata=k8s.meta.v1.ObjectMetaArgs(name="default"),
        spec={
            "amiSelectorTerms": [{"alias": "al2023@latest"}],
            "role": node_role_name,
            "subnetSelectorTerms": [
                {"tags": {"kubernetes.io/role/elb": "1"}}
            ],
            "securityGroupSelectorTerms": [
                {"tags": {"aws:eks:cluster-name": cluster_name}}
            ],
        },
        opts=k8s_opts(provider, depends_on=[karpenter]))

    node_pool = k8s.apiextensions.CustomResource("default-node-pool",
        api_version="karpenter.sh/v1",
        kind="NodePool",
        metadata=k8s.meta.v1.ObjectMetaArgs(name="default"),
        spec={
            "template": {
                "spec": {
                    "nodeClassRef": {
                        "group": "karpenter.k8s.aws",
                        "kind": "EC2NodeClass",
                        "name": "default",
                    },
                    "requirements": [
                        {"key": "kubernetes.io/arch", "operator": "In", "values": ["amd64", "arm64"]},
                        {"key": "karpenter.sh/capacity-type", "operator": "In", "values": ["spot", "on-demand"]},
                    ],
                },
            },
            "limits": {"cpu": "100", "memory": "400Gi"},
            "disruption": {
                "consolidationPolicy": "WhenEmptyOrUnderutilized",
                "consolidateAfter": "1m",
            },
        },
        opts=k8s_opts(provider, depends_on=[node_class]))

    pulumi.log.info("Karpenter NodePool 'default' declared")

    return {
        "role_arn": role.arn,
        "release_name": karpenter.name,
        "node_pool": node_pool.metadata["name"],
    }
