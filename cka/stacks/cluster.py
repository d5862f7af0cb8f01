"""
EKS Cluster Stack
VPC, IAM roles, cluster, managed node group and managed add-ons
"""
import json
import pulumi
import pulumi_aws as aws

from ..config import StackConfig
from .common import render_kubeconfig
from .network import create_network

MANAGED_ADDONS = {
    "vpc-cni": "vpc-cni",
    "coredns": "coredns",
    "kube-proxy": "kube-proxy",
    "pod-identity-agent": "eks-pod-identity-agent",
    "ebs-csi-driver": "aws-ebs-csi-driver",
}


def _service_role(name, service, policy_arns, tags):
    role = aws.iam.Role(name,
        assume_role_policy=json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Action": "sts:AssumeRole",
                "Effect": "Allow",
                "Principal": {"Service": service}
            }]
        }),
        tags=tags)

    for policy_name, policy_arn in policy_arns.items():
        aws.iam.RolePolicyAttachment(f"{name}-{policy_name}",
            policy_arn=policy_arn,
            role=role.name)

    return role


def create_cluster_stack(ctx):
    """Provision the EKS cluster every other stack runs on"""
    config = StackConfig()
    tags = config.common_tags
    cluster_name = f"{ctx.project}-cluster"

    network = create_network(cluster_name, vpc_cidr=config.vpc_cidr, tags=tags)

    cluster_role = _service_role("eks-cluster-role", "eks.amazonaws.com", {
        "cluster": "arn:aws:iam::aws:policy/AmazonEKSClusterPolicy",
    }, tags)

    node_role = _service_role("eks-node-role", "ec2.amazonaws.com", {
        "worker": "arn:aws:iam::aws:policy/AmazonEKSWorkerNodePolicy",
        "cni": "arn:aws:iam::aws:policy/AmazonEKS_CNI_Policy",
        "ecr": "arn:aws:iam::aws:policy/AmazonEC2ContainerRegistryReadOnly",
        "ssm": "arn:aws:iam::aws:policy/AmazonSSMManagedInstanceCore",
    }, tags)

    encryption_config = None
    if config.encryption_config_key_arn:
        encryption_config = aws.eks.ClusterEncryptionConfigArgs(
            provider=aws.eks.ClusterEncryptionConfigProviderArgs(
                key_arn=config.encryption_config_key_arn),
            resources=["secrets"])

    cluster = aws.eks.Cluster("cluster",
        name=cluster_name,
        role_arn=cluster_role.arn,
        version=config.cluster_version,
        vpc_config=aws.eks.ClusterVpcConfigArgs(
            subnet_ids=network["subnet_ids"],
            endpoint_public_access=True,
            endpoint_private_access=True,
        ),
        access_config=aws.eks.ClusterAccessConfigArgs(
            authentication_mode="API_AND_CONFIG_MAP"
        ),
        encryption_config=encryption_config,
        enabled_cluster_log_types=["api", "audit", "authenticator"],
        tags=tags)

    node_group = aws.eks.NodeGroup("primary-nodes",
        cluster_name=cluster.name,
        node_role_arn=node_role.arn,
        subnet_ids=network["subnet_ids"],
        instance_types=[config.instance_type],
        capacity_type="ON_DEMAND",
        scaling_config=aws.eks.NodeGroupScalingConfigArgs(
            desired_size=config.node_count,
            max_size=config.node_count,
            min_size=1,
        ),
        disk_size=50,
        tags={**tags, "Name": f"{cluster_name}-primary-nodes"})

    # Managed add-ons need nodes to schedule on
    for name, addon_name in MANAGED_ADDONS.items():
        aws.eks.Addon(name,
            cluster_name=cluster.name,
            addon_name=addon_name,
            resolve_conflicts_on_create="OVERWRITE",
            resolve_conflicts_on_update="OVERWRITE",
            opts=pulumi.ResourceOptions(depends_on=[node_group]))

    kubeconfig = pulumi.Output.all(
        cluster.endpoint,
        cluster.certificate_authority.data,
        cluster.name
    ).apply(lambda args: render_kubeconfig(*args))

    return {
        "kubeconfig": pulumi.Output.secret(kubeconfig),
        "cluster_name": cluster.name,
        "cluster_endpoint": cluster.endpoint,
        "node_role_name": node_role.name,
        "node_role_arn": node_role.arn,
        "vpc_id": network["vpc"].id,
        "vpc_cidr": network["vpc_cidr"],
        "subnet_ids": network["subnet_ids"],
    }
