"""
Database Stack
RDS PostgreSQL per app environment, connection details stored as a Secret
"""
import pulumi_aws as aws
import pulumi_kubernetes as k8s

from ..config import StackConfig
from ..references import StackReferences
from .common import cluster_provider, k8s_opts


def create_db_stack(ctx, env):
    config = StackConfig()
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)
    app_namespace = refs.get_output(f"app-{env}-init", "namespace")

    db_sg = aws.ec2.SecurityGroup("db-sg",
        vpc_id=refs.get_output("cluster", "vpc_id"),
        description=f"PostgreSQL security group ({env})",
        ingress=[aws.ec2.SecurityGroupIngressArgs(
            protocol="tcp",
            from_port=5432,
            to_port=5432,
            cidr_blocks=[refs.get_output("cluster", "vpc_cidr")],  # VPC CIDR only
        )],
        egress=[aws.ec2.SecurityGroupEgressArgs(
            protocol="-1",
            from_port=0,
            to_port=0,
            cidr_blocks=["0.0.0.0/0"],
        )],
        tags=config.common_tags)

    db_subnet_group = aws.rds.SubnetGroup("db-subnet-group",
        subnet_ids=refs.get_output("cluster", "subnet_ids"),
        tags=config.common_tags)

    db_name = f"app{env}"
    instance = aws.rds.Instance("postgres",
        engine="postgres",
        instance_class="db.t4g.micro",
        allocated_storage=20,
        max_allocated_storage=100,
        db_name=db_name,
        username=config.db_user,
        password=config.db_password,
        db_subnet_group_name=db_subnet_group.name,
        vpc_security_group_ids=[db_sg.id],
        storage_encrypted=True,
        skip_final_snapshot=True,
        backup_retention_period=7 if env == "prod" else 1,
        tags=config.common_tags)

    k8s.core.v1.Secret("db-credentials",
        metadata=k8s.meta.v1.ObjectMetaArgs(name="db-credentials", namespace=app_namespace),
        string_data={
            "DB_HOST": instance.address,
            "DB_PORT": instance.port.apply(str),
            "DB_NAME": db_name,
            "DB_USER": config.db_user,
            "DB_PASSWORD": config.db_password,
        },
        opts=k8s_opts(provider))

    return {
        "db_name": db_name,
        "db_endpoint": instance.address,
        "db_port": instance.port,
        "db_secret_name": "db-credentials",
    }
