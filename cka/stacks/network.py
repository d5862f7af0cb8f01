"""
Network Infrastructure
VPC with one public subnet per availability zone for EKS
"""
import ipaddress

import pulumi_aws as aws


def create_network(cluster_name, vpc_cidr="10.0.0.0/16", az_count=2, tags=None):
    """Create a VPC, internet gateway and public subnets across az_count AZs"""
    tags = tags or {}
    azs = aws.get_availability_zones(state="available").names[:az_count]

    vpc = aws.ec2.Vpc("vpc",
        cidr_block=vpc_cidr,
        enable_dns_hostnames=True,
        enable_dns_support=True,
        tags={**tags, "Name": f"{cluster_name}-vpc"})

    igw = aws.ec2.InternetGateway("igw",
        vpc_id=vpc.id,
        tags={**tags, "Name": f"{cluster_name}-igw"})

    route_table = aws.ec2.RouteTable("public-rt",
        vpc_id=vpc.id,
        routes=[aws.ec2.RouteTableRouteArgs(
            cidr_block="0.0.0.0/0",
            gateway_id=igw.id)],
        tags={**tags, "Name": f"{cluster_name}-public-rt"})

    # /22 per subnet (1,022 usable IPs each)
    cidrs = ipaddress.ip_network(vpc_cidr).subnets(new_prefix=22)
    subnets = []
    for i, (az, cidr) in enumerate(zip(azs, cidrs), start=1):
        subnet = aws.ec2.Subnet(f"public-subnet-{i}",
            vpc_id=vpc.id,
            cidr_block=str(cidr),
            availability_zone=az,
            map_public_ip_on_launch=True,
            tags={
                **tags,
                "Name": f"{cluster_name}-public-{i}",
                "kubernetes.io/role/elb": "1",
                f"kubernetes.io/cluster/{cluster_name}": "shared",
            })
        aws.ec2.RouteTableAssociation(f"subnet{i}-rt",
            subnet_id=subnet.id,
            route_table_id=route_table.id)
        subnets.append(subnet)

    return {
        "vpc": vpc,
        "vpc_cidr": vpc_cidr,
        "subnet_ids": [subnet.id for subnet in subnets],
        "subnets": subnets,
    }
