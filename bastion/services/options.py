import asyncio
import logging
import threading
from typing import Optional

from bastion.cloud_profile import determine_image_id, get_cloud_profile_config
from bastion.errors import SecurityGroupNotFoundError, SubnetNotFoundError
from bastion.models import BastionRequest, Cluster, ResolvedOptions, Subnet
from bastion.services.ec2_query import Ec2Query, check_cancelled
from bastion.services.instance_type import determine_instance_type

logger = logging.getLogger(__name__)


def subnet_name(cluster_name: str) -> str:
    return f"{cluster_name}-public-utility-z0"


def worker_security_group_name(cluster_name: str) -> str:
    return f"{cluster_name}-nodes"


def bastion_security_group_name(cluster_name: str, bastion_name: str) -> str:
    return f"{cluster_name}-{bastion_name}-bsg"


def instance_name(cluster_name: str, bastion_name: str) -> str:
    return f"{cluster_name}-{bastion_name}-bastion"


def resolve_subnet(
    ec2_query: Ec2Query,
    name: str,
    cancelled: Optional[threading.Event] = None,
) -> Subnet:
    """Resolve a subnet name to the subnet and its VPC."""
    check_cancelled(cancelled, "DescribeSubnets")
    subnets = ec2_query.find_subnets_by_name(name)
    if not subnets:
        raise SubnetNotFoundError(name)
    return subnets[0]


def determine_options(
    cluster: Cluster,
    bastion: BastionRequest,
    ec2_query: Ec2Query,
    cancelled: Optional[threading.Event] = None,
) -> ResolvedOptions:
    """Determine the VPC, subnet, image and instance type for a bastion.

    Only pre-existing resources are looked up; nothing is created. Setting
    ``cancelled`` stops the pipeline before its next provider query.
    """
    name = cluster.name

    subnet = resolve_subnet(ec2_query, subnet_name(name), cancelled)
    logger.debug("Resolved subnet %s in vpc %s", subnet.subnet_id, subnet.vpc_id)

    # this security group exists already and just needs to be resolved to its ID
    worker_sg_name = worker_security_group_name(name)
    check_cancelled(cancelled, "DescribeSecurityGroups")
    worker_groups = ec2_query.find_security_groups(subnet.vpc_id, worker_sg_name)
    if not worker_groups:
        raise SecurityGroupNotFoundError(worker_sg_name, subnet.vpc_id)

    cloud_profile_config = get_cloud_profile_config(cluster)
    image_id = determine_image_id(cluster.region, cloud_profile_config)
    instance_type = determine_instance_type(image_id, ec2_query, cancelled)

    options = ResolvedOptions(
        cluster_name=name,
        subnet_id=subnet.subnet_id,
        vpc_id=subnet.vpc_id,
        # created later during reconciliation
        bastion_security_group_name=bastion_security_group_name(name, bastion.name),
        worker_security_group_name=worker_sg_name,
        worker_security_group_id=worker_groups[0].group_id,
        instance_name=instance_name(name, bastion.name),
        instance_type=instance_type,
        image_id=image_id,
    )
    logger.info(
        "Resolved bastion %s for %s: image=%s type=%s subnet=%s",
        bastion.name,
        name,
        image_id,
        instance_type,
        subnet.subnet_id,
    )
    return options


async def determine_options_async(
    cluster: Cluster,
    bastion: BastionRequest,
    ec2_query: Ec2Query,
) -> ResolvedOptions:
    """Run :func:`determine_options` in a worker thread.

    Cancelling the awaiting task signals the worker, which then starts no
    further provider query.
    """
    cancelled = threading.Event()
    try:
        return await asyncio.to_thread(
            determine_options, cluster, bastion, ec2_query, cancelled
        )
    except asyncio.CancelledError:
        cancelled.set()
        raise
