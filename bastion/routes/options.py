"""Bastion option resolution endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from bastion.errors import (
    BastionOptionsError,
    ConfigMalformedError,
    ConfigMissingError,
    ImageNotFoundError,
    NotFoundError,
    ProviderQueryFailedError,
)
from bastion.models import BastionOptionsRequest, Cluster, ResolvedOptions
from bastion.services.ec2_query import Boto3Ec2Query, Ec2Query
from bastion.services.options import determine_options_async
from bastion.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bastions", tags=["bastions"])


def get_ec2_query_factory():
    """Return a callable building an EC2 query client for a cluster."""

    def factory(cluster: Cluster) -> Ec2Query:
        return Boto3Ec2Query(region=cluster.region, endpoint_url=settings.aws_endpoint_url)

    return factory


def _status_for(error: BastionOptionsError) -> int:
    if isinstance(error, (NotFoundError, ImageNotFoundError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, (ConfigMissingError, ConfigMalformedError)):
        return status.HTTP_422_UNPROCESSABLE_CONTENT
    if isinstance(error, ProviderQueryFailedError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_409_CONFLICT


@router.post(
    "/options",
    response_model=ResolvedOptions,
    summary="Resolve bastion options",
    description="Resolve subnet, security groups, image and instance type for a bastion. "
    "No AWS resources are created.",
)
async def resolve_bastion_options(
    request: BastionOptionsRequest,
    ec2_query_factory=Depends(get_ec2_query_factory),
) -> ResolvedOptions:
    """Resolve the options needed to launch a bastion host."""
    ec2_query = ec2_query_factory(request.cluster)

    try:
        return await determine_options_async(request.cluster, request.bastion, ec2_query)
    except BastionOptionsError as e:
        logger.warning(
            "Failed to resolve bastion %s for %s: %s",
            request.bastion.name,
            request.cluster.name,
            e,
        )
        raise HTTPException(status_code=_status_for(e), detail=str(e)) from e
