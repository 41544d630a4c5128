"""Instance type selection for bastion hosts.

The preferred type for an image's architecture is used when the region
offers it. Otherwise the search broadens to the whole burstable family and
picks a type that supports the architecture.
"""

import logging
import threading
from typing import Optional

from bastion.errors import (
    ImageLookupFailedError,
    ImageNotFoundError,
    NoArchitectureMatchError,
    NoOfferingsError,
    ProviderQueryFailedError,
    UnsupportedArchitectureError,
)
from bastion.models import ArchitectureClass, MachineImage
from bastion.services.ec2_query import Ec2Query, check_cancelled

logger = logging.getLogger(__name__)

# Smallest burstable type per architecture.
DEFAULT_INSTANCE_TYPES: dict[ArchitectureClass, str] = {
    ArchitectureClass.X86_64: "t2.nano",
    ArchitectureClass.ARM64: "t4g.nano",
}

BURSTABLE_FAMILY_FILTER = "t*"


def get_image(
    image_id: str,
    ec2_query: Ec2Query,
    cancelled: Optional[threading.Event] = None,
) -> MachineImage:
    """Describe ``image_id``, raising if the provider does not know it."""
    check_cancelled(cancelled, "DescribeImages")
    try:
        images = ec2_query.describe_images(image_id)
    except ProviderQueryFailedError as e:
        raise ImageLookupFailedError(image_id, e.detail, region=e.region) from e

    if not images:
        raise ImageNotFoundError(image_id)
    return images[0]


def determine_instance_type(
    image_id: str,
    ec2_query: Ec2Query,
    cancelled: Optional[threading.Event] = None,
) -> str:
    """Pick an instance type for ``image_id`` that the region offers.

    When the preferred type is not offered, the first type of the provider's
    architecture-filtered response is returned as is. The provider does not
    guarantee an order there, so repeated calls may pick different types.

    Once ``cancelled`` is set no further provider query is started and
    :class:`~bastion.errors.ResolutionCancelledError` is raised instead.
    """
    image = get_image(image_id, ec2_query, cancelled)

    architecture = ArchitectureClass.from_reported(image.architecture)
    preferred_type = DEFAULT_INSTANCE_TYPES.get(architecture)
    if preferred_type is None:
        raise UnsupportedArchitectureError(str(image.architecture), image_id)

    check_cancelled(cancelled, "DescribeInstanceTypeOfferings")
    if ec2_query.list_instance_type_offerings(preferred_type):
        return preferred_type

    logger.info(
        "Instance type %s is not offered, searching %s types for %s",
        preferred_type,
        BURSTABLE_FAMILY_FILTER,
        architecture.value,
    )

    check_cancelled(cancelled, "DescribeInstanceTypeOfferings")
    offerings = ec2_query.list_instance_type_offerings(BURSTABLE_FAMILY_FILTER)
    candidates = {o.instance_type for o in offerings}
    if not candidates:
        raise NoOfferingsError(BURSTABLE_FAMILY_FILTER)

    check_cancelled(cancelled, "DescribeInstanceTypes")
    matching = ec2_query.describe_instance_types(candidates, architecture.value)
    if not matching:
        raise NoArchitectureMatchError(architecture.value, candidates)

    logger.info("Falling back to instance type %s for %s", matching[0], architecture.value)
    return matching[0]
