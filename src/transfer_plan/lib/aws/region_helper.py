"""Helper functions for looking up AWS regions."""

from functools import lru_cache

import boto3

TRANSFER_SERVICE_NAME = "transfer"


@lru_cache
def aws_regions(service_name: str = TRANSFER_SERVICE_NAME) -> list[str]:
    """Generate the list of regions in which an AWS service is offered.

    The list comes from the endpoint catalog bundled with botocore, so no API call
    or credentials are needed.

    :param service_name: The AWS service to list regions for.
    :type service_name: str

    :returns: List of AWS regions

    :rtype: list[str]
    """
    return boto3.session.Session().get_available_regions(service_name)
