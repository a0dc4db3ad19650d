import pytest
from pydantic import ValidationError

from transfer_plan.lib.aws.region_helper import aws_regions
from transfer_plan.lib.aws_base import AWSBase

VALID_TAGS = {"OU": "operations", "Environment": "test"}


def test_tag_validation():
    with pytest.raises(ValidationError):
        AWSBase(tags={"foo": "bar", "Environment": "test"})
    with pytest.raises(ValidationError):
        AWSBase(tags={"foo": "bar", "OU": "operations"})


def test_region_validation():
    with pytest.raises(ValidationError):
        AWSBase(tags=VALID_TAGS, region="us-east-0")


def test_transfer_regions_are_known():
    regions = aws_regions()
    assert "us-east-1" in regions
    assert "us-east-0" not in regions


def test_merged_tags():
    base_config = AWSBase(tags=VALID_TAGS)
    new_tags = base_config.merged_tags({"Foo": "bar"}, {"Name": "sftp"})
    assert new_tags == {
        "OU": "operations",
        "Environment": "test",
        "pulumi_managed": "true",
        "Foo": "bar",
        "Name": "sftp",
    }


def test_pulumi_managed_tag():
    base_config = AWSBase(tags=dict(VALID_TAGS))
    assert base_config.tags.pop("pulumi_managed") == "true"
