from pydantic import BaseModel, field_validator

from transfer_plan.lib.aws.region_helper import aws_regions

REQUIRED_TAGS = {"OU", "Environment"}


class AWSBase(BaseModel):
    """Base class for configuration objects that describe tagged AWS resources."""

    tags: dict[str, str]
    region: str = "us-east-1"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.tags.update({"pulumi_managed": "true"})

    @field_validator("tags")
    @classmethod
    def enforce_tags(cls, tags: dict[str, str]) -> dict[str, str]:
        if not REQUIRED_TAGS.issubset(tags.keys()):
            msg = f"Not all required tags have been specified. Missing tags: {REQUIRED_TAGS.difference(tags.keys())}"  # noqa: E501
            raise ValueError(msg)
        return tags

    @field_validator("region")
    @classmethod
    def check_region(cls, region: str) -> str:
        if region not in aws_regions():
            msg = f"The region {region} does not exist or does not offer AWS Transfer"
            raise ValueError(msg)
        return region

    def merged_tags(self, *new_tags: dict[str, str]) -> dict[str, str]:
        """Return a dictionary of existing tags with the ones passed in.

        This generates a new dictionary of tags in order to allow for a broadly
        applicable set of tags to then be updated with specific tags to be set on
        individual resources in the plan.

        :param *new_tags: One or more dictionaries of specific tags to be set on
                            a planned resource.
        :type new_tags: dict[str, str]

        :returns: Merged dictionary of base tags and specific tags.

        :rtype: dict[str, str]
        """
        tag_dict = self.tags.copy()
        for tags in new_tags:
            tag_dict.update(tags)
        return tag_dict
