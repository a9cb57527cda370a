from enum import Enum, unique

from pydantic import BaseModel, field_validator

REQUIRED_TAGS = {"OU", "Environment"}
RECOMMENDED_TAGS = {"Application", "Owner"}


@unique
class BusinessUnit(str, Enum):
    """Canonical source of truth for defining valid OU tags.

    We rely on tagging AWS resources with a valid OU to allow for cost allocation to
    different business units.
    """

    data = "data"
    mit_learn = "mit-learn"
    mitx_online = "mitxonline"
    operations = "operations"
    residential = "residential"
    xpro = "mitxpro"


class AWSBase(BaseModel):
    """Base class for configuration objects to pass to AWS component resources."""

    tags: dict[str, str]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.tags.update({"pulumi_managed": "true"})

    @field_validator("tags")
    @classmethod
    def enforce_tags(cls, tags: dict[str, str]) -> dict[str, str]:
        if not REQUIRED_TAGS.issubset(tags.keys()):
            msg = f"Not all required tags have been specified. Missing tags: {REQUIRED_TAGS.difference(tags.keys())}"  # noqa: E501
            raise ValueError(msg)
        try:
            BusinessUnit(tags["OU"])
        except ValueError as exc:
            msg = "The OU tag specified is not a valid business unit"
            raise ValueError(msg) from exc
        return tags

    def merged_tags(self, *new_tags: dict[str, str]) -> dict[str, str]:
        """Return a dictionary of existing tags with the ones passed in.

        :param *new_tags: One or more dictionaries of specific tags to be set on
                            a child resource.
        :type new_tags: Dict[Text, Text]

        :returns: Merged dictionary of base tags and specific tags to be set on a child
                  resource.

        :rtype: Dict[Text, Text]
        """
        tag_dict = self.tags.copy()
        for tags in new_tags:
            tag_dict.update(tags)
        return tag_dict
