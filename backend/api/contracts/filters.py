"""
Request body models for the dashboard filter endpoints.

Field names follow the JSON the dashboard sends (bucketId, userId, ...).
Identity values are only checked for being integers; authorization is
decided by the query layer, not here.
"""

from typing import Any, Dict

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError


class BaseParamsModel(BaseModel):
    """
    Base model for filter request bodies.

    - Frozen after creation (immutable)
    - Whitespace stripped from strings
    - Both alias and field name accepted
    - Unknown fields ignored
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='ignore',
    )


class IdentityParams(BaseParamsModel):
    bucket_id: int = Field(alias='bucketId')
    user_id: int = Field(alias='userId')


class VerticalParams(IdentityParams):
    pass


class BusinessParams(IdentityParams):
    vertical: str = Field(min_length=1)


class SiteParams(IdentityParams):
    business: str = Field(
        min_length=1,
        validation_alias=AliasChoices('business', 'Business'),
    )


class MonthParams(BaseParamsModel):
    year: int


def parse_params(model_cls, body: Any):
    """
    Validate a JSON body against model_cls.

    Raises:
        pydantic.ValidationError: on missing or non-numeric fields
    """
    return model_cls.model_validate(body if isinstance(body, dict) else {})


def validation_details(error: ValidationError) -> Dict[str, str]:
    """Flatten pydantic errors to {field: message} for the 400 envelope."""
    details = {}
    for err in error.errors():
        field = '.'.join(str(p) for p in err.get('loc', ())) or 'body'
        details[field] = err.get('msg', 'invalid')
    return details
