"""Base Pydantic model configuration for PLC wire and storage models.

All models inherit from PLCBaseModel to ensure consistent behavior:
- Immutability (frozen=True)
- Strict validation (extra="forbid"); an unexpected field in a directory
  payload would change the operation's CID, so it is rejected
- Flexible field naming (populate_by_name=True) for the camelCase wire aliases
"""

from pydantic import BaseModel, ConfigDict


class PLCBaseModel(BaseModel):
    """Base model for all PLC wire and storage entities.

    Example:
        >>> class Service(PLCBaseModel):
        ...     type: str
        ...     endpoint: str
        >>> Service(type="FairPackageManagementRepo", endpoint="https://example.com").type
        'FairPackageManagementRepo'
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        validate_default=True,
    )
