from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class UserConfig(BaseModel):
    """Vehicle settings read by the km estimation."""
    fuel_price: Optional[float] = None       # price per litre
    fuel_efficiency: Optional[float] = None  # km per litre


class User(BaseModel):
    """Read-only view of a user record owned by the identity service."""
    id: str = Field(validation_alias="_id")
    name: Optional[str] = None
    config: UserConfig = Field(default_factory=UserConfig)

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )
