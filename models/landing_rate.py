from pydantic import BaseModel, ConfigDict, Field


class LandingRateRecord(BaseModel):
    """A landing-rate reference row: the landed cost of one SKU."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    sku_id: str = Field(min_length=1)
    product_name: str = ""
    category: str = ""
    mrp: float = Field(default=0.0, ge=0)           # Maximum retail price
    landing_rate: float = Field(default=0.0, ge=0)
    cases: int = Field(default=0, ge=0)
    merchants: int = Field(default=0, ge=0)
