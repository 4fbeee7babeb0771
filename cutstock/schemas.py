from pydantic import BaseModel, Field
from typing import Optional, List


class CustomOrderSubmission(BaseModel):
    """
    Inbound custom-size order, as posted by the product form.

    Everything arrives as form text. Product metadata (material, thickness,
    density, unit price...) is passed through for pricing and labeling.
    """
    product_id: str = Field(alias="productId")
    form_type: str = Field(alias="formType")
    material: Optional[str] = ""
    opacity: Optional[str] = ""
    color: Optional[str] = ""
    thickness: Optional[str] = ""
    diameter: Optional[str] = ""
    density: Optional[str] = ""
    unit_price: Optional[str] = Field("", alias="unitPrice")
    length_mm: Optional[str] = Field(None, alias="lengthMm")
    length_inch: Optional[str] = Field(None, alias="lengthInch")
    length_m: Optional[str] = Field(None, alias="lengthM")
    length_yard: Optional[str] = Field(None, alias="lengthYard")
    width_mm: Optional[str] = Field(None, alias="widthMm")
    width_inch: Optional[str] = Field(None, alias="widthInch")
    precision: Optional[str] = ""
    machining_precision: Optional[str] = Field(None, alias="machiningPrecision")
    quantity: Optional[str] = "1"
    instructions: Optional[str] = ""
    idempotency_key: Optional[str] = Field(None, alias="idempotencyKey")

    class Config:
        populate_by_name = True


class EstimateRequest(BaseModel):
    """Live price display — same dimensions as a submission, numeric."""
    form_type: str = Field(alias="formType")
    thickness: Optional[float] = None
    diameter: Optional[float] = None
    density: Optional[float] = None
    length_mm: Optional[float] = Field(None, alias="lengthMm")
    length_m: Optional[float] = Field(None, alias="lengthM")
    width_mm: Optional[float] = Field(None, alias="widthMm")
    precision: Optional[str] = "Normal"
    quantity: int = Field(1, ge=1, le=10000)
    unit_price: Optional[float] = Field(None, alias="unitPrice")

    class Config:
        populate_by_name = True


class EstimateResponse(BaseModel):
    price: float
    weight: float
    quantity: int
    total_price: float
    total_weight: float


class ConvertRequest(BaseModel):
    unit_one: str
    unit_two: str
    value: str
    field: str = "one"  # which input was edited: "one" | "two"
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    decimals: int = Field(2, ge=0, le=6)


class ConvertResponse(BaseModel):
    primary_value: float
    value_one: str
    value_two: str
    has_error: bool
    error: Optional[str] = None


class OrphanedVariant(BaseModel):
    id: int
    product_id: str
    variant_id: str
    title: str
    price: float
    weight_kg: float
    status: str
    last_error: Optional[str] = None

    class Config:
        from_attributes = True


class CleanupResult(BaseModel):
    deleted: List[str] = []
    failed: List[dict] = []
