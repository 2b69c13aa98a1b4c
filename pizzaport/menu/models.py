from typing import List, Optional
from pydantic import BaseModel, Field


class OptionEntry(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    extra_price: int = Field(0, ge=0, description="Price delta in rs")


class MenuItemCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = ""
    base_price: int = Field(..., ge=0, description="Price in rs")
    discount_price: Optional[int] = Field(None, ge=0)
    category: str = ""
    size_options: List[OptionEntry] = Field(default_factory=list)
    extra_ingredients: List[OptionEntry] = Field(default_factory=list)
    image_url: Optional[str] = None


class MenuItemUpdateIn(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    base_price: Optional[int] = Field(None, ge=0)
    discount_price: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    size_options: Optional[List[OptionEntry]] = None
    extra_ingredients: Optional[List[OptionEntry]] = None
    image_url: Optional[str] = None

    model_config = {"extra": "forbid"}   # for any extra input fields in model raise 422 at pydantic level
