"""Data Transfer Objects for generation use cases"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class GenerateAdCommandDTO(BaseModel):
    """
    Command DTO for generating ad images

    `user_id` comes from the identity provider and is trusted as is.
    """

    user_id: str = Field(..., description="Verified user identifier")

    prompt: str = Field(..., min_length=1, description="Generation prompt")

    name: Optional[str] = Field(default=None, description="Display name of the ad")

    ad_type: Optional[str] = Field(default=None, description="Ad format (e.g., 'standard', 'story')")

    brand_id: Optional[str] = Field(default=None, description="Brand the ad belongs to")

    images: List[bytes] = Field(..., min_length=1, description="Source images")

    num_samples: int = Field(default=1, ge=1, le=5, description="Number of variations")

    quality: Literal["high", "medium", "low", "auto"] = Field(
        default="medium",
        description="Requested output quality (priced)"
    )


class GenerateAdResponseDTO(BaseModel):
    """Response DTO for a generated ad"""

    ad_id: str

    images: List[str] = Field(default_factory=list, description="Generated image URLs")

    credits_used: int = Field(..., description="Credits charged (0 when billing is disabled)")

    transaction_id: Optional[str] = Field(default=None, description="Ledger deduction, if charged")
