"""Ad Image Generator Interface

External work executor for ad generation: stores the inputs, calls the
image-generation API and stores the results. Failures surface as
exceptions carrying a human-readable message.
"""

from abc import ABC, abstractmethod
from typing import List
from pydantic import BaseModel, Field


class AdGenerationRequest(BaseModel):
    ad_id: str
    user_id: str
    prompt: str
    images: List[bytes] = Field(default_factory=list)
    num_samples: int = 1
    quality: str = "medium"


class AdGenerationResult(BaseModel):
    original_image_urls: List[str] = Field(default_factory=list)
    result_urls: List[str] = Field(default_factory=list)


class AdImageGenerator(ABC):

    @abstractmethod
    async def generate(self, request: AdGenerationRequest) -> AdGenerationResult:
        pass
