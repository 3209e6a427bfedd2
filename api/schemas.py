from typing import List, Optional

from pydantic import BaseModel


class LabelRequest(BaseModel):
    image: Optional[str] = None  # data URI; checked by the handler for a 400
    prompt: Optional[str] = ""


class DetectedBox(BaseModel):
    label: str
    x_min: float
    y_min: float
    x_max: float
    y_max: float
    originalIndex: int


class LabelResult(BaseModel):
    objects: List[DetectedBox]
    originalImage: str
    discoveredObjects: Optional[List[str]] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
