import math
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

VectorizeMode = Literal["pressure", "centerline"]


class StrokeSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: Optional[float] = Field(default=None, gt=0)  # Pen diameter; None = caller default

    @field_validator("x", "y", "width")
    @classmethod
    def _finite(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not math.isfinite(v):
            raise ValueError("sample values must be finite")
        return v


class Stroke(BaseModel):
    model_config = ConfigDict(frozen=True)

    samples: List[StrokeSample] = Field(min_length=1)


class DestinationOverride(BaseModel):
    """Per-request GitHub destination; unset fields fall back to the environment."""
    owner: Optional[str] = None
    repo: Optional[str] = None
    branch: Optional[str] = None
    prefix: Optional[str] = None
    token: Optional[str] = None


class VectorizeRequest(BaseModel):
    strokes: List[Stroke]
    mode: VectorizeMode = "pressure"
    default_width: float = Field(default=1.0, gt=0)


class SubmitRequest(VectorizeRequest):
    label: str
    source_index: int = 0
    destination: Optional[DestinationOverride] = None


class CompletionRequest(BaseModel):
    items: List[str]
    destination: Optional[DestinationOverride] = None


class SessionRequest(BaseModel):
    items: List[str]


class JumpRequest(BaseModel):
    index: int


class SessionSubmitRequest(VectorizeRequest):
    """Strokes for the session's current item; the label comes from the cursor."""
    destination: Optional[DestinationOverride] = None


class RefreshRequest(BaseModel):
    destination: Optional[DestinationOverride] = None
