from pydantic import BaseModel
from typing import List, Literal

class WaveformOut(BaseModel):
    peaks: List[float]
    length: int
    source: Literal["decoded", "fallback"] = "decoded"
