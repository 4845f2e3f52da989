from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator

# 3 x 4 reaction grid on the player
REACTION_EMOJIS = (
    "🔥", "❤️", "🎵", "🎤",
    "🎸", "🥁", "🎹", "👏",
    "💯", "🤩", "🎧", "🎼",
)

class CommentCreate(BaseModel):
    time: float = Field(ge=0)
    username: str = Field(min_length=1, max_length=64)
    text: str = Field(default="", max_length=2000)
    emoji: str | None = None
    is_public: bool = True

    @field_validator("emoji")
    @classmethod
    def _known_emoji(cls, v: str | None) -> str | None:
        if v is not None and v not in REACTION_EMOJIS:
            raise ValueError(f"Unsupported reaction: {v}")
        return v

    @model_validator(mode="after")
    def _text_or_emoji(self):
        if not self.text.strip() and self.emoji is None:
            raise ValueError("Either text or emoji is required")
        return self

class CommentOut(BaseModel):
    id: int
    track_id: int
    time: float
    username: str
    text: str
    emoji: str | None = None
    is_public: bool
    created_at: datetime | None = None
    class Config:
        from_attributes = True
