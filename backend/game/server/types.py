from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class CreateGameRequest(_Request):
    player_name: str = Field(min_length=1, max_length=50)
    max_players: int | None = Field(default=None, ge=1, le=20, strict=True)


class JoinGameRequest(_Request):
    room_code: str = Field(min_length=1, max_length=12, pattern=r"^\s*[a-zA-Z0-9]+\s*$")
    player_name: str = Field(min_length=1, max_length=50)


class PlacementRequest(_Request):
    """A player's proposal to insert a card from their hand at a timeline position."""

    player_id: str = Field(min_length=1, max_length=100)
    card_id: str = Field(min_length=1, max_length=100)
    position: int = Field(ge=0, strict=True)
