"""
Page models for plays.

A page is an answer a player already resolved through the search helper: an
actor (a person, with a birth year) or a movie (a work, with a release year).
The server trusts pages as given and only checks their shape.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bomb.logic.settings import MAX_PAGE_TITLE_LENGTH

_PAGE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    extra="forbid",
    frozen=True,
    populate_by_name=True,
)


class ActorPage(BaseModel):
    model_config = _PAGE_CONFIG

    pageid: int | str
    title: str = Field(min_length=1, max_length=MAX_PAGE_TITLE_LENGTH)
    birth_year: int


class MoviePage(BaseModel):
    model_config = _PAGE_CONFIG

    pageid: int | str
    title: str = Field(min_length=1, max_length=MAX_PAGE_TITLE_LENGTH)
    release_year: int


Page = ActorPage | MoviePage
