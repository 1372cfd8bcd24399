from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional, Union


class Ingredient(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    amount: Optional[Union[int, float, str]] = None
    unit: Optional[str] = None
    name: str
    group_label: Optional[str] = None


class Recipe(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # id and created_at belong to the caller's store
    id: Optional[str] = None
    title: str = Field(min_length=1)
    images: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    ingredients: List[Ingredient] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    prep_time: Optional[int] = None
    rest_time: Optional[int] = None
    cook_time: Optional[int] = None
    total_time: Optional[int] = None
    calories: Optional[int] = None
    servings: Optional[int] = None
    source_url: str = Field(min_length=1)
    created_at: Optional[str] = None


class ExtractionCandidate(BaseModel):
    """Raw output of one extractor, before normalization.

    Values are kept as found on the page. Anything an extractor reads but the
    normalizer does not know lands in the model extras.
    """

    model_config = ConfigDict(extra="allow")

    extractor: str
    title: Optional[str] = None
    images: List[Any] = Field(default_factory=list)
    # free-text lines or {"amount": ..., "name": ..., "group": ...} mappings
    ingredients: List[Any] = Field(default_factory=list)
    # a text blob or an explicit list of steps
    instructions: Optional[Union[str, List[Any]]] = None
    prep_time: Optional[Any] = None
    cook_time: Optional[Any] = None
    rest_time: Optional[Any] = None
    total_time: Optional[Any] = None
    servings: Optional[Any] = None
    calories: Optional[Any] = None


class FetchedDocument(BaseModel):
    text: str
    final_url: str
    content_type: Optional[str] = None
    status_code: int = 200
