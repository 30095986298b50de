"""
Data models for the ingredient scanner.

Every model is frozen: analysis results are built fresh for each product and
never mutated afterwards.
"""
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Category = Literal["additive", "sweetener", "oil", "emulsifier", "preservative", "flavoring", "coloring"]
ConcernLevel = Literal["low", "medium", "high"]
SodiumLevel = Literal["low", "moderate", "high"]
Score = Literal["good", "okay", "poor"]
Impact = Literal["positive", "neutral", "negative"]
LookupErrorKind = Literal["invalid_barcode", "not_found", "rate_limited", "network", "server", "unknown"]


class FrozenModel(BaseModel):
    # camelCase input is accepted too, output stays snake_case
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Citation(FrozenModel):
    label: str
    url: str


class IngredientRecord(FrozenModel):
    name: str
    definition: str
    category: Category
    concern_level: ConcernLevel
    synonyms: Tuple[str, ...] = ()
    why_used: Tuple[str, ...] = ()
    why_concerned: Tuple[str, ...] = ()
    better_alternatives: Tuple[str, ...] = ()
    citations: Tuple[Citation, ...] = ()


class Alternative(FrozenModel):
    name: str
    why: str


class IngredientFlag(FrozenModel):
    ingredient: str
    reason: str
    intel: Optional[IngredientRecord] = None


class SneakyMatch(FrozenModel):
    term: str
    matched_text: str
    explanation: str
    what_to_look_for: str
    citations: Tuple[Citation, ...] = ()


class SodiumAnalysis(FrozenModel):
    milligrams: int = Field(ge=0)
    percent_dv: int = Field(ge=0)
    level: SodiumLevel


class ScoreBreakdownItem(FrozenModel):
    label: str
    impact: Impact


class ScoreResult(FrozenModel):
    score: Score
    penalty: int = Field(ge=0)
    breakdown: Tuple[ScoreBreakdownItem, ...] = ()


class NutritionData(FrozenModel):
    calories: Optional[float] = None
    fat: Optional[float] = None
    saturated_fat: Optional[float] = None
    carbs: Optional[float] = None
    sugars: Optional[float] = None
    fiber: Optional[float] = None
    protein: Optional[float] = None
    sodium: Optional[float] = Field(None, ge=0, description="mg per 100g")


class Product(FrozenModel):
    code: str = ""
    name: str = "Unknown Product"
    brand: str = "Unknown Brand"
    ingredients: str = "No ingredients listed"
    ingredients_list: Tuple[str, ...] = ()
    nutrition: NutritionData = NutritionData()
    image_url: Optional[str] = None
    nova_group: Optional[int] = None


class AnalysisResult(FrozenModel):
    product: Product
    flags: Tuple[IngredientFlag, ...] = ()
    sneaky: Tuple[SneakyMatch, ...] = ()
    sodium: Optional[SodiumAnalysis] = None
    score: Score
    breakdown: Tuple[ScoreBreakdownItem, ...] = ()
    alternatives: Tuple[Alternative, ...] = ()


class SearchHit(FrozenModel):
    code: str
    name: str
    brand: Optional[str] = None
    image_url: Optional[str] = None


class LookupErrorPayload(FrozenModel):
    kind: LookupErrorKind
    title: str
    message: str
    offer_search: bool = False


# View states returned to the presentation layer

class ResultsView(FrozenModel):
    view: Literal["results"] = "results"
    result: AnalysisResult


class ErrorView(FrozenModel):
    view: Literal["error"] = "error"
    error: LookupErrorPayload


ViewState = Annotated[Union[ResultsView, ErrorView], Field(discriminator="view")]


class SearchResults(FrozenModel):
    query: str
    hits: Tuple[SearchHit, ...] = ()
