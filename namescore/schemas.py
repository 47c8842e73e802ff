from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ANALYSIS_GOALS = (
    "General Insight",
    "Career Growth",
    "Relationships",
    "Personal Confidence",
    "Finding my Path",
)
DEFAULT_GOAL = "General Insight"

NAME_MODES = ("brand", "baby", "personal", "compatibility")
DEFAULT_MODE = "personal"

# 0 marks a number that could not be computed (no birthdate, no letters).
CORE_NUMBER_VALUES = frozenset(range(10)) | {11, 22, 33}


def normalize_goal(goal: Optional[str]) -> str:
    """Returns the goal if it is one we know about, else the default goal."""
    if isinstance(goal, str) and goal.strip() in ANALYSIS_GOALS:
        return goal.strip()
    return DEFAULT_GOAL


def normalize_mode(mode: Optional[str]) -> str:
    if isinstance(mode, str) and mode.strip().lower() in NAME_MODES:
        return mode.strip().lower()
    return DEFAULT_MODE


# --- Engine value types ---
class CoreNumbers(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    life_path_number: int = Field(default=0, alias="lifePathNumber", description="0 when no usable birthdate was supplied.")
    destiny_number: int = Field(alias="destinyNumber")
    soul_urge_number: int = Field(alias="soulUrgeNumber")
    personality_number: int = Field(alias="personalityNumber")

    @field_validator("life_path_number", "destiny_number", "soul_urge_number", "personality_number")
    @classmethod
    def check_reduced(cls, value: int) -> int:
        if value not in CORE_NUMBER_VALUES:
            raise ValueError(f"{value} is not a reduced core number (0-9, 11, 22 or 33)")
        return value


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    life_path: int
    destiny: int
    soul_urge: int
    personality: int

    @property
    def total(self) -> int:
        return self.life_path + self.destiny + self.soul_urge + self.personality


class NumerologyScore(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    core_numbers: CoreNumbers = Field(alias="coreNumbers")


class PairAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    first: NumerologyScore
    second: NumerologyScore
    score: int = Field(ge=0, le=100)


# --- Generative collaborator outputs (validated) ---
class NameSuggestion(BaseModel):
    suggested_name: str = Field(description="The suggested name variation.")
    new_score: int = Field(ge=1, le=100, description="The claimed score of the suggested name.")
    reason: str = Field(default="", description="Short numerological reason for the suggestion.")


class HolisticAnalysis(BaseModel):
    holistic_score: int = Field(ge=1, le=100, description="The final, adjusted score between 1 and 100.")
    holistic_rationale: str = Field(description="Brief reason for adjusting the score from the base numerology score.")
    short_rationale: str = Field(description="A concise summary for the final holistic score.")
    positive_traits: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)


class CompatibilityInsight(BaseModel):
    title: str = Field(description="A catchy 2-4 word title.")
    strengths: str
    challenges: str
    summary: str


# --- Aggregates returned to callers ---
class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: int = Field(ge=0, le=100)
    base_score: int = Field(ge=0, le=100)
    score_label: str
    breakdown: ScoreBreakdown
    core_numbers: CoreNumbers = Field(alias="coreNumbers")
    short_rationale: str
    holistic_rationale: str
    positive_traits: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)
    suggestions: List[NameSuggestion] = Field(default_factory=list)


class CompatibilityResult(BaseModel):
    score: int = Field(ge=0, le=100)
    names: Tuple[str, str]
    title: str
    strengths: str
    challenges: str
    summary: str


class NameSuggestionsOutput(BaseModel):
    suggestions: List[NameSuggestion] = Field(description="Name variations, each scoring higher than the original.")
