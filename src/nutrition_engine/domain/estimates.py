"""Validated records for generated nutrition estimates."""

from pydantic import BaseModel, ConfigDict, Field

from nutrition_engine.domain.nutrition import Confidence


class ConfidenceDetails(BaseModel):
    """Per-field confidence reported by the estimator."""

    model_config = ConfigDict(extra="allow")

    calories: Confidence = "low"
    protein_g: Confidence = "low"
    carbs_g: Confidence = "low"
    fat_total_g: Confidence = "low"


class EstimatedNutrition(BaseModel):
    """Nutrition estimate for one food at a stated serving size."""

    model_config = ConfigDict(extra="ignore")

    food_name: str | None = None
    calories: float = Field(ge=0)
    protein_g: float = Field(default=0.0, ge=0)
    carbs_g: float = Field(default=0.0, ge=0)
    fat_total_g: float = Field(default=0.0, ge=0)
    fiber_g: float | None = Field(default=None, ge=0)
    sugar_g: float | None = Field(default=None, ge=0)
    sugar_added_g: float | None = Field(default=None, ge=0)
    fat_trans_g: float | None = Field(default=None, ge=0)
    sodium_mg: float | None = Field(default=None, ge=0)
    fat_saturated_g: float | None = Field(default=None, ge=0)
    cholesterol_mg: float | None = Field(default=None, ge=0)
    potassium_mg: float | None = Field(default=None, ge=0)
    calcium_mg: float | None = Field(default=None, ge=0)
    iron_mg: float | None = Field(default=None, ge=0)
    magnesium_mg: float | None = Field(default=None, ge=0)
    vitamin_a_mcg: float | None = Field(default=None, ge=0)
    vitamin_c_mg: float | None = Field(default=None, ge=0)
    vitamin_d_mcg: float | None = Field(default=None, ge=0)
    serving_size: str = "100g"
    confidence: Confidence = "low"
    confidence_details: ConfidenceDetails = Field(default_factory=ConfidenceDetails)
    error_sources: list[str] = Field(default_factory=lambda: ["llm_estimation"])
