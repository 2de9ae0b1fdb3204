"""User style profile document model."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.document import DocumentModel


class Sizes(DocumentModel):
    tops: str = ""
    bottoms: float = 0
    dress: float = 0
    denim: float = 0
    bra: Optional[str] = None


class Measurements(DocumentModel):
    bust: Optional[float] = None
    waist: Optional[float] = None
    hips: Optional[float] = None
    inseam: Optional[float] = None


class PhysicalProfile(DocumentModel):
    height: float = 0
    sizes: Sizes = Field(default_factory=Sizes)
    measurements: Optional[Measurements] = None
    body_shape: Optional[str] = None
    fit_preference: str = "standard"


class ComfortLimits(DocumentModel):
    strapless_ok: bool = True
    max_heel_height: float = 0
    shapewear_tolerance: str = "sometimes"


class PriceRange(DocumentModel):
    min: float = 0
    max: float = 0


class PriceRanges(DocumentModel):
    dresses: PriceRange = Field(default_factory=PriceRange)
    shoes: PriceRange = Field(default_factory=PriceRange)
    bags: PriceRange = Field(default_factory=PriceRange)
    jewelry: PriceRange = Field(default_factory=PriceRange)


class StyleDNA(DocumentModel):
    style_words: List[str] = Field(default_factory=list)
    loved_brands: List[str] = Field(default_factory=list)
    hated_brands: List[str] = Field(default_factory=list)
    price_ranges: PriceRanges = Field(default_factory=PriceRanges)
    never_again_list: List[str] = Field(default_factory=list)


class NecklinePreferences(DocumentModel):
    loved: List[str] = Field(default_factory=list)
    avoid: List[str] = Field(default_factory=list)


class LengthPreferences(DocumentModel):
    dresses: str = "any"
    sleeves: str = "any"


class FlatteryMap(DocumentModel):
    favorite_body_parts: List[str] = Field(default_factory=list)
    minimize_body_parts: List[str] = Field(default_factory=list)
    neckline_preferences: NecklinePreferences = Field(default_factory=NecklinePreferences)
    length_preferences: LengthPreferences = Field(default_factory=LengthPreferences)
    waist_definition: str = "sometimes"


class ColorPreferences(DocumentModel):
    compliment_colors: List[str] = Field(default_factory=list)
    avoid_colors: List[str] = Field(default_factory=list)
    metal_preference: str = "no-preference"
    pattern_tolerance: str = "any"


class TemperatureProfile(DocumentModel):
    runs_hot: bool = False
    runs_cold: bool = False
    needs_layers: bool = False


class ShoppingPreferences(DocumentModel):
    preferred_retailers: List[str] = Field(default_factory=list)
    avoid_retailers: List[str] = Field(default_factory=list)
    sustainability_focus: bool = False
    secondhand_open: bool = False


class LifestyleProfile(DocumentModel):
    work_environment: str = ""
    social_lifestyle: str = ""
    climate: str = ""


class FabricPreferences(DocumentModel):
    loved_fabrics: List[str] = Field(default_factory=list)
    avoid_fabrics: List[str] = Field(default_factory=list)
    care_preference: str = ""


class StyleProfileSummary(DocumentModel):
    primary: str = ""
    secondary: Optional[str] = None


class VisualStyleQuiz(DocumentModel):
    style_profile: StyleProfileSummary = Field(default_factory=StyleProfileSummary)


class UserProfile(DocumentModel):
    """One profile document per user id; every nested section has defaults."""

    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    profile: PhysicalProfile = Field(default_factory=PhysicalProfile)
    comfort_limits: ComfortLimits = Field(default_factory=ComfortLimits)
    style_dna: StyleDNA = Field(default_factory=StyleDNA, alias="styleDNA")
    flattery_map: FlatteryMap = Field(default_factory=FlatteryMap)
    color_preferences: ColorPreferences = Field(default_factory=ColorPreferences)
    temperature_profile: TemperatureProfile = Field(default_factory=TemperatureProfile)
    shopping_preferences: ShoppingPreferences = Field(default_factory=ShoppingPreferences)
    lifestyle_profile: Optional[LifestyleProfile] = None
    fabric_preferences: Optional[FabricPreferences] = None
    visual_style_quiz: Optional[VisualStyleQuiz] = None
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "UserProfile",
    "PhysicalProfile",
    "Sizes",
    "Measurements",
    "ComfortLimits",
    "PriceRange",
    "PriceRanges",
    "StyleDNA",
    "FlatteryMap",
    "ColorPreferences",
    "TemperatureProfile",
    "ShoppingPreferences",
    "LifestyleProfile",
    "FabricPreferences",
    "VisualStyleQuiz",
]
