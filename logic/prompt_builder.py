"""Render the outfit-recommendation and item-analysis prompts.

Both builders are pure: the same inputs always produce the same text, and the
only dates that appear come from the event itself.
"""

from __future__ import annotations

import json
from typing import Iterable, List, Sequence

from logic.safety import sanitize_string_array, sanitize_user_input, system_instruction
from models.closet_item import ClosetItem
from models.event import Event
from models.taxonomy import ITEM_CATEGORIES
from models.user_profile import PriceRange, UserProfile
from tools.weather_provider import describe_weather, style_suggestions, temperature_guidance

ANALYSIS_KEYS = ["category", "subcategory", "color", "style", "pattern", "occasion", "season", "keyFeatures"]

_RECOMMENDATION_SHAPE = {
    "recommendations": [
        {
            "outfitNumber": 1,
            "outfitItems": [
                {
                    "category": "dress",
                    "primary": {
                        "isClosetItem": False,
                        "itemId": "closet item ID when isClosetItem is true",
                        "productName": "specific product description",
                        "retailer": "suggested retailer",
                        "estimatedPrice": 180,
                        "reason": "why this piece works",
                    },
                    "alternatives": [
                        {
                            "isClosetItem": False,
                            "productName": "alternative option",
                            "retailer": "suggested retailer",
                            "estimatedPrice": 140,
                            "reason": "how it differs from the primary",
                        }
                    ],
                    "categoryReason": "role of this category in the outfit",
                }
            ],
            "hasDressOption": True,
            "hasSeparatesOption": False,
            "overallReasoning": {
                "flatteryNotes": ["note 1", "note 2", "note 3"],
                "dressCodeFit": "how the outfit meets the dress code",
                "styleMatch": "how the outfit matches the client's style DNA",
                "weatherAppropriate": "how the outfit handles the weather",
                "confidenceScore": 90,
            },
        }
    ]
}

_ANALYSIS_SHAPE = (
    "{\n"
    '  "category": "string",\n'
    '  "subcategory": "string",\n'
    '  "color": ["color1", "color2"],\n'
    '  "style": ["style1", "style2"],\n'
    '  "pattern": "string",\n'
    '  "occasion": ["occasion1", "occasion2"],\n'
    '  "season": ["season1", "season2"],\n'
    '  "keyFeatures": ["feature1", "feature2"]\n'
    "}"
)


def _join(values: Iterable[str], empty: str = "None specified") -> str:
    joined = ", ".join(values)
    return joined or empty


def _price(label: str, price_range: PriceRange) -> str:
    return f"- Price Range ({label}): ${price_range.min:g} - ${price_range.max:g}"


def _format_height(inches: float) -> str:
    if not inches:
        return "not provided"
    whole = int(inches)
    return f"{inches:g} inches ({whole // 12}' {whole % 12}\")"


def _profile_section(profile: UserProfile) -> List[str]:
    physical = profile.profile
    style = profile.style_dna
    flattery = profile.flattery_map
    colors = profile.color_preferences
    comfort = profile.comfort_limits
    lines = [
        "CLIENT PROFILE:",
        "==============",
        "Physical Attributes:",
        f"- Height: {_format_height(physical.height)}",
        f"- Dress Size: {physical.sizes.dress:g}",
        f"- Top Size: {sanitize_user_input(physical.sizes.tops) or 'not provided'}",
        f"- Bottom Size: {physical.sizes.bottoms:g}",
        f"- Fit Preference: {sanitize_user_input(physical.fit_preference)}",
    ]
    if physical.body_shape:
        lines.append(f"- Body Shape: {sanitize_user_input(physical.body_shape)}")
    measurements = physical.measurements
    if measurements:
        for label, value in (("Bust", measurements.bust), ("Waist", measurements.waist), ("Hips", measurements.hips)):
            if value:
                lines.append(f"- {label}: {value:g} inches")

    ranges = style.price_ranges
    lines += [
        "",
        "Style DNA:",
        f"- Style Words: {_join(sanitize_string_array(style.style_words))}",
        f"- Loved Brands: {_join(sanitize_string_array(style.loved_brands))}",
        f"- Brands to Avoid: {_join(sanitize_string_array(style.hated_brands), 'None')}",
        _price("Dresses", ranges.dresses),
        _price("Shoes", ranges.shoes),
        _price("Bags", ranges.bags),
        _price("Jewelry", ranges.jewelry),
        f"- Never Again List: {_join(sanitize_string_array(style.never_again_list), 'None')}",
    ]

    if profile.visual_style_quiz and profile.visual_style_quiz.style_profile.primary:
        summary = profile.visual_style_quiz.style_profile
        lines += ["", "Visual Style Profile:", f"- Primary Style: {sanitize_user_input(summary.primary)}"]
        if summary.secondary:
            lines.append(f"- Secondary Style: {sanitize_user_input(summary.secondary)}")
    if profile.lifestyle_profile:
        lifestyle = profile.lifestyle_profile
        lines += [
            "",
            "Lifestyle Profile:",
            f"- Work Environment: {sanitize_user_input(lifestyle.work_environment)}",
            f"- Social Style: {sanitize_user_input(lifestyle.social_lifestyle)}",
            f"- Climate: {sanitize_user_input(lifestyle.climate)}",
        ]
    if profile.fabric_preferences:
        fabrics = profile.fabric_preferences
        lines += [
            "",
            "Fabric Preferences:",
            f"- Loved Fabrics: {_join(sanitize_string_array(fabrics.loved_fabrics), 'No preference')}",
            f"- Avoid Fabrics: {_join(sanitize_string_array(fabrics.avoid_fabrics), 'None')}",
        ]

    lines += [
        "",
        "Flattery Preferences:",
        f"- Favorite Features to Show: {_join(sanitize_string_array(flattery.favorite_body_parts))}",
        f"- Areas to Minimize: {_join(sanitize_string_array(flattery.minimize_body_parts))}",
        f"- Loved Necklines: {_join(sanitize_string_array(flattery.neckline_preferences.loved))}",
        f"- Avoid Necklines: {_join(sanitize_string_array(flattery.neckline_preferences.avoid), 'None')}",
        f"- Preferred Dress Length: {sanitize_user_input(flattery.length_preferences.dresses)}",
        f"- Waist Definition: {sanitize_user_input(flattery.waist_definition)}",
        "",
        "Color Preferences:",
        f"- Best Colors: {_join(sanitize_string_array(colors.compliment_colors))}",
        f"- Avoid Colors: {_join(sanitize_string_array(colors.avoid_colors), 'None')}",
        f"- Metal Preference: {sanitize_user_input(colors.metal_preference)}",
        f"- Pattern Tolerance: {sanitize_user_input(colors.pattern_tolerance)}",
        "",
        "Comfort Limits:",
        f"- Strapless OK: {'Yes' if comfort.strapless_ok else 'No'}",
        f"- Max Heel Height: {comfort.max_heel_height:g} inches",
    ]
    temperature = profile.temperature_profile
    notes = [
        label
        for flag, label in (
            (temperature.runs_hot, "runs hot"),
            (temperature.runs_cold, "runs cold"),
            (temperature.needs_layers, "likes layers"),
        )
        if flag
    ]
    if notes:
        lines.append(f"- Temperature: {', '.join(notes)}")
    return lines


def _event_section(event: Event) -> List[str]:
    event_type = sanitize_user_input(event.event_type)
    if event.custom_event_type:
        event_type = f"{event_type} ({sanitize_user_input(event.custom_event_type)})"
    location = f"{sanitize_user_input(event.location.city)}, {sanitize_user_input(event.location.state)}"
    if event.location.venue:
        location = f"{location} at {sanitize_user_input(event.location.venue)}"
    lines = [
        "EVENT DETAILS:",
        "=============",
        f"- Type: {event_type}",
        f"- Dress Code: {sanitize_user_input(event.dress_code)}",
        f"- Location: {location}",
        f"- Date & Time: {event.date_time.strftime('%A, %B %d, %Y at %I:%M %p')}",
        f"- Client's Role: {sanitize_user_input(event.user_role) or 'guest'}",
        f"- Activity Level: {sanitize_user_input(event.activity_level) or 'moderate'}",
    ]
    if event.weather:
        weather = event.weather
        lines.append(f"- Weather: {describe_weather(weather.temperature, sanitize_user_input(weather.conditions))}")
        lines.append(f"- Weather Guidance: {temperature_guidance(weather.temperature)}")
        for suggestion in style_suggestions(weather.temperature, weather.conditions, weather.wind_speed):
            lines.append(f"  * {suggestion}")
    return lines


def _closet_section(closet_items: Sequence[ClosetItem]) -> List[str]:
    lines = ["CLOSET ITEMS AVAILABLE:", "======================"]
    if not closet_items:
        lines.append("No closet items available")
        return lines
    for index, item in enumerate(closet_items, start=1):
        analysis = item.ai_analysis
        lines += [
            f"{index}. {item.category.upper()}: {sanitize_user_input(item.brand) or 'No brand'}",
            f"   Colors: {_join(sanitize_string_array(analysis.color), 'unknown')}",
            f"   Style: {_join(sanitize_string_array(analysis.style), 'unknown')}",
            f"   Occasions: {_join(sanitize_string_array(analysis.occasion), 'unknown')}",
            f"   ID: {item.id}",
        ]
        if item.tags.prefer_to_rewear:
            lines.append("   FAVORITE - the client would like to wear this again")
    return lines


def build_recommendation_prompt(
    event: Event,
    profile: UserProfile,
    closet_items: Sequence[ClosetItem],
    products: Sequence[dict] = (),
) -> str:
    """Render the full outfit recommendation instruction.

    ``products`` is reserved for catalogue search results; the pipeline
    currently passes an empty list.
    """

    sections: List[str] = [system_instruction("stylist helping a client dress for an upcoming event"), ""]
    sections += _profile_section(profile)
    sections += [""] + _event_section(event)
    sections += [""] + _closet_section(closet_items)

    if products:
        sections += ["", "AVAILABLE PRODUCTS TO PURCHASE:", "==============================="]
        for index, product in enumerate(products[:20], start=1):
            sections.append(
                f"{index}. {sanitize_user_input(product.get('name'))} by {sanitize_user_input(product.get('brand'))}"
                f" - ${product.get('price', 0)} at {sanitize_user_input(product.get('retailer'))} (ID: {product.get('id')})"
            )

    if event.shop_only_mode:
        sections += ["", "SHOP ONLY MODE: do NOT use any closet items. Every item must be a purchase."]

    sections += [
        "",
        "TASK:",
        "=====",
        "Generate 3 complete outfit recommendations for this event and client.",
        f"Use these item categories: {', '.join(ITEM_CATEGORIES)}.",
        "For each category give one primary pick plus up to 3 ranked alternatives.",
        "Offer both a dress option and a separates option (tops + bottoms) when the dress code allows.",
        "Reference closet items by their ID with isClosetItem true; purchases have isClosetItem false.",
        "Stay within the client's price ranges and honor every comfort limit.",
        "",
        "Return ONLY valid JSON with exactly this structure:",
        json.dumps(_RECOMMENDATION_SHAPE, indent=2),
    ]
    return "\n".join(sections)


def build_item_analysis_prompt() -> str:
    """Render the closet photo classification instruction."""

    return (
        "Analyze this fashion item image and provide detailed information.\n\n"
        "Identify and extract:\n"
        "1. Category: the main category (dress, shoes, bag, outerwear, or jewelry)\n"
        '2. Subcategory: a more specific type (e.g. "midi dress", "heels", "clutch", "blazer", "necklace")\n'
        "3. Colors: all visible colors, primary color first\n"
        "4. Style Descriptors: 5-7 adjectives describing the style\n"
        '5. Pattern: solid, floral, geometric, striped, polka dot, animal print, abstract, or "solid" if none\n'
        "6. Suitable Occasions: formal, semi-formal, cocktail, casual, work, date night, weekend, vacation\n"
        "7. Seasonal Appropriateness: spring, summer, fall, winter, all-season\n"
        '8. Key Features: notable design elements (e.g. "v-neckline", "pointed toe", "gold hardware")\n\n'
        "Return your analysis as valid JSON in this exact format:\n"
        f"{_ANALYSIS_SHAPE}\n\n"
        "Return ONLY the JSON object, with no additional text."
    )


__all__ = ["ANALYSIS_KEYS", "build_item_analysis_prompt", "build_recommendation_prompt"]
