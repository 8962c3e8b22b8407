"""Prompts y schema de sugerencias de lugares.

Por qué en el Core:
- El texto del prompt es parte del contrato con el modelo (qué campos pide y
  con qué nombres); el adaptador solo lo transporta.
- Los builders son funciones puras: fáciles de testear sin red.
"""

from __future__ import annotations

from typing import Any, Sequence

LOCATION_TYPES: tuple[str, ...] = ("place", "restaurant", "accommodation", "artisan", "guide", "business")
CATEGORIES: tuple[str, ...] = ("historical", "natural", "religious", "culinary", "cultural", "adventure")
DEFAULT_EXPERIENCE_TYPES: tuple[str, ...] = ("culture", "history", "sport", "food", "nature")

CATEGORY_DESCRIPTIONS: dict[str, str] = {
    "natural": "natural wonders - waterfalls, caves, mountains, rivers, lakes, springs, canyons, national parks",
    "historical": (
        "historical sites - medieval fortresses, Ottoman monuments, Austro-Hungarian buildings, "
        "archaeological sites, stećci tombstones"
    ),
    "religious": (
        "religious sites - mosques, churches, monasteries, synagogues, tekke (dervish lodges), pilgrimage sites"
    ),
    "culinary": (
        "culinary destinations - traditional restaurants, ćevabdžinice, coffee houses, markets, wineries, "
        "food producers"
    ),
    "cultural": "cultural attractions - museums, galleries, theaters, traditional craft workshops, cultural centers",
    "adventure": "adventure activities - rafting spots, hiking trails, ski resorts, climbing areas, paragliding sites",
}

CULTURAL_CONTEXT = (
    "You are creating content specifically for Bosnia and Herzegovina tourism.\n\n"
    "CULTURAL ELEMENTS TO EMPHASIZE:\n"
    "- Ottoman heritage (1463-1878): čaršije, mosques, hammams, bezistans, ćuprije (Stari Most in Mostar).\n"
    "- Austro-Hungarian legacy (1878-1918): Vijećnica, the National Museum, Ferhadija street.\n"
    "- Medieval Bosnia: stećci (UNESCO tombstones), fortresses in Travnik, Jajce, Počitelj, Blagaj.\n"
    "- Traditional cuisine: ćevapi, burek, bosanska kahva, begova čorba.\n"
    "- Nature: Una, Neretva and Drina rivers, Kravica and Štrbački buk waterfalls, Sutjeska."
)

_FIELD_LINES = (
    "1. name: The official/common name of the place\n"
    "2. name_local: Local Bosnian name if different\n"
    "3. lat: Latitude (precise, 6 decimal places)\n"
    "4. lng: Longitude (precise, 6 decimal places)\n"
    "5. city_name: The nearest city/town name\n"
    f"6. location_type: One of: {', '.join(LOCATION_TYPES)}\n"
)

_EXAMPLE = (
    "{\n"
    '  "locations": [\n'
    "    {\n"
    '      "name": "Stari Most",\n'
    '      "name_local": "Stari Most",\n'
    '      "lat": 43.337222,\n'
    '      "lng": 17.815278,\n'
    '      "city_name": "Mostar",\n'
    '      "location_type": "place",\n'
    '      "category": "historical",\n'
    '      "experience_types": ["culture", "history"],\n'
    '      "why_notable": "UNESCO World Heritage Ottoman bridge rebuilt after the war",\n'
    '      "insider_tip": "",\n'
    '      "region": "Herzegovina"\n'
    "    }\n"
    "  ]\n"
    "}"
)


def location_suggestions_schema() -> dict[str, Any]:
    """JSON schema del objeto `{"locations": [...]}`.

    Structured outputs exige `additionalProperties: false` y todos los campos en
    `required`; los opcionales llegan como string vacío.
    """

    string = {"type": "string"}
    return {
        "title": "location_suggestions",
        "type": "object",
        "properties": {
            "locations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": string,
                        "name_local": string,
                        "lat": {"type": "number"},
                        "lng": {"type": "number"},
                        "city_name": string,
                        "location_type": string,
                        "category": string,
                        "experience_types": {"type": "array", "items": string},
                        "why_notable": string,
                        "insider_tip": string,
                        "region": string,
                    },
                    "required": [
                        "name",
                        "name_local",
                        "lat",
                        "lng",
                        "city_name",
                        "location_type",
                        "category",
                        "experience_types",
                        "why_notable",
                        "insider_tip",
                        "region",
                    ],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["locations"],
        "additionalProperties": False,
    }


def build_region_prompt(
    region_name: str,
    *,
    lat: float,
    lng: float,
    radius_m: int,
    max_locations: int,
    experience_types: Sequence[str],
) -> str:
    return (
        f"{CULTURAL_CONTEXT}\n\n---\n\n"
        f"TASK: Suggest notable tourist locations in the {region_name} region of Bosnia and Herzegovina.\n\n"
        f"Region center: {lat}, {lng}\n"
        f"Approximate radius: {radius_m // 1000}km\n\n"
        f"Please suggest up to {max_locations} notable locations that tourists should visit in this region.\n\n"
        "For EACH location, provide:\n"
        f"{_FIELD_LINES}"
        f"7. category: Primary category ({', '.join(CATEGORIES)})\n"
        f"8. experience_types: Array from: {', '.join(experience_types)}\n"
        "9. why_notable: Brief explanation of why this place is worth visiting (1 sentence)\n"
        "10. insider_tip: A tip only locals would know, or an empty string\n"
        f'11. region: "{region_name}"\n\n'
        "IMPORTANT:\n"
        "- List historical sites, cultural landmarks, natural wonders and religious monuments FIRST\n"
        "- Hotels, accommodations and less significant locations go LAST\n"
        "- Include well-known attractions AND lesser-known gems\n"
        "- Coordinates must be accurate and within BiH borders\n\n"
        f"Return ONLY valid JSON:\n{_EXAMPLE}"
    )


def build_category_prompt(category: str, *, experience_types: Sequence[str]) -> str:
    description = CATEGORY_DESCRIPTIONS.get(category, category)
    return (
        f"{CULTURAL_CONTEXT}\n\n---\n\n"
        f"TASK: Suggest the most notable {description} across ALL of Bosnia and Herzegovina.\n\n"
        f"Please suggest 20-30 locations that represent the BEST {category} destinations in the country.\n\n"
        "For EACH location, provide:\n"
        f"{_FIELD_LINES}"
        f'7. category: "{category}"\n'
        f"8. experience_types: Array from: {', '.join(experience_types)}\n"
        "9. why_notable: Brief explanation of why this place is worth visiting (1 sentence)\n"
        "10. insider_tip: A tip only locals would know, or an empty string\n"
        "11. region: Which region of BiH (Sarajevo, Herzegovina, Bosanska Krajina, Centralna Bosna, "
        "Istočna Bosna, Posavina, Podrinje)\n\n"
        "IMPORTANT:\n"
        "- List the most significant locations FIRST\n"
        "- Cover ALL regions of BiH, not just famous areas\n"
        "- Coordinates must be accurate\n\n"
        f"Return ONLY valid JSON:\n{_EXAMPLE}"
    )


def build_hidden_gems_prompt(count: int, *, experience_types: Sequence[str]) -> str:
    return (
        f"{CULTURAL_CONTEXT}\n\n---\n\n"
        f"TASK: Discover {count} HIDDEN GEMS in Bosnia and Herzegovina - places that are amazing "
        "but not well-known to international tourists.\n\n"
        "Think like a passionate local guide who wants to show visitors the real Bosnia.\n\n"
        "PRIORITIZE (in order): historic sites that deserve more attention, secret viewpoints and natural "
        "wonders, villages with unique traditions, forgotten architecture, artisan workshops, traditional "
        "food producers, family-run establishments.\n\n"
        "For EACH hidden gem, provide:\n"
        f"{_FIELD_LINES}"
        "7. category: Primary category\n"
        f"8. experience_types: Array from: {', '.join(experience_types)}\n"
        "9. why_notable: What makes this a special hidden gem (100-200 words)\n"
        "10. insider_tip: A tip that only locals would know\n"
        "11. region: Which region of BiH\n\n"
        f"Return ONLY valid JSON:\n{_EXAMPLE}"
    )
