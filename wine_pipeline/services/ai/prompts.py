"""Prompt templates for wine research, wine-list classification and guest preferences."""

PROMPT_VERSION = "2.0"

RESEARCH_SYSTEM_PROMPT = """You are a Master Sommelier and wine researcher. Given a wine identity, you describe the wine's authentic, verifiable characteristics.

Rules:
1. Base every field on knowledge of this specific producer, region, vintage and style
2. If you do not know a field with reasonable confidence, return an empty string (or null for numbers). Never invent details
3. Numeric structure values (acidity, tannin, intensity, sweetness) use a 1-5 scale: 1 = low, 2 = medium-low, 3 = medium, 4 = medium-high, 5 = high
4. rating is the typical critic/consumer average on a 1-5 scale

Output ONLY valid JSON. No additional text or explanation."""


RESEARCH_PROMPT_TEMPLATE = """Research this wine and return its profile:

WINE: {query}

Return a JSON object with exactly these fields:
{{
  "wine_type": "red|white|rose|sparkling|fortified|orange",
  "tasting_notes": "Professional tasting description (2-3 sentences)",
  "flavor_notes": "Primary and secondary flavors (comma-separated list)",
  "aroma_notes": "Aromatic characteristics (comma-separated list)",
  "body_description": "light/medium/full-bodied, with a short structural note",
  "food_pairing": "Recommended food pairings (comma-separated)",
  "serving_temp": "Optimal serving temperature",
  "aging_potential": "Current drinking window and aging potential",
  "acidity": 1-5 or null,
  "tannin": 1-5 or null,
  "intensity": 1-5 or null,
  "sweetness": 1-5 or null,
  "rating": 1-5 or null
}}

Output ONLY the JSON object, no markdown code blocks or additional text."""


CLASSIFY_SYSTEM_PROMPT = """You are a wine sommelier expert. Extract structured wine information from single lines of a restaurant wine list.

Section headers, prices on their own, page numbers and other non-wine lines are not wines.

Output ONLY valid JSON. No additional text or explanation."""


CLASSIFY_PROMPT_TEMPLATE = """Extract wine information from this wine-list line:

LINE: "{line}"

If this line does not describe a specific wine, respond with {{}}.
Otherwise return a JSON object with these fields (empty string if not present):
{{
  "wine_name": "Full wine name",
  "vintage": "Year or NV",
  "producer": "Winery or producer",
  "region": "Region of origin",
  "country": "Country of origin",
  "varietals": "Grape varietals",
  "price": "Price (numeric only, no currency)",
  "style": "Wine style (red, white, rose, sparkling, etc)",
  "aroma": "Brief description of aromas, only if stated",
  "taste": "Brief description of taste profile, only if stated",
  "food_pairings": "Recommended food pairings, only if stated"
}}

Output ONLY the JSON object, no markdown code blocks or additional text."""


PREFERENCE_PROMPT_TEMPLATE = """You are a professional sommelier analyzing a guest's wine request. Extract wine characteristics in JSON format.

Guest request: "{description}"

Use the 1-5 scale: 1 = low/light, 2 = medium-low, 3 = medium, 4 = medium-high, 5 = high/full.

Return JSON with these fields (only include fields you can confidently determine):
{{
  "color": "red|white|rose|sparkling",
  "body": "light|medium|full",
  "tannin": 1-5,
  "acidity": 1-5,
  "sweetness": 1-5,
  "intensity": 1-5,
  "flavor_notes": ["flavor1", "flavor2"],
  "price_range": "budget|mid-range|premium|luxury",
  "confidence_score": 0-1
}}

Output ONLY the JSON object."""


REPAIR_PROMPT_TEMPLATE = """The following JSON is invalid and needs to be repaired.

INVALID JSON:
{invalid_json}

ERROR MESSAGE:
{error_message}

Please fix the JSON to make it valid. Common issues include:
- Missing or extra commas
- Unquoted strings
- Trailing commas in arrays/objects
- Missing closing brackets

Output ONLY the corrected JSON, no explanation."""


def build_research_prompt(query: str) -> str:
    """
    Build the research prompt for a composed wine query.

    Args:
        query: Identity fields joined into one search string.

    Returns:
        The formatted prompt string.
    """
    return RESEARCH_PROMPT_TEMPLATE.format(query=query)


def build_classification_prompt(line: str) -> str:
    """Build the prompt that classifies a single wine-list line."""
    return CLASSIFY_PROMPT_TEMPLATE.format(line=line.replace('"', "'"))


def build_preference_prompt(description: str) -> str:
    """Build the prompt that turns a guest request into structured preferences."""
    return PREFERENCE_PROMPT_TEMPLATE.format(description=description.replace('"', "'"))


def build_repair_prompt(invalid_json: str, error_message: str) -> str:
    """
    Build the JSON repair prompt.

    Args:
        invalid_json: The malformed JSON string.
        error_message: The error from the JSON parser.

    Returns:
        The formatted repair prompt.
    """
    return REPAIR_PROMPT_TEMPLATE.format(
        invalid_json=invalid_json,
        error_message=error_message,
    )
