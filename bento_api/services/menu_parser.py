"""
Menu image parsing service.

Uses an OpenAI vision model with a strict JSON schema to turn a photo of a
printed menu into menu item names, prices and category labels.
"""
import base64
import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from openai import OpenAI

from bento_api.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class MenuParserNotConfigured(Exception):
    """Raised when no LLM API key is configured."""


class MenuParseError(Exception):
    """Raised when the LLM call fails or returns an unusable payload."""


@dataclass
class ParsedItem:
    """Menu item extracted from an image."""
    name: str
    price: Decimal
    type: Optional[str]


SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts menu items from images. "
    "Always return valid JSON in the exact format specified."
)

USER_PROMPT = """Analyze this menu image and extract all menu items with their prices and categories.

Return a JSON object with this exact structure:
{
  "menu_items": [
    { "name": "Menu Item Name", "price": 100, "type": "Category" },
    ...
  ]
}

Requirements:
- Extract ALL menu items visible in the image
- Prices must be numbers (e.g., 100, 150, 200)
- Identify the category/type of each item when the menu shows one (e.g. dumplings, soups, chicken, pork, beef, fish, noodles, rice, side dishes, drinks)
- If you cannot determine the category from the image, set "type" to null
- Keep item names and categories in the language printed on the menu
- Return only valid JSON, no additional text or markdown formatting"""

MENU_ITEMS_SCHEMA = {
    "name": "menu_items_response",
    "description": "Menu items extracted from a menu image",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "menu_items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Name of the menu item"},
                        "price": {"type": "number", "description": "Price of the menu item as a number"},
                        "type": {"type": ["string", "null"], "description": "Category of the menu item"},
                    },
                    "required": ["name", "price", "type"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["menu_items"],
        "additionalProperties": False,
    },
}


def _to_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return price if price.is_finite() else Decimal("0")


def normalize_items(raw_items: List[Any]) -> List[ParsedItem]:
    """Trim names and types, coerce prices, drop nameless entries."""
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            continue
        item_type = raw.get("type")
        item_type = str(item_type).strip() if item_type is not None else None
        items.append(ParsedItem(name=name, price=_to_price(raw.get("price")), type=item_type or None))
    return items


class MenuParserService:
    """Service for extracting menu items from photos using a vision model."""

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        if client is None and settings.OPENAI_API_KEY:
            client = OpenAI(api_key=settings.OPENAI_API_KEY)
        self.client = client
        self.model = model or settings.OPENAI_MENU_MODEL

    def parse_menu_image(self, image_data: bytes, mime_type: str = "image/jpeg") -> List[ParsedItem]:
        """
        Extract menu items from a menu photo.

        Args:
            image_data: Raw image bytes (JPEG, PNG, etc.)
            mime_type: Content type of the image

        Returns:
            Normalized list of ParsedItem

        Raises:
            MenuParserNotConfigured: no API key configured
            MenuParseError: the API call failed or returned invalid JSON
        """
        if not self.client:
            raise MenuParserNotConfigured("Menu parsing is not configured (missing OPENAI_API_KEY)")

        base64_image = base64.b64encode(image_data).decode("utf-8")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": USER_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime_type};base64,{base64_image}"},
                            },
                        ],
                    },
                ],
                response_format={"type": "json_schema", "json_schema": MENU_ITEMS_SCHEMA},
                max_completion_tokens=2000,
            )

            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise MenuParseError("Failed to parse menu: no response from model")

            parsed = json.loads(content)
            if not isinstance(parsed, dict) or not isinstance(parsed.get("menu_items"), list):
                raise MenuParseError("Failed to parse menu: menu_items array not found")

        except MenuParseError:
            logger.error("Menu image parsing returned an unusable payload", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Error parsing menu image: {e}", exc_info=True)
            raise MenuParseError(f"Failed to parse menu: {e}") from e

        items = normalize_items(parsed["menu_items"])
        logger.info("Parsed %d menu items from image", len(items))
        return items


def get_menu_parser() -> MenuParserService:
    """Dependency that provides the menu parser."""
    return MenuParserService()
