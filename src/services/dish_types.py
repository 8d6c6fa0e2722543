"""Dish-type catalogue used for stock photographs and fallback tips.

The keyword tables are plain data so new dish types can be added without
touching the detection logic. Rules are checked in table order and the first
match wins.
"""

from typing import List, NamedTuple, Tuple


class DishRule(NamedTuple):
    dish_type: str
    # Matched against the lower-cased title
    title_keywords: Tuple[str, ...] = ()
    # Matched against the lower-cased title + ingredient names
    text_keywords: Tuple[str, ...] = ()
    # All of these must appear in title + ingredient names
    text_all_keywords: Tuple[str, ...] = ()


DISH_RULES: Tuple[DishRule, ...] = (
    DishRule("pasta", title_keywords=("pasta",), text_keywords=("spaghetti", "linguine")),
    DishRule("salad", title_keywords=("salad",), text_keywords=("lettuce", "greens")),
    DishRule("soup", title_keywords=("soup",), text_keywords=("broth", "stock")),
    DishRule("curry", title_keywords=("curry",), text_keywords=("spice", "coconut milk")),
    DishRule("stirfry", title_keywords=("stir", "fry"), text_keywords=("wok",)),
    DishRule("pizza", title_keywords=("pizza",), text_all_keywords=("cheese", "tomato")),
    DishRule("sandwich", title_keywords=("sandwich", "burger")),
    DishRule("rice", title_keywords=("rice",), text_keywords=("grain",)),
)

DEFAULT_DISH_TYPE = "general"

FOOD_PHOTO_IDS = {
    "pasta": "1565299624946-b28f40a0ca4b",
    "salad": "1567620905732-2d1ec7ab7445",
    "soup": "1571091718767-18b5b1457add",
    "curry": "1565958011703-00e2c35b4c8f",
    "stirfry": "1551963831-b3b1765a2bc0",
    "pizza": "1556909114-37aa89dec418",
    "sandwich": "1504674900247-0877df9cc836",
    "rice": "1546069901-ba9599a7e63c",
    "general": "1555939594-58d7cb561ad1",
}

FALLBACK_IMAGE_URL_TEMPLATE = "https://images.unsplash.com/photo-{photo_id}?w=800&h=600&fit=crop&auto=format&q=80"

# Cooking-method labels used in fallback tips, checked in order
RECIPE_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("stir", "fry"), "stir-fry"),
    (("pasta", "spaghetti"), "pasta"),
    (("soup", "broth"), "soup"),
    (("salad",), "salad"),
    (("curry",), "curry"),
    (("roast", "bake"), "roasted"),
    (("grill",), "grilled"),
    (("steam",), "steamed"),
)

DEFAULT_RECIPE_TYPE = "dish"


def _matches(rule: DishRule, title: str, text: str) -> bool:
    if any(keyword in title for keyword in rule.title_keywords):
        return True
    if any(keyword in text for keyword in rule.text_keywords):
        return True
    return bool(rule.text_all_keywords) and all(keyword in text for keyword in rule.text_all_keywords)


def detect_dish_type(title: str, ingredient_names: List[str]) -> str:
    """Classify a recipe into one of the photo categories.

    Args:
        title: Recipe title.
        ingredient_names: Ingredient names in recipe order.

    Returns:
        str: A FOOD_PHOTO_IDS key, "general" when nothing matches.
    """
    title_lower = (title or "").lower()
    all_text = f"{title or ''} {' '.join(ingredient_names)}".lower()

    for rule in DISH_RULES:
        if _matches(rule, title_lower, all_text):
            return rule.dish_type
    return DEFAULT_DISH_TYPE


def fallback_image_url(title: str, ingredient_names: List[str]) -> str:
    """Stock photograph URL for a recipe. Always a non-empty string."""
    dish_type = detect_dish_type(title, ingredient_names)
    photo_id = FOOD_PHOTO_IDS.get(dish_type, FOOD_PHOTO_IDS[DEFAULT_DISH_TYPE])
    return FALLBACK_IMAGE_URL_TEMPLATE.format(photo_id=photo_id)


def detect_recipe_type(title: str) -> str:
    """Cooking-method label for a recipe title (e.g. "stir-fry", "roasted", "dish")."""
    title_lower = (title or "").lower()
    for keywords, recipe_type in RECIPE_TYPE_RULES:
        if any(keyword in title_lower for keyword in keywords):
            return recipe_type
    return DEFAULT_RECIPE_TYPE
