"""Prompt templates for recipe, tips and image generation.

Provides factory functions that render the fixed templates into chat messages.
Recipe and tips prompts ask the model for pure JSON in an exact structure; the
reply is later recovered by src.services.normalizer and never trusted as-is.
"""

import json
from typing import List

from src.models.models import ChatMessage, GenerationRequest


RECIPE_SYSTEM_PROMPT = """You are a world-class chef creating recipes for a modern cooking website. Your recipes are practical, delicious, and perfectly formatted for web display.

IMPORTANT: Respond with ONLY valid JSON. No markdown, no explanations, just pure JSON starting with { and ending with }."""

DYNAMIC_TIPS_SYSTEM_PROMPT = (
    "You are a world-class professional chef with decades of experience in fine dining and home cooking. "
    "You specialize in creating personalized, actionable cooking tips that transform ordinary cooks into "
    "confident chefs. Your advice is always practical, scientifically sound, and designed to improve both "
    "technique and flavor."
)

BASIC_TIPS_SYSTEM_PROMPT = (
    "You are a world-renowned chef and culinary instructor. Create comprehensive, engaging cooking tips "
    "that educate and inspire home cooks."
)

IMPROVE_SYSTEM_PROMPT = (
    "You are a professional chef. Improve existing recipes based on user feedback. "
    "Always respond with valid JSON format."
)


def _get_recipe_user_prompt(request: GenerationRequest) -> str:
    """Render the recipe request with constraints and the exact JSON structure expected.

    The suggested cookTime is five minutes under the limit so the model aims below it.

    Args:
        request: Ingredient names plus constraints.

    Returns:
        str: User prompt text
    """
    restrictions = request.dietary_restrictions
    dietary_line = f"• Dietary: {', '.join(restrictions)}\n" if restrictions else ""
    dietary_tags = ", ".join(f'"{tag}"' for tag in restrictions) if restrictions else '"general"'
    cook_time = max(request.max_time_minutes - 5, 1)
    difficulty = request.difficulty.value

    return f"""Create an amazing recipe for a cooking website using: {', '.join(request.ingredient_names)}

🎯 Requirements:
{dietary_line}• Max time: {request.max_time_minutes} minutes
• Difficulty: {difficulty}
• Servings: {request.servings}

📋 JSON Format (exact structure required):
{{
  "title": "Appetizing Recipe Name",
  "description": "Mouth-watering description that makes people want to cook this (2-3 sentences)",
  "cookTime": {cook_time},
  "difficulty": "{difficulty}",
  "servings": {request.servings},
  "ingredients": [
    {{ "name": "ingredient", "quantity": "amount", "unit": "unit" }}
  ],
  "instructions": [
    "Step 1: Clear action with technique",
    "Step 2: Next action with timing/temp",
    "Continue with detailed steps..."
  ],
  "dietaryTags": [{dietary_tags}],
  "tips": [
    "Pro tip for perfect results",
    "Chef's secret for amazing flavor"
  ]
}}

🍳 Make it restaurant-quality but home-cookable!"""


def get_recipe_messages(request: GenerationRequest) -> List[ChatMessage]:
    """Build the system + user messages for a recipe generation call.

    Args:
        request: Ingredient names plus constraints.

    Returns:
        List[ChatMessage]: Messages ready for TextGenerationClient.complete()
    """
    return [
        ChatMessage(role="system", content=RECIPE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=_get_recipe_user_prompt(request)),
    ]


def get_dynamic_tips_messages(recipe_title: str, ingredient_names: List[str]) -> List[ChatMessage]:
    """Build messages asking for recipe-specific tips in five categories.

    Args:
        recipe_title: Title of the recipe the tips are tailored to.
        ingredient_names: Key ingredients of the recipe.

    Returns:
        List[ChatMessage]: Messages ready for TextGenerationClient.complete()
    """
    ingredients = ", ".join(ingredient_names)
    user_prompt = f"""Create personalized cooking tips for this specific recipe:

🍽️ Recipe: "{recipe_title}"
🥘 Key Ingredients: {ingredients}

Generate comprehensive, recipe-specific tips in this exact JSON format:

{{
  "recipeTips": [
    {{
      "title": "Recipe-Specific Tip Title",
      "content": "Detailed explanation tailored to this exact recipe and ingredients",
      "category": "preparation|cooking|flavor|plating",
      "importance": "critical|high|medium",
      "estimatedTime": "1-2 minutes",
      "appliesToStep": "Which cooking step this applies to"
    }}
  ],
  "ingredientSecrets": [
    {{
      "ingredient": "specific ingredient from the recipe",
      "secret": "Professional technique for handling this ingredient in this dish",
      "impact": "How this technique improves the final dish"
    }}
  ],
  "flavorEnhancers": [
    {{
      "technique": "Specific flavor enhancement technique",
      "description": "How to apply this technique to this recipe",
      "result": "Expected flavor improvement",
      "timing": "When in the cooking process to apply this"
    }}
  ],
  "commonPitfalls": [
    {{
      "pitfall": "Common mistake specific to this type of dish",
      "prevention": "How to avoid this mistake",
      "recovery": "How to fix it if it happens",
      "why": "Why this mistake is particularly problematic for this recipe"
    }}
  ],
  "presentationTips": [
    {{
      "tip": "Plating and presentation advice",
      "description": "Detailed instructions for beautiful presentation"
    }}
  ]
}}

Requirements:
- All tips must be specifically tailored to "{recipe_title}" using "{ingredients}"
- Focus on techniques that will significantly improve the final dish
- Include scientific explanations where relevant (e.g., Maillard reaction, emulsification)
- Provide 2-3 items in each category
- Make every tip actionable with clear steps
- Consider the cooking methods likely used in this recipe"""

    return [
        ChatMessage(role="system", content=DYNAMIC_TIPS_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]


def get_basic_tips_messages(ingredient_names: List[str]) -> List[ChatMessage]:
    """Build messages asking for generic ingredient tips in four categories."""
    user_prompt = f"""Create detailed cooking tips for these ingredients: {', '.join(ingredient_names)}.

Provide tips in this JSON format:
{{
  "generalTips": [
    {{
      "title": "Tip Title",
      "content": "Detailed explanation",
      "category": "preparation|cooking|flavor|storage",
      "importance": "high|medium|low",
      "estimatedTime": "2-3 minutes"
    }}
  ],
  "proTips": [
    {{
      "title": "Professional Secret",
      "content": "Advanced technique explanation",
      "category": "technique|flavor|presentation",
      "chefSecret": true
    }}
  ],
  "commonMistakes": [
    {{
      "mistake": "What people do wrong",
      "solution": "How to fix it",
      "prevention": "How to avoid it"
    }}
  ],
  "flavorPairings": [
    {{
      "ingredient": "main ingredient",
      "pairs": ["ingredient1", "ingredient2"],
      "why": "Explanation of why they work together"
    }}
  ]
}}

Focus on practical, actionable advice that will genuinely improve the cooking experience. Include 3-4 items in each category."""

    return [
        ChatMessage(role="system", content=BASIC_TIPS_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]


def get_improve_recipe_messages(recipe_data: dict, improvement_request: str) -> List[ChatMessage]:
    """Build messages asking the model to rework an existing recipe.

    Args:
        recipe_data: Current recipe as a JSON-serializable dict.
        improvement_request: Free-text request from the user (e.g. "make it spicier").

    Returns:
        List[ChatMessage]: Messages ready for TextGenerationClient.complete()
    """
    user_prompt = f"""Improve this recipe based on the request: "{improvement_request}"

Current recipe: {json.dumps(recipe_data, indent=2, ensure_ascii=False)}

Please respond with the improved recipe in the same JSON format as the original."""

    return [
        ChatMessage(role="system", content=IMPROVE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]


# ============================================================================
# Image prompts
# ============================================================================

STYLE_DESCRIPTIONS = {
    "food-photography": (
        "with professional lighting, shallow depth of field, and appetizing presentation "
        "on a clean white or wooden surface"
    ),
    "minimalist": "with clean, simple composition, neutral colors, and minimal props on a plain background",
    "rustic": "with warm, natural lighting, wooden textures, and homestyle presentation with rustic tableware",
    "elegant": (
        "with sophisticated plating, fine dining presentation, and elegant garnishing on premium dinnerware"
    ),
}

QUALITY_DESCRIPTORS = {
    "high": "Ultra-high quality, 4K resolution, restaurant-quality presentation",
    "standard": "High quality, professional presentation",
}


def get_image_prompt(title: str, ingredient_names: List[str], style: str, quality: str) -> str:
    """Render the dish photograph prompt.

    Only the first three ingredients are mentioned; the clause is dropped when
    there are none.

    Args:
        title: Recipe title.
        ingredient_names: Recipe ingredient names, in order.
        style: One of STYLE_DESCRIPTIONS keys.
        quality: One of QUALITY_DESCRIPTORS keys.

    Returns:
        str: Prompt text for the image provider
    """
    key_ingredients = ", ".join(ingredient_names[:3])
    prompt = f'Create a professional {style} style image of "{title}"'
    if key_ingredients:
        prompt += f" featuring visible {key_ingredients}"
    prompt += (
        f". {STYLE_DESCRIPTIONS[style]}. {QUALITY_DESCRIPTORS[quality]}. "
        "The dish should look fresh, delicious, and inviting. "
        "Avoid any text, logos, or watermarks in the image."
    )
    return prompt
