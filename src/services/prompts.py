from __future__ import annotations

RECIPE_SYSTEM_PROMPT = (
    "You are a helpful cooking assistant. Generate 3-4 creative recipes based on the "
    "ingredients provided. Return ONLY valid JSON array with no markdown formatting. "
    "Each recipe must have: title, description (short summary), ingredients (array of "
    "strings with quantities), steps (array of instruction strings)."
)


def build_recipe_user_prompt(ingredients_text: str) -> str:
    return (
        f"Generate recipes using these ingredients: {ingredients_text.strip()}. "
        "Return as JSON array only."
    )


def build_recipe_messages(ingredients_text: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": RECIPE_SYSTEM_PROMPT},
        {"role": "user", "content": build_recipe_user_prompt(ingredients_text)},
    ]
