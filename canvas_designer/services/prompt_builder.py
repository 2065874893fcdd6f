VARIATION_COUNT = 3

PROMPT_TEMPLATE = """
Create a detailed design specification for a canvas design based on this request: "{USER_PROMPT}"

Return a JSON object with exactly this structure:

{
  "designs": [
    {
      "title": "Design Title",
      "description": "Brief description of the design concept",
      "colors": ["#hexcolor1", "#hexcolor2", "#hexcolor3"],
      "elements": ["text elements", "image suggestions", "shapes"],
      "layout": "layout description",
      "textElements": [
        {
          "text": "Main Title",
          "fontSize": 48,
          "fontWeight": "bold",
          "color": "#000000"
        },
        {
          "text": "Subtitle or description",
          "fontSize": 24,
          "fontWeight": "normal",
          "color": "#666666"
        }
      ],
      "shapes": [
        {
          "type": "rectangle",
          "color": "#ff0000",
          "width": 200,
          "height": 100
        }
      ]
    }
  ]
}

REQUIREMENTS:
- Generate {VARIATION_COUNT} different design variations in the "designs" array.
- Focus on practical, implementable designs.
- Use specific hex color codes (#RRGGBB), element suggestions and layout descriptions.
- Every design needs its own textElements with formatting.
- For shapes, use only these types: rectangle, circle, triangle.
- Respond ONLY with valid JSON. No additional text, no explanations, no markdown formatting.
"""


def build_design_prompt(user_prompt: str) -> str:
    """Embed the user's intent into the generation instruction.

    The caller is responsible for rejecting blank intents.
    """
    return (
        PROMPT_TEMPLATE
        .replace("{USER_PROMPT}", user_prompt.strip())
        .replace("{VARIATION_COUNT}", str(VARIATION_COUNT))
    )
