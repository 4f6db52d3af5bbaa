"""
Instruction prompt sent with every image to the vision model.
"""

from utils.stock_categories import STOCK_CATEGORIES

_CATEGORY_LINES = "\n".join(f"{cid}. {name}" for cid, name in STOCK_CATEGORIES.items())

METADATA_PROMPT = f"""You are an Adobe Stock metadata specialist. Analyze the image and write commercial metadata that helps buyers find it.

Answer with JSON only, using exactly this structure:

{{
  "title": "string, 50-200 characters",
  "keywords": ["30 to 50 keywords"],
  "category": 1
}}

Title:
- Describe who, what and where in plain, searchable language.
- 50 to 200 characters, no commas.

Keywords:
- 30 to 50 single words or short phrases (at most three words), most relevant first.
- Cover the main subject, colors and lighting, mood, likely commercial use, shot type,
  season or time of day, and location when it is visible.
- No duplicates, no trademarks, no subjective praise such as "amazing".

Category: the number of the single most specific category below.
{_CATEGORY_LINES}

Prefer the category of the primary subject: people at work are Business (3), a skyline is
Landscape (11), an athlete is Sports (18), a pet at home is Animals (1).
"""
