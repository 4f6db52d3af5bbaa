"""
Adobe Stock category taxonomy (ids 1-21) and name aliases.
"""

from typing import Dict

STOCK_CATEGORIES: Dict[int, str] = {
    1: "Animals",
    2: "Buildings and Architecture",
    3: "Business",
    4: "Drinks",
    5: "The Environment",
    6: "States of Mind",
    7: "Food",
    8: "Graphic Resources",
    9: "Hobbies and Leisure",
    10: "Industry",
    11: "Landscape",
    12: "Lifestyle",
    13: "People",
    14: "Plants and Flowers",
    15: "Culture and Religion",
    16: "Science",
    17: "Social Issues",
    18: "Sports",
    19: "Technology",
    20: "Transport",
    21: "Travel",
}

MIN_CATEGORY_ID = 1
MAX_CATEGORY_ID = 21
DEFAULT_CATEGORY_ID = 1

CATEGORY_NAME_TO_ID: Dict[str, int] = {
    name.lower(): cid for cid, name in STOCK_CATEGORIES.items()
}

_ALIASES_BY_ID = {
    1: ["animal", "pet", "pets", "wildlife", "insect", "insects"],
    2: ["building", "buildings", "architecture", "interior", "interiors",
        "home", "homes", "house", "houses", "structure", "structures"],
    3: ["office", "finance", "money", "corporate", "work", "meeting"],
    4: ["drink", "beverage", "beverages", "wine", "beer", "cocktail", "cocktails", "coffee"],
    5: ["environment", "nature", "eco", "ecological", "natural", "outdoor", "outdoors"],
    6: ["emotion", "emotions", "emotional", "feeling", "feelings", "mood", "moods",
        "mental", "psychology", "state of mind"],
    7: ["meal", "meals", "eating", "cuisine", "dish", "dishes", "recipe", "recipes", "cooking"],
    8: ["graphic", "graphics", "background", "backgrounds", "texture", "textures",
        "pattern", "patterns", "symbol", "symbols", "abstract"],
    9: ["hobby", "hobbies", "leisure", "pastime", "recreation", "relaxation",
        "craft", "crafts", "diy"],
    10: ["industrial", "manufacturing", "factory", "factories", "production",
         "construction", "engineering"],
    11: ["landscapes", "vista", "vistas", "scenery", "scenic", "panorama",
         "panoramic", "city", "cities", "cityscape"],
    12: ["life", "living", "everyday", "daily", "routine"],
    13: ["person", "human", "humans", "portrait", "portraits", "face", "faces",
         "man", "woman", "child", "children", "family"],
    14: ["plant", "plants", "flower", "flowers", "floral", "botanical", "garden",
         "gardening", "tree", "trees"],
    15: ["culture", "cultural", "religion", "religious", "tradition", "traditions",
         "traditional", "spiritual", "faith", "ceremony", "ritual"],
    16: ["scientific", "research", "laboratory", "lab", "experiment", "medical",
         "medicine", "biology", "chemistry", "physics"],
    17: ["social", "society", "poverty", "inequality", "politics", "political",
         "protest", "activism"],
    18: ["sport", "athletic", "athletics", "fitness", "exercise", "workout", "gym",
         "football", "basketball", "soccer", "yoga", "running"],
    19: ["tech", "computer", "computers", "digital", "smartphone", "phone", "software",
         "hardware", "internet", "web", "ai", "vr", "virtual reality"],
    20: ["transportation", "vehicle", "vehicles", "car", "cars", "automotive", "bus",
         "train", "plane", "airplane", "aircraft", "ship", "boat", "highway"],
    21: ["traveling", "travelling", "tourism", "tourist", "vacation", "holiday",
         "destination", "adventure", "explore", "exploration"],
}

CATEGORY_ALIASES: Dict[str, int] = {
    alias: cid for cid, aliases in _ALIASES_BY_ID.items() for alias in aliases
}
