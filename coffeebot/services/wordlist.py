"""
Words used to build account link codes
"""
import secrets
from typing import List

WORDS: List[str] = [
    "affogato", "almond", "americano", "aroma", "arabica", "barista", "bean", "biscotti",
    "bitter", "bloom", "body", "brew", "burr", "cafe", "caramel", "carafe",
    "cherry", "chicory", "cinnamon", "cocoa", "cortado", "crema", "cup", "dark",
    "decaf", "doppio", "drip", "espresso", "filter", "flat", "foam", "french",
    "frappe", "grind", "grounds", "hazelnut", "honey", "iced", "java", "kettle",
    "latte", "light", "long", "lungo", "macchiato", "maple", "medium", "milk",
    "mocha", "mug", "nutmeg", "oat", "origin", "pour", "press", "pot",
    "ristretto", "roast", "robusta", "saucer", "shot", "siphon", "spoon", "steam",
    "sugar", "tamp", "toffee", "vanilla", "velvet", "whisk", "white", "yirgacheffe",
]


def get_words(count: int, separator: str = "-") -> str:
    """Random link code made of `count` words"""
    return separator.join(secrets.choice(WORDS) for _ in range(count))
