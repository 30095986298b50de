# scanner_config.py - Rule tables and thresholds for the ingredient scanner
#
# Every table here is an ordered tuple built once at import time. Order is
# significant: it decides flag order, sneaky first-match order and the order
# alternatives are suggested in.
import re
from typing import NamedTuple, Tuple

from models import Alternative, Citation


class MarkerRule(NamedTuple):
    pattern: re.Pattern
    reason: str


class SneakyRule(NamedTuple):
    term: str
    pattern: re.Pattern
    explanation: str
    what_to_look_for: str
    citations: Tuple[Citation, ...]


class AlternativeRule(NamedTuple):
    trigger: re.Pattern
    alternatives: Tuple[Alternative, ...]


def _cite(*pairs):
    return tuple(Citation(label=label, url=url) for label, url in pairs)


def _alts(*pairs):
    return tuple(Alternative(name=name, why=why) for name, why in pairs)


# Joins ingredient tokens into the single string every rule table scans
INGREDIENT_JOINER = ", "

# ULTRA-PROCESSED MARKERS
# One flag per matching rule, first literal match only
ULTRA_PROCESSED_MARKERS = (
    # 🍬 Sweeteners
    MarkerRule(re.compile(r"high[- ]fructose corn syrup"), "Ultra-processed sweetener"),
    # Plain corn syrup only, so HFCS is not flagged twice
    MarkerRule(re.compile(r"(?<!fructose )(?<!fructose-)corn syrup"), "Refined sweetener"),
    MarkerRule(re.compile(r"aspartame|sucralose|acesulfame|saccharin|neotame"), "Artificial sweetener"),
    MarkerRule(re.compile(r"dextrose|maltodextrin"), "Highly refined carbohydrate"),

    # 🧪 Preservatives
    MarkerRule(re.compile(r"sodium benzoate"), "Chemical preservative"),
    MarkerRule(re.compile(r"potassium sorbate"), "Chemical preservative"),
    MarkerRule(re.compile(r"bht|bha|tbhq"), "Synthetic antioxidant preservative"),
    MarkerRule(re.compile(r"sodium nitrite|sodium nitrate"), "Curing agent / preservative"),

    # 🎨 Colors
    MarkerRule(re.compile(r"red\s*#?\d+|yellow\s*#?\d+|blue\s*#?\d+"), "Artificial color"),
    MarkerRule(re.compile(r"caramel color"), "Processed coloring"),
    MarkerRule(re.compile(r"titanium dioxide"), "Artificial whitening agent"),

    # 🥣 Emulsifiers & thickeners
    MarkerRule(re.compile(r"polysorbate"), "Synthetic emulsifier"),
    MarkerRule(re.compile(r"carrageenan"), "Processed thickener (linked to inflammation)"),
    MarkerRule(re.compile(r"xanthan gum"), "Industrial thickener"),
    MarkerRule(re.compile(r"cellulose gum|carboxymethyl"), "Processed filler / thickener"),

    # 🧂 Flavor enhancers
    MarkerRule(re.compile(r"monosodium glutamate|msg"), "Flavor enhancer"),
    MarkerRule(re.compile(r"artificial flavou?r"), "Artificial flavoring"),
    MarkerRule(re.compile(r"natural flavou?r"), "Processed flavor compound (often not truly natural)"),

    # 🫒 Oils
    MarkerRule(re.compile(r"hydrogenated"), "Contains trans fats / hydrogenated oils"),
    MarkerRule(re.compile(r"interesterified"), "Chemically modified fat"),

    # Other
    MarkerRule(re.compile(r"soy protein isolate|whey protein isolate"), "Ultra-processed protein extract"),
    MarkerRule(re.compile(r"modified (corn |food )?starch"), "Chemically modified starch"),
    MarkerRule(re.compile(r"sodium phosphate|calcium phosphate"), "Industrial additive"),
)

# SNEAKY INGREDIENTS
# Labeling terms that hide what an ingredient really is. Each term fires once.
SNEAKY_INGREDIENTS = (
    SneakyRule(
        term="Evaporated Cane Juice",
        pattern=re.compile(r"evaporated cane juice|cane juice crystals|crystallized cane juice", re.IGNORECASE),
        explanation=(
            "Despite the wholesome-sounding name, this is essentially unrefined sugar. The FDA has warned that "
            "\"evaporated cane juice\" is misleading because the product is a sweetener, not a juice."
        ),
        what_to_look_for="Products sweetened with whole fruit, raw honey, or pure maple syrup.",
        citations=_cite(
            ("FDA", "https://www.fda.gov/food/food-labeling-nutrition/guidance-industry-ingredients-declared-evaporated-cane-juice"),
        ),
    ),
    SneakyRule(
        term="Natural Flavors",
        pattern=re.compile(r"natural flavou?rs?|natural flavou?ring", re.IGNORECASE),
        explanation=(
            "A catch-all term that can include hundreds of chemical compounds derived from natural sources. "
            "While not inherently harmful, it provides zero transparency about what you're actually consuming."
        ),
        what_to_look_for="Products that list specific flavoring ingredients (e.g., \"vanilla extract\" instead of \"natural flavors\").",
        citations=_cite(
            ("FDA", "https://www.fda.gov/food/food-ingredients-packaging/food-ingredient-and-packaging-terms"),
            ("EWG", "https://www.ewg.org/foodscores/content/natural-vs-artificial-flavors/"),
        ),
    ),
    SneakyRule(
        term="Yeast Extract",
        pattern=re.compile(r"yeast extract|autolyzed yeast", re.IGNORECASE),
        explanation=(
            "Contains naturally occurring glutamates (similar to MSG) that enhance umami flavor. It's technically "
            "natural but functions as a flavor enhancer and adds hidden sodium."
        ),
        what_to_look_for="Products flavored with real herbs, spices, mushroom powder, or nutritional yeast.",
        citations=_cite(("PubMed", "https://pubmed.ncbi.nlm.nih.gov/19389112/")),
    ),
    SneakyRule(
        term="Maltodextrin",
        pattern=re.compile(r"maltodextrin", re.IGNORECASE),
        explanation=(
            "A highly processed starch-derived powder with a glycemic index higher than table sugar "
            "(85-105 vs. 65). Often used as a cheap filler and thickener."
        ),
        what_to_look_for="Products thickened with whole food starches like tapioca or arrowroot.",
        citations=_cite(("PubMed", "https://pubmed.ncbi.nlm.nih.gov/25197735/")),
    ),
    SneakyRule(
        term="Vegetable Oil (Unspecified)",
        pattern=re.compile(r"vegetable oil(?!\s*\()|vegetable oils", re.IGNORECASE),
        explanation=(
            "When \"vegetable oil\" is listed without specifying the source, it's often a blend of the cheapest "
            "oils available (usually soybean, canola, or palm). These are typically refined using high heat and "
            "chemical solvents."
        ),
        what_to_look_for="Products that name specific oils (extra virgin olive oil, avocado oil, coconut oil).",
        citations=_cite(
            ("AHA", "https://www.heart.org/en/healthy-living/healthy-eating/eat-smart/fats/healthy-cooking-oils"),
        ),
    ),
    SneakyRule(
        term="Fruit Juice Concentrate",
        pattern=re.compile(
            r"fruit juice concentrate|juice concentrate|concentrated juice|apple juice concentrate"
            r"|grape juice concentrate|pear juice concentrate",
            re.IGNORECASE,
        ),
        explanation=(
            "Sounds healthy but is essentially sugar water. The concentration process strips away fiber and most "
            "nutrients, leaving mainly fructose. Often used to sweeten products while claiming \"no added sugar.\""
        ),
        what_to_look_for="Products sweetened with whole fruit or small amounts of raw honey or dates.",
        citations=_cite(
            ("AHA", "https://www.heart.org/en/healthy-living/healthy-eating/eat-smart/sugar/added-sugars"),
            ("USDA", "https://fdc.nal.usda.gov/"),
        ),
    ),
    SneakyRule(
        term="Dextrose",
        pattern=re.compile(r"\bdextrose\b", re.IGNORECASE),
        explanation=(
            "Pure glucose derived from corn starch. Has a glycemic index of ~100 (same as pure glucose). "
            "Manufacturers use this name because it sounds more technical and less alarming than \"corn sugar.\""
        ),
        what_to_look_for="Products that use whole food sweeteners like dates, maple syrup, or raw honey.",
        citations=_cite(("USDA", "https://fdc.nal.usda.gov/")),
    ),
    SneakyRule(
        term="Rice Syrup",
        pattern=re.compile(r"rice syrup|brown rice syrup|rice malt syrup", re.IGNORECASE),
        explanation=(
            "Marketed as a \"natural\" sweetener, but it's highly refined with a very high glycemic index. "
            "It's essentially glucose with minimal nutritional value."
        ),
        what_to_look_for="Raw honey, pure maple syrup, or whole-fruit sweeteners.",
        citations=_cite(("USDA", "https://fdc.nal.usda.gov/")),
    ),
    SneakyRule(
        term="Glucose Syrup",
        pattern=re.compile(r"glucose syrup|glucose-fructose syrup|glucose solids", re.IGNORECASE),
        explanation=(
            "Another name for a highly processed sugar derived from starch (usually corn or wheat). It's "
            "functionally similar to corn syrup but the name obscures its ultra-processed nature."
        ),
        what_to_look_for="Products sweetened with whole fruit, raw honey, or maple syrup.",
        citations=_cite(("FDA", "https://www.fda.gov/food/food-ingredients-packaging/food-ingredient-and-packaging-terms")),
    ),
    SneakyRule(
        term="\"Uncured\" with Celery Powder",
        pattern=re.compile(r"celery powder|celery juice|celery extract", re.IGNORECASE),
        explanation=(
            "Products labeled \"uncured\" or \"no nitrates added\" often use celery powder, which is naturally "
            "high in nitrates. Your body converts these to nitrites identically to synthetic sodium nitrite. "
            "The \"uncured\" label can be misleading."
        ),
        what_to_look_for=(
            "Truly fresh, unprocessed meats without any curing agents, or understand that celery-powder curing "
            "is not meaningfully different from traditional curing."
        ),
        citations=_cite(
            ("PubMed", "https://pubmed.ncbi.nlm.nih.gov/28487287/"),
            ("USDA", "https://www.ams.usda.gov/rules-regulations/organic/labeling"),
        ),
    ),
    SneakyRule(
        term="Inulin / Chicory Root Fiber",
        pattern=re.compile(r"\binulin\b|chicory root fiber|chicory root extract", re.IGNORECASE),
        explanation=(
            "Often added to boost \"fiber\" content on nutrition labels. While chicory root fiber is a real "
            "prebiotic, it's isolated and concentrated from its whole food source. Large amounts can cause "
            "significant digestive discomfort (bloating, gas)."
        ),
        what_to_look_for="Fiber from whole food sources like oats, flaxseed, chia seeds, or vegetables.",
        citations=_cite(("NIH", "https://pubmed.ncbi.nlm.nih.gov/28159043/")),
    ),
    SneakyRule(
        term="Soy Lecithin",
        pattern=re.compile(r"soy lecithin|soya lecithin", re.IGNORECASE),
        explanation=(
            "An emulsifier extracted from soybean oil processing. While generally considered safe, it's a "
            "byproduct of industrial oil refining and is ubiquitous in ultra-processed foods. Most is derived "
            "from genetically modified soy."
        ),
        what_to_look_for="Products using sunflower lecithin or whole food emulsifiers like egg yolk.",
        citations=_cite(("FDA", "https://www.fda.gov/food/food-additives-petitions/food-additive-status-list")),
    ),
)

# WHOLE FOOD ALTERNATIVES
# Triggers run over the joined literal text of the flagged ingredients
ALTERNATIVE_RULES = (
    AlternativeRule(
        re.compile(r"corn syrup|high[- ]fructose|dextrose|maltodextrin"),
        _alts(
            ("Raw honey", "Natural sweetener with enzymes and antioxidants"),
            ("Maple syrup", "Minimally processed, contains minerals"),
            ("Dates or date paste", "Whole fruit sweetener with fiber"),
        ),
    ),
    AlternativeRule(
        re.compile(r"aspartame|sucralose|acesulfame|saccharin"),
        _alts(
            ("Stevia leaf", "Plant-based zero-calorie sweetener"),
            ("Monk fruit", "Natural zero-calorie sweetener"),
        ),
    ),
    AlternativeRule(
        re.compile(r"hydrogenated|interesterified"),
        _alts(
            ("Extra virgin olive oil", "Heart-healthy unprocessed fat"),
            ("Coconut oil", "Minimally processed saturated fat"),
            ("Grass-fed butter or ghee", "Traditional whole-food fat"),
        ),
    ),
    AlternativeRule(
        re.compile(r"artificial flavou?r|natural flavou?r|msg|monosodium"),
        _alts(
            ("Fresh herbs & spices", "Real flavor without additives"),
            ("Nutritional yeast", "Natural umami flavor, rich in B vitamins"),
            ("Tamari or coconut aminos", "Fermented, less processed flavor"),
        ),
    ),
    AlternativeRule(
        re.compile(r"artificial color|red\s*#?\d|yellow\s*#?\d|blue\s*#?\d|caramel color|titanium dioxide"),
        _alts(
            ("Beet powder", "Natural red coloring from whole beets"),
            ("Turmeric", "Natural yellow coloring with anti-inflammatory benefits"),
            ("Spirulina", "Natural blue-green coloring from algae"),
        ),
    ),
    AlternativeRule(
        re.compile(r"sodium benzoate|potassium sorbate|bht|bha|tbhq|sodium nitrite"),
        _alts(
            ("Vitamin E (tocopherols)", "Natural antioxidant preservative"),
            ("Rosemary extract", "Natural preservation from herbs"),
            ("Fermented or lacto-preserved foods", "Preserved through natural fermentation"),
        ),
    ),
    AlternativeRule(
        re.compile(r"carrageenan|polysorbate|xanthan|cellulose gum"),
        _alts(
            ("Agar-agar", "Seaweed-based natural thickener"),
            ("Arrowroot powder", "Whole root starch thickener"),
            ("Chia or flax gel", "Whole seed-based thickener with omega-3s"),
        ),
    ),
    AlternativeRule(
        re.compile(r"soy protein isolate|whey protein isolate"),
        _alts(
            ("Whole nuts & seeds", "Complete protein with healthy fats and fiber"),
            ("Organic tempeh", "Fermented whole soy with probiotics"),
            ("Pasture-raised eggs", "Complete whole-food protein"),
        ),
    ),
    AlternativeRule(
        re.compile(r"modified.*starch"),
        _alts(
            ("Tapioca starch", "Naturally extracted root starch"),
            ("Potato starch", "Simple unmodified starch"),
        ),
    ),
)

# SODIUM - per 100g thresholds
SODIUM_DAILY_VALUE_MG = 2300
SODIUM_LOW_MAX_MG = 140       # inclusive
SODIUM_MODERATE_MAX_MG = 600  # inclusive, anything above is high

SODIUM_LEVEL_DESCRIPTIONS = {
    "low": "Low sodium: 140 mg or less per 100g. Generally heart-healthy.",
    "moderate": "Moderate sodium: between 140 and 600 mg per 100g. Watch total daily intake.",
    "high": "High sodium: over 600 mg per 100g. May contribute to elevated blood pressure.",
}
SODIUM_UNAVAILABLE_MESSAGE = "Sodium data unavailable for this item."
SODIUM_FDA_NOTE = "FDA recommended daily limit: 2,300 mg."

# SCORE AGGREGATION
# Penalties are additive. Every rule that applies adds one breakdown entry.
FLAG_COUNT_HIGH = 3            # this many flags or more costs the larger penalty
FLAG_PENALTY_FEW = 1
FLAG_PENALTY_MANY = 2
NOVA_PENALTIES = {3: 1, 4: 2}
SNEAKY_PENALTY = 1
HIGH_SODIUM_PENALTY = 1
SWEETENER_PENALTY = 1
TRANS_FAT_PENALTY = 1

POOR_PENALTY_MIN = 3
OKAY_PENALTY_MIN = 1

SWEETENER_REASON_PATTERN = re.compile(r"artificial sweetener", re.IGNORECASE)
TRANS_FAT_REASON_PATTERN = re.compile(r"trans fat|hydrogenated", re.IGNORECASE)

SCORE_LABELS = {
    "good": "Whole",
    "okay": "Questionable",
    "poor": "Slop",
}

# Breakdown markers for the debug scan summary
IMPACT_SYMBOLS = {
    "positive": "+",
    "neutral": "=",
    "negative": "-",
}

# DISPLAY TEXT
CONCERN_LABELS = {
    "low": "Low concern",
    "medium": "Moderate concern",
    "high": "High concern",
}
UNKNOWN_INGREDIENT_MESSAGE = (
    "We're still learning about this ingredient. As a general rule, fewer processed additives "
    "means a cleaner product."
)
