"""
Ingredient knowledge base.

Educational detail for the additives the marker scanner flags: what the
ingredient is, why manufacturers use it, why it may be a concern, and what to
eat instead. Records are keyed by canonical lowercase name and are also
reachable through their synonyms (see ``lookup_ingredient``).
"""
import logging
from types import MappingProxyType
from typing import Optional

from models import Citation, IngredientRecord
from scanner_config import CONCERN_LABELS, UNKNOWN_INGREDIENT_MESSAGE

logger = logging.getLogger(__name__)


def _record(name, definition, category, concern_level, synonyms, why_used, why_concerned,
            better_alternatives, citations):
    return IngredientRecord(
        name=name,
        definition=definition,
        category=category,
        concern_level=concern_level,
        synonyms=tuple(synonyms),
        why_used=tuple(why_used),
        why_concerned=tuple(why_concerned),
        better_alternatives=tuple(better_alternatives),
        citations=tuple(Citation(label=label, url=url) for label, url in citations),
    )


INGREDIENT_INTEL = MappingProxyType({
    "high fructose corn syrup": _record(
        "High Fructose Corn Syrup",
        "A liquid sweetener made by converting glucose in corn syrup into fructose using enzymes.",
        "sweetener", "high",
        ["hfcs", "high-fructose corn syrup", "glucose-fructose syrup", "isoglucose"],
        ["Cheaper than cane sugar for food manufacturers",
         "Extends shelf life and improves texture in processed foods"],
        ["Linked to increased risk of obesity and metabolic syndrome in high-consumption studies",
         "May contribute to non-alcoholic fatty liver disease due to high fructose load",
         "Associated with increased uric acid levels and inflammation markers"],
        ["Raw honey", "Pure maple syrup", "Date paste", "Whole fruit"],
        [("NIH", "https://pubmed.ncbi.nlm.nih.gov/23594708/"),
         ("AHA", "https://www.heart.org/en/healthy-living/healthy-eating/eat-smart/sugar/added-sugars")],
    ),
    "corn syrup": _record(
        "Corn Syrup",
        "A thick, sweet syrup produced by breaking down corn starch into glucose molecules.",
        "sweetener", "medium",
        ["glucose syrup", "corn syrup solids"],
        ["Adds sweetness and prevents crystallization in confections",
         "Controls moisture and improves texture"],
        ["Highly refined carbohydrate with no nutritional value",
         "Rapid blood sugar spikes due to high glycemic index",
         "Frequent indicator of ultra-processed food formulation"],
        ["Brown rice syrup", "Maple syrup", "Raw honey"],
        [("USDA", "https://fdc.nal.usda.gov/"),
         ("FDA", "https://www.fda.gov/food/food-additives-petitions/additional-information-about-high-intensity-sweeteners")],
    ),
    "aspartame": _record(
        "Aspartame",
        "A synthetic zero-calorie sweetener composed of two amino acids (aspartic acid and phenylalanine).",
        "sweetener", "high",
        ["e951", "equal", "nutrasweet"],
        ["Zero-calorie sweetener ~200x sweeter than sugar",
         "Used in diet sodas, sugar-free products, and tabletop sweeteners"],
        ["IARC classified as \"possibly carcinogenic to humans\" (Group 2B) in 2023",
         "Some individuals report headaches and digestive discomfort",
         "Breaks down into phenylalanine, which is dangerous for people with PKU"],
        ["Stevia leaf extract", "Monk fruit sweetener", "Allulose"],
        [("WHO/IARC", "https://www.iarc.who.int/news-events/aspartame-hazard-and-risk-assessment-results-released/"),
         ("FDA", "https://www.fda.gov/food/food-additives-petitions/aspartame-and-other-sweeteners-food")],
    ),
    "sucralose": _record(
        "Sucralose",
        "An artificial sweetener made by chemically modifying sugar molecules with chlorine atoms.",
        "sweetener", "medium",
        ["e955", "splenda"],
        ["Zero-calorie sweetener ~600x sweeter than sugar",
         "Heat-stable, used in baking and cooking applications"],
        ["May reduce beneficial gut bacteria populations according to animal studies",
         "When heated above 120°C, may produce potentially harmful chlorinated compounds",
         "Some research suggests it may affect glucose and insulin responses"],
        ["Stevia leaf extract", "Monk fruit sweetener"],
        [("PubMed", "https://pubmed.ncbi.nlm.nih.gov/31227734/"),
         ("NIH", "https://pubmed.ncbi.nlm.nih.gov/33577100/")],
    ),
    "sodium benzoate": _record(
        "Sodium Benzoate",
        "The sodium salt of benzoic acid, used as a chemical preservative in acidic foods and beverages.",
        "preservative", "medium",
        ["e211", "benzoate of soda"],
        ["Prevents microbial growth in acidic foods",
         "Extends shelf life in beverages, sauces, and condiments"],
        ["When combined with ascorbic acid (vitamin C), can form benzene, a known carcinogen",
         "Some studies associate it with hyperactivity in children",
         "May increase oxidative stress at high concentrations"],
        ["Citric acid", "Rosemary extract", "Vitamin E (tocopherols)"],
        [("FDA", "https://www.fda.gov/food/chemicals/questions-and-answers-occurrence-benzene-soft-drinks-and-other-beverages"),
         ("EFSA", "https://www.efsa.europa.eu/en/efsajournal/pub/4210")],
    ),
    "potassium sorbate": _record(
        "Potassium Sorbate",
        "The potassium salt of sorbic acid, a widely used preservative that inhibits mold and yeast.",
        "preservative", "low",
        ["e202", "sorbate"],
        ["Inhibits mold and yeast growth",
         "One of the most widely used preservatives globally"],
        ["Generally recognized as safe (GRAS) by FDA in typical amounts",
         "High concentrations in lab studies showed genotoxic potential, though dietary levels are far lower",
         "Indicates product is industrially formulated rather than fresh"],
        ["Fermentation-based preservation", "Refrigeration", "Vitamin E"],
        [("FDA", "https://www.fda.gov/food/food-ingredients-packaging/food-ingredient-and-packaging-terms"),
         ("EFSA", "https://www.efsa.europa.eu/en/efsajournal/pub/4144")],
    ),
    "bht": _record(
        "BHT (Butylated Hydroxytoluene)",
        "A synthetic antioxidant added to fats and oils to prevent them from going rancid.",
        "preservative", "high",
        ["e321", "butylated hydroxytoluene", "bha", "tbhq"],
        ["Prevents oxidation and rancidity in fats and oils",
         "Extends shelf life of cereals, snack foods, and packaging"],
        ["BHA is classified as \"reasonably anticipated to be a human carcinogen\" by NTP",
         "Some countries restrict or ban BHT in food products",
         "May act as an endocrine disruptor at high doses"],
        ["Vitamin E (mixed tocopherols)", "Rosemary extract", "Green tea extract"],
        [("NIH/NTP", "https://ntp.niehs.nih.gov/ntp/roc/content/profiles/butylatedhydroxyanisole.pdf"),
         ("EFSA", "https://www.efsa.europa.eu/en/efsajournal/pub/4580")],
    ),
    "sodium nitrite": _record(
        "Sodium Nitrite",
        "An inorganic compound used to cure meats, prevent botulism, and maintain pink color.",
        "preservative", "high",
        ["e250", "sodium nitrate", "nitrite", "nitrate"],
        ["Prevents botulism in cured meats",
         "Gives cured meats their characteristic pink color and flavor"],
        ["Can form nitrosamines (carcinogens) when exposed to high heat",
         "WHO/IARC classifies processed meat (often nitrite-cured) as Group 1 carcinogen",
         "Linked to increased colorectal cancer risk in large epidemiological studies"],
        ["Celery-powder-cured (still contains nitrates, but from natural source)",
         "Fresh, uncured meats", "Sea salt preservation"],
        [("WHO/IARC", "https://www.iarc.who.int/wp-content/uploads/2018/07/pr240_E.pdf"),
         ("PubMed", "https://pubmed.ncbi.nlm.nih.gov/28487287/")],
    ),
    "caramel color": _record(
        "Caramel Color",
        "A dark brown food coloring produced by heating sugar compounds, often with ammonia or sulfites.",
        "coloring", "medium",
        ["e150", "e150a", "e150b", "e150c", "e150d", "caramel coloring"],
        ["Most widely used food coloring globally",
         "Gives brown color to colas, soy sauce, baked goods, and beer"],
        ["Class III and IV caramel colors contain 4-MEI, classified as possibly carcinogenic",
         "California Prop 65 requires warning labels for products with significant 4-MEI levels",
         "No nutritional benefit; purely cosmetic"],
        ["Cocoa powder", "Molasses", "Date syrup"],
        [("NIH", "https://pubmed.ncbi.nlm.nih.gov/22189572/"),
         ("FDA", "https://www.fda.gov/food/food-additives-petitions/food-additive-status-list")],
    ),
    "titanium dioxide": _record(
        "Titanium Dioxide",
        "A white mineral pigment used to brighten and whiten foods, banned in the EU since 2022.",
        "coloring", "high",
        ["e171", "tio2"],
        ["Makes foods appear brighter white or more opaque",
         "Used in candies, chewing gum, coffee creamer, and icing"],
        ["Banned as a food additive in the EU since 2022 due to genotoxicity concerns",
         "EFSA concluded it could no longer be considered safe as a food additive",
         "Nanoparticle form may accumulate in tissues"],
        ["Rice starch", "Calcium carbonate", "No whitener needed"],
        [("EFSA", "https://www.efsa.europa.eu/en/efsajournal/pub/6585"),
         ("FDA", "https://www.fda.gov/food/food-additives-petitions/color-additive-status-list")],
    ),
    "carrageenan": _record(
        "Carrageenan",
        "A gel-forming polysaccharide extracted from red seaweed, used as a thickener and stabilizer.",
        "emulsifier", "medium",
        ["e407", "irish moss extract"],
        ["Natural seaweed-derived thickener and stabilizer",
         "Prevents ingredient separation in dairy alternatives and deli meats"],
        ["Degraded carrageenan (poligeenan) is a known inflammatory agent in lab studies",
         "Some research suggests even food-grade carrageenan may trigger GI inflammation",
         "National Organic Standards Board removed it from allowed organic ingredients"],
        ["Gellan gum", "Agar-agar", "Sunflower lecithin"],
        [("NIH", "https://pubmed.ncbi.nlm.nih.gov/28268093/"),
         ("USDA/NOP", "https://www.ams.usda.gov/rules-regulations/organic/national-list")],
    ),
    "polysorbate": _record(
        "Polysorbate 80",
        "A synthetic emulsifier derived from sorbitol and oleic acid, used to blend oil and water.",
        "emulsifier", "medium",
        ["e433", "polysorbate 60", "polysorbate 20", "tween 80"],
        ["Keeps water and oil from separating in foods",
         "Used in ice cream, sauces, and baked goods for smooth texture"],
        ["Animal studies suggest it may promote gut inflammation and alter microbiome",
         "Research indicates it may impair the intestinal mucus barrier",
         "Associated with metabolic syndrome markers in mouse models"],
        ["Sunflower lecithin", "Egg yolk (natural emulsifier)", "Gum arabic"],
        [("PubMed", "https://pubmed.ncbi.nlm.nih.gov/25731162/"),
         ("NIH", "https://pubmed.ncbi.nlm.nih.gov/33051211/")],
    ),
    "xanthan gum": _record(
        "Xanthan Gum",
        "A polysaccharide produced by bacterial fermentation, used as a thickener and stabilizer.",
        "emulsifier", "low",
        ["e415"],
        ["Thickens and stabilizes sauces, dressings, and gluten-free baked goods",
         "Created by bacterial fermentation of sugar"],
        ["Generally recognized as safe (GRAS) by FDA",
         "In large amounts may cause bloating or digestive discomfort",
         "Presence indicates industrial food processing"],
        ["Ground flaxseed", "Chia seeds", "Psyllium husk", "Arrowroot"],
        [("FDA", "https://www.fda.gov/food/food-additives-petitions/food-additive-status-list"),
         ("PubMed", "https://pubmed.ncbi.nlm.nih.gov/28622286/")],
    ),
    "monosodium glutamate": _record(
        "Monosodium Glutamate (MSG)",
        "The sodium salt of glutamic acid, an amino acid that activates umami taste receptors.",
        "flavoring", "low",
        ["e621", "msg", "glutamic acid", "glutamate"],
        ["Enhances savory (umami) flavor in foods",
         "Reduces need for salt while boosting taste perception"],
        ["FDA classifies as GRAS; extensive research has not confirmed \"Chinese restaurant syndrome\"",
         "A small percentage of people report sensitivity (headaches, flushing)",
         "Often signals highly engineered flavor profiles in ultra-processed foods"],
        ["Mushroom powder", "Nutritional yeast", "Seaweed/kombu", "Tomato paste"],
        [("FDA", "https://www.fda.gov/food/food-additives-petitions/questions-and-answers-monosodium-glutamate-msg"),
         ("PubMed", "https://pubmed.ncbi.nlm.nih.gov/19389112/")],
    ),
    "natural flavor": _record(
        "Natural Flavors",
        "A catch-all FDA term for flavor compounds derived from plant or animal sources through various processes.",
        "flavoring", "medium",
        ["natural flavors", "natural flavoring", "natural flavour", "natural flavouring"],
        ["Catch-all term for flavor compounds derived from natural sources",
         "Can involve extensive chemical processing of originally natural materials"],
        ["Label provides no transparency about specific ingredients",
         "May contain incidental additives like solvents and preservatives",
         "Some \"natural\" flavors are chemically identical to artificial counterparts"],
        ["Whole spices and herbs", "Citrus zest", "Vanilla bean", "Real fruit extracts"],
        [("FDA", "https://www.fda.gov/food/food-ingredients-packaging/food-ingredient-and-packaging-terms"),
         ("EWG", "https://www.ewg.org/foodscores/content/natural-vs-artificial-flavors/")],
    ),
    "artificial flavor": _record(
        "Artificial Flavors",
        "Synthetic chemical compounds manufactured in a lab to mimic natural flavors.",
        "flavoring", "high",
        ["artificial flavoring", "artificial flavour"],
        ["Cheaper and more consistent than natural flavor sources",
         "Can replicate virtually any taste profile"],
        ["Synthesized from petroleum or chemical precursors",
         "No nutritional value; designed to make ultra-processed food hyper-palatable",
         "Some individuals report sensitivities or allergic reactions"],
        ["Real vanilla", "Fresh fruit", "Whole spices", "Herb infusions"],
        [("FDA", "https://www.fda.gov/food/food-ingredients-packaging/food-ingredient-and-packaging-terms"),
         ("Mayo Clinic", "https://www.mayoclinic.org/healthy-lifestyle/nutrition-and-healthy-eating/in-depth/artificial-sweeteners/art-20046936")],
    ),
    "hydrogenated": _record(
        "Hydrogenated Oils",
        "Vegetable oils that have been chemically altered by adding hydrogen to make them solid at room temperature.",
        "oil", "high",
        ["partially hydrogenated", "fully hydrogenated", "hydrogenated vegetable oil", "hydrogenated soybean oil"],
        ["Converts liquid oils to solid fats for texture and shelf life",
         "Cheaper than butter or animal fats for industrial food production"],
        ["Partially hydrogenated oils are the primary source of artificial trans fats",
         "FDA determined PHOs are not GRAS and banned them from food supply (2018)",
         "Trans fats strongly linked to heart disease, LDL increase, and HDL decrease"],
        ["Extra virgin olive oil", "Avocado oil", "Coconut oil", "Grass-fed butter"],
        [("FDA", "https://www.fda.gov/food/food-additives-petitions/trans-fat"),
         ("AHA", "https://www.heart.org/en/healthy-living/healthy-eating/eat-smart/fats/trans-fat")],
    ),
    "maltodextrin": _record(
        "Maltodextrin",
        "A white powder made from corn, rice, or potato starch, used as a filler, thickener, and preservative.",
        "additive", "medium",
        ["dextrin", "modified food starch"],
        ["Cheap filler and thickener in processed foods",
         "Used as a binding agent in spice mixes and supplements"],
        ["Glycemic index of 85-105 (higher than table sugar)",
         "May alter gut bacteria composition, potentially promoting harmful bacteria",
         "Often made from genetically modified corn"],
        ["Tapioca starch", "Arrowroot powder", "Whole food thickeners"],
        [("PubMed", "https://pubmed.ncbi.nlm.nih.gov/25197735/"),
         ("NIH", "https://pubmed.ncbi.nlm.nih.gov/22450869/")],
    ),
    "dextrose": _record(
        "Dextrose",
        "Pure glucose (simple sugar) typically derived from corn starch through enzymatic hydrolysis.",
        "sweetener", "medium",
        ["d-glucose", "grape sugar", "corn sugar"],
        ["Quick-absorbing simple sugar used for sweetness and browning",
         "Common in IV solutions, sports drinks, and baked goods"],
        ["Essentially pure glucose with a very high glycemic index",
         "Rapid blood sugar spikes can stress insulin response",
         "No nutritional benefit beyond calories"],
        ["Coconut sugar", "Raw honey", "Whole fruit"],
        [("USDA", "https://fdc.nal.usda.gov/")],
    ),
    "modified starch": _record(
        "Modified Starch",
        "Starch that has been chemically, physically, or enzymatically treated to change its properties.",
        "additive", "low",
        ["modified corn starch", "modified food starch", "modified tapioca starch"],
        ["Improved thickening, stability, and texture in processed foods",
         "Resists breakdown during heating, freezing, and acidic conditions"],
        ["Chemically or enzymatically altered from natural starch",
         "May be cross-linked with compounds like phosphorus oxychloride",
         "Indicates industrial-level processing of the food product"],
        ["Arrowroot powder", "Tapioca flour", "Potato starch", "Cornstarch"],
        [("FDA", "https://www.fda.gov/food/food-additives-petitions/food-additive-status-list")],
    ),
    "soy protein isolate": _record(
        "Soy Protein Isolate",
        "A highly refined protein powder extracted from defatted soy flour using chemical solvents.",
        "additive", "medium",
        ["isolated soy protein", "whey protein isolate", "protein isolate"],
        ["Cheap way to boost protein content on nutrition labels",
         "Used as a meat extender and texture modifier"],
        ["Heavily processed using hexane solvent extraction",
         "Phytoestrogen content may affect hormone-sensitive individuals at high intake",
         "Often made from genetically modified soybeans"],
        ["Whole soybeans or tempeh", "Nuts and seeds", "Pasture-raised eggs", "Legumes"],
        [("NIH", "https://pubmed.ncbi.nlm.nih.gov/19524224/"),
         ("USDA", "https://fdc.nal.usda.gov/")],
    ),
})


def lookup_ingredient(ingredient_name: str) -> Optional[IngredientRecord]:
    """
    Resolve a matched ingredient string to its knowledge base record.

    Resolution stops at the first stage that hits:
      1. exact case-insensitive match on a canonical key
      2. substring match either way against any record's synonyms
      3. substring match either way against the canonical keys

    Returns None for an unknown ingredient. That is not an error: callers show
    UNKNOWN_INGREDIENT_MESSAGE instead of the record.
    """
    if not ingredient_name:
        return None

    normalized = ingredient_name.lower().strip()
    if not normalized:
        return None

    record = INGREDIENT_INTEL.get(normalized)
    if record is not None:
        logger.debug("Intel exact match: '%s'", normalized)
        return record

    for record in INGREDIENT_INTEL.values():
        for synonym in record.synonyms:
            if synonym in normalized or normalized in synonym:
                logger.debug("Intel synonym match: '%s' -> '%s' (%s)", normalized, synonym, record.name)
                return record

    for key, record in INGREDIENT_INTEL.items():
        if key in normalized or normalized in key:
            logger.debug("Intel partial key match: '%s' -> '%s'", normalized, key)
            return record

    logger.debug("No intel for ingredient: '%s'", normalized)
    return None


def describe_concern(record: Optional[IngredientRecord]) -> str:
    """Display label for a record's concern level, or the unknown-ingredient message."""
    if record is None:
        return UNKNOWN_INGREDIENT_MESSAGE
    return CONCERN_LABELS[record.concern_level]
