"""
Ingredient analysis pipeline.

Takes a normalized product record and produces the health verdict:
marker flags (enriched from the knowledge base), sneaky ingredients,
sodium tier, whole food alternatives and the final score with its breakdown.

Every function here is pure and total. "Nothing matched", "unknown
ingredient" and "no sodium data" come back as empty tuples or None.
"""
import logging
import math
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

from ingredient_intel import lookup_ingredient
from models import (
    Alternative,
    AnalysisResult,
    IngredientFlag,
    Product,
    ScoreBreakdownItem,
    ScoreResult,
    SneakyMatch,
    SodiumAnalysis,
)
from scanner_config import (
    ALTERNATIVE_RULES,
    FLAG_COUNT_HIGH,
    FLAG_PENALTY_FEW,
    FLAG_PENALTY_MANY,
    HIGH_SODIUM_PENALTY,
    IMPACT_SYMBOLS,
    INGREDIENT_JOINER,
    NOVA_PENALTIES,
    OKAY_PENALTY_MIN,
    POOR_PENALTY_MIN,
    SCORE_LABELS,
    SNEAKY_INGREDIENTS,
    SNEAKY_PENALTY,
    SODIUM_DAILY_VALUE_MG,
    SODIUM_LEVEL_DESCRIPTIONS,
    SODIUM_LOW_MAX_MG,
    SODIUM_MODERATE_MAX_MG,
    SODIUM_UNAVAILABLE_MESSAGE,
    SWEETENER_PENALTY,
    SWEETENER_REASON_PATTERN,
    TRANS_FAT_PENALTY,
    TRANS_FAT_REASON_PATTERN,
    ULTRA_PROCESSED_MARKERS,
)

logger = logging.getLogger(__name__)


def join_ingredients(ingredients_list: Iterable[str]) -> str:
    """Lowercased search text shared by the marker scan and the sneaky detector"""
    if not ingredients_list:
        return ""
    return INGREDIENT_JOINER.join(str(token) for token in ingredients_list).lower()


def analyze_ingredients(ingredients_list: Sequence[str]) -> Tuple[IngredientFlag, ...]:
    """
    Scan the ingredient text against the ultra-processed marker table.

    Each marker that matches contributes exactly one flag carrying the first
    literal match. Markers are independent, so two markers may flag
    overlapping text. Every flag is enriched with its knowledge base record,
    or None when the ingredient is unknown.
    """
    text = join_ingredients(ingredients_list)
    if not text:
        logger.debug("No ingredient text to scan")
        return ()

    flags = []
    for marker in ULTRA_PROCESSED_MARKERS:
        match = marker.pattern.search(text)
        if match:
            matched = match.group(0)
            flags.append(IngredientFlag(
                ingredient=matched,
                reason=marker.reason,
                intel=lookup_ingredient(matched),
            ))
            logger.debug("Marker match: '%s' -> %s", matched, marker.reason)

    logger.debug("Marker scan found %d flags", len(flags))
    return tuple(flags)


def detect_sneaky_ingredients(ingredients_list: Sequence[str]) -> Tuple[SneakyMatch, ...]:
    """Find euphemistic labeling terms. A term is reported at most once."""
    text = join_ingredients(ingredients_list)
    if not text:
        return ()

    matches = []
    seen = set()
    for rule in SNEAKY_INGREDIENTS:
        if rule.term in seen:
            continue
        match = rule.pattern.search(text)
        if match:
            seen.add(rule.term)
            matches.append(SneakyMatch(
                term=rule.term,
                matched_text=match.group(0),
                explanation=rule.explanation,
                what_to_look_for=rule.what_to_look_for,
                citations=rule.citations,
            ))
            logger.debug("Sneaky ingredient: %s ('%s')", rule.term, match.group(0))

    return tuple(matches)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def analyze_sodium(sodium_mg: Optional[Union[int, float]]) -> Optional[SodiumAnalysis]:
    """
    Classify sodium per 100g into low / moderate / high.

    Returns None when the value is missing, which is shown as "unavailable"
    and never as zero.
    """
    if sodium_mg is None or isinstance(sodium_mg, bool):
        return None
    try:
        value = float(sodium_mg)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None

    milligrams = max(0, _round_half_up(value))
    percent_dv = _round_half_up(milligrams / SODIUM_DAILY_VALUE_MG * 100)

    if milligrams <= SODIUM_LOW_MAX_MG:
        level = "low"
    elif milligrams <= SODIUM_MODERATE_MAX_MG:
        level = "moderate"
    else:
        level = "high"

    return SodiumAnalysis(milligrams=milligrams, percent_dv=percent_dv, level=level)


def describe_sodium(analysis: Optional[SodiumAnalysis]) -> str:
    if analysis is None:
        return SODIUM_UNAVAILABLE_MESSAGE
    return SODIUM_LEVEL_DESCRIPTIONS[analysis.level]


def suggest_alternatives(flags: Sequence[IngredientFlag]) -> Tuple[Alternative, ...]:
    """Whole food substitutes for the flagged ingredients, deduplicated by name"""
    if not flags:
        return ()

    flag_text = INGREDIENT_JOINER.join(flag.ingredient for flag in flags)
    seen = set()
    results = []
    for rule in ALTERNATIVE_RULES:
        if not rule.trigger.search(flag_text):
            continue
        for alternative in rule.alternatives:
            if alternative.name not in seen:
                seen.add(alternative.name)
                results.append(alternative)

    return tuple(results)


def compute_score(flags: Sequence[IngredientFlag],
                  nova_group: Optional[int] = None,
                  sneaky_count: int = 0,
                  sodium: Optional[SodiumAnalysis] = None) -> ScoreResult:
    """
    Additive penalty score.

    Rules never suppress each other; each one that applies adds its penalty
    and exactly one breakdown entry. Breakdown order is fixed:
    flags, NOVA, sneaky, sodium, sweetener, trans fat.

    Final mapping: penalty >= 3 is poor, 1-2 is okay, 0 is good.
    """
    penalty = 0
    breakdown = []

    def add(label, impact, cost=0):
        nonlocal penalty
        penalty += cost
        breakdown.append(ScoreBreakdownItem(label=label, impact=impact))

    flag_count = len(flags)
    if flag_count == 0:
        add("No flagged additives", "positive")
    elif flag_count < FLAG_COUNT_HIGH:
        add(f"{flag_count} flagged additive{'s' if flag_count > 1 else ''}", "negative", FLAG_PENALTY_FEW)
    else:
        add(f"{flag_count} flagged additives", "negative", FLAG_PENALTY_MANY)

    if nova_group == 4:
        add("NOVA 4: ultra-processed food", "negative", NOVA_PENALTIES[4])
    elif nova_group == 3:
        add("NOVA 3: processed food", "negative", NOVA_PENALTIES[3])
    elif nova_group == 1:
        add("NOVA 1: unprocessed or minimally processed", "positive")
    elif nova_group == 2:
        add("NOVA 2: processed culinary ingredient", "neutral")

    if sneaky_count > 0:
        add(f"{sneaky_count} sneaky ingredient{'s' if sneaky_count > 1 else ''}", "negative", SNEAKY_PENALTY)

    if sodium is not None:
        if sodium.level == "high":
            add(f"High sodium ({sodium.milligrams} mg per 100g)", "negative", HIGH_SODIUM_PENALTY)
        elif sodium.level == "low":
            add(f"Low sodium ({sodium.milligrams} mg per 100g)", "positive")
        else:
            add(f"Moderate sodium ({sodium.milligrams} mg per 100g)", "neutral")

    # Charged on top of the flag count penalty for the same ingredient
    if any(SWEETENER_REASON_PATTERN.search(flag.reason) for flag in flags):
        add("Contains artificial sweeteners", "negative", SWEETENER_PENALTY)

    if any(TRANS_FAT_REASON_PATTERN.search(flag.reason) for flag in flags):
        add("Contains trans fats / hydrogenated oils", "negative", TRANS_FAT_PENALTY)

    if penalty >= POOR_PENALTY_MIN:
        score = "poor"
    elif penalty >= OKAY_PENALTY_MIN:
        score = "okay"
    else:
        score = "good"

    logger.debug("Score penalty %d -> %s", penalty, score)
    return ScoreResult(score=score, penalty=penalty, breakdown=tuple(breakdown))


def analyze_product(product: Union[Product, Mapping]) -> AnalysisResult:
    """Run the whole pipeline over one normalized product record"""
    if not isinstance(product, Product):
        product = Product.model_validate(product)

    flags = analyze_ingredients(product.ingredients_list)
    sneaky = detect_sneaky_ingredients(product.ingredients_list)
    sodium = analyze_sodium(product.nutrition.sodium)
    alternatives = suggest_alternatives(flags)
    scored = compute_score(flags, product.nova_group, len(sneaky), sodium)

    result = AnalysisResult(
        product=product,
        flags=flags,
        sneaky=sneaky,
        sodium=sodium,
        score=scored.score,
        breakdown=scored.breakdown,
        alternatives=alternatives,
    )
    log_scan_summary(result)
    return result


def log_scan_summary(result: AnalysisResult) -> None:
    """Debug summary of one analysis"""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    logger.debug("=" * 60)
    logger.debug("SCAN SUMMARY: %s (%s)", result.product.name, result.product.code or "no barcode")
    logger.debug("Final score: %s (%s)", result.score, SCORE_LABELS[result.score])
    for flag in result.flags:
        known = flag.intel.name if flag.intel else "unknown ingredient"
        logger.debug("  flag: %s - %s [%s]", flag.ingredient, flag.reason, known)
    for match in result.sneaky:
        logger.debug("  sneaky: %s ('%s')", match.term, match.matched_text)
    logger.debug("  sodium: %s", describe_sodium(result.sodium))
    for item in result.breakdown:
        logger.debug("  %s %s", IMPACT_SYMBOLS[item.impact], item.label)
    logger.debug("  alternatives: %s", ", ".join(alt.name for alt in result.alternatives) or "none")
    logger.debug("=" * 60)
