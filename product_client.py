"""
Open Food Facts product lookup.

Fetches a product by barcode, normalizes the raw payload into the product
record the analysis pipeline consumes, and maps every failure onto a small
error taxonomy the service can show to the user. Lookups are retried with
exponential backoff on rate limiting, server errors and connection problems.
"""
import logging
import math
import os
import re
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from models import LookupErrorPayload, NutritionData, Product, SearchHit

logger = logging.getLogger(__name__)

OFF_API_BASE = os.getenv('OFF_API_BASE', 'https://world.openfoodfacts.org/api/v2/product')
OFF_SEARCH_URL = os.getenv('OFF_SEARCH_URL', 'https://world.openfoodfacts.org/cgi/search.pl')
OFF_TIMEOUT = float(os.getenv('OFF_TIMEOUT', '8'))
OFF_MAX_ATTEMPTS = int(os.getenv('OFF_MAX_ATTEMPTS', '3'))
OFF_BACKOFF_SECONDS = float(os.getenv('OFF_BACKOFF_SECONDS', '0.5'))
# Whole lookup budget across candidates and retries, kept under REQUEST_TIMEOUT
OFF_DEADLINE_SECONDS = float(os.getenv('OFF_DEADLINE_SECONDS', '20'))
OFF_USER_AGENT = os.getenv('OFF_USER_AGENT', 'ingredient-scanner/1.0 (+https://github.com/ingredient-scanner)')

PRODUCT_FIELDS = (
    "product_name,brands,ingredients_text,ingredients,nutriments,image_front_url,nova_group"
)

BARCODE_PATTERN = re.compile(r'^\d{8,14}$')
PARENTHETICAL_PATTERN = re.compile(r'\(.*?\)')
INGREDIENT_SPLIT_PATTERN = re.compile(r'[,;]')


# ERROR TAXONOMY

class ProductLookupError(Exception):
    """Base class for product lookup failures. Never raised by the analysis core."""
    kind = "unknown"
    title = "Something Went Wrong"
    default_message = "We couldn't look up this product. Please try again."
    offer_search = True

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_payload(self) -> LookupErrorPayload:
        return LookupErrorPayload(
            kind=self.kind,
            title=self.title,
            message=self.message,
            offer_search=self.offer_search,
        )


class InvalidBarcodeError(ProductLookupError):
    kind = "invalid_barcode"
    title = "Invalid Barcode"
    default_message = "That doesn't look like a valid barcode. Barcodes have 8 to 14 digits."
    offer_search = False


class ProductNotFoundError(ProductLookupError):
    kind = "not_found"
    title = "Product Not Found"
    default_message = "Product not found in the Open Food Facts database."
    offer_search = True


class RateLimitedError(ProductLookupError):
    kind = "rate_limited"
    title = "Too Many Requests"
    default_message = "The product database is busy. Please wait a moment and try again."
    offer_search = False


class NetworkError(ProductLookupError):
    kind = "network"
    title = "Connection Error"
    default_message = "Couldn't reach the product database. Check your connection and try again."
    offer_search = False


class ServerError(ProductLookupError):
    kind = "server"
    title = "Server Error"
    default_message = "The product database returned an error. Please try again later."
    offer_search = False


class UnknownLookupError(ProductLookupError):
    pass


# BARCODES

def normalize_barcode(raw: Any) -> str:
    """Strip spacing and dashes and validate length. Raises InvalidBarcodeError."""
    if raw is None:
        raise InvalidBarcodeError()
    code = re.sub(r'[\s\-]', '', str(raw))
    if not BARCODE_PATTERN.match(code):
        raise InvalidBarcodeError()
    return code


def barcode_candidates(code: str) -> Tuple[str, ...]:
    """
    Codes to try, in order. Scanners report UPC-A as 12 digits while the
    database often stores the 13 digit EAN form, and the other way round.
    """
    candidates = [code]
    if len(code) == 12:
        candidates.append('0' + code)
    elif len(code) == 13 and code.startswith('0'):
        candidates.append(code[1:])
    return tuple(candidates)


# PAYLOAD NORMALIZATION

def parse_ingredients_list(raw_text: Optional[str],
                           structured: Optional[Sequence[Mapping[str, Any]]] = None) -> Tuple[str, ...]:
    """Lowercase ingredient tokens, preferring the structured list when present"""
    if structured:
        tokens = []
        for entry in structured:
            text = entry.get('text') if isinstance(entry, Mapping) else None
            if isinstance(text, str) and text.strip():
                tokens.append(text.lower().strip())
        if tokens:
            return tuple(tokens)

    if not raw_text:
        return ()

    text = PARENTHETICAL_PATTERN.sub('', raw_text.lower())
    return tuple(token.strip() for token in INGREDIENT_SPLIT_PATTERN.split(text) if token.strip())


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_nutrition(nutriments: Optional[Mapping[str, Any]]) -> NutritionData:
    """Per 100g values. Sodium arrives in grams and is converted to whole mg."""
    if not nutriments:
        return NutritionData()

    sodium_g = _number(nutriments.get('sodium_100g'))
    sodium_mg = None
    if sodium_g is not None and sodium_g >= 0:
        sodium_mg = int(sodium_g * 1000 + 0.5)

    return NutritionData(
        calories=_number(nutriments.get('energy-kcal_100g')),
        fat=_number(nutriments.get('fat_100g')),
        saturated_fat=_number(nutriments.get('saturated-fat_100g')),
        carbs=_number(nutriments.get('carbohydrates_100g')),
        sugars=_number(nutriments.get('sugars_100g')),
        fiber=_number(nutriments.get('fiber_100g')),
        protein=_number(nutriments.get('proteins_100g')),
        sodium=sodium_mg,
    )


def _nova_group(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or number != int(number) or not 1 <= number <= 4:
        return None
    return int(number)


def parse_product(code: str, payload: Mapping[str, Any]) -> Product:
    """Build the normalized product record from a raw product payload"""
    return Product(
        code=code,
        name=payload.get('product_name') or 'Unknown Product',
        brand=payload.get('brands') or 'Unknown Brand',
        ingredients=payload.get('ingredients_text') or 'No ingredients listed',
        ingredients_list=parse_ingredients_list(payload.get('ingredients_text'), payload.get('ingredients')),
        nutrition=parse_nutrition(payload.get('nutriments')),
        image_url=payload.get('image_front_url'),
        nova_group=_nova_group(payload.get('nova_group')),
    )


# CLIENT

class ProductClient:
    """Thin Open Food Facts client with retry, backoff and an overall deadline"""

    def __init__(self, session=None, api_base=OFF_API_BASE, search_url=OFF_SEARCH_URL,
                 timeout=OFF_TIMEOUT, max_attempts=OFF_MAX_ATTEMPTS, backoff_seconds=OFF_BACKOFF_SECONDS,
                 deadline_seconds=OFF_DEADLINE_SECONDS, sleep=time.sleep, clock=time.monotonic):
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': OFF_USER_AGENT})
        self.api_base = api_base.rstrip('/')
        self.search_url = search_url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.deadline_seconds = deadline_seconds
        self.sleep = sleep
        self.clock = clock

    def _deadline(self) -> float:
        return self.clock() + self.deadline_seconds

    def _get(self, url: str, params: Optional[Dict[str, Any]], deadline: float) -> requests.Response:
        """
        GET with retries. Returns any response that is not retryable.

        No attempt starts and no backoff sleep runs past the deadline. Each
        request timeout is capped at the time remaining.
        """
        last_error: ProductLookupError = NetworkError()

        for attempt in range(self.max_attempts):
            remaining = deadline - self.clock()
            if remaining <= 0:
                logger.error("Lookup deadline of %.1fs reached after %d attempts", self.deadline_seconds, attempt)
                break

            try:
                response = self.session.get(url, params=params, timeout=min(self.timeout, remaining))
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                logger.warning("Lookup attempt %d/%d failed: %s", attempt + 1, self.max_attempts, e)
                last_error = NetworkError()
            except requests.exceptions.RequestException as e:
                logger.error("Lookup request error: %s", e)
                raise UnknownLookupError() from e
            else:
                if response.status_code == 429:
                    logger.warning("Rate limited on attempt %d/%d", attempt + 1, self.max_attempts)
                    last_error = RateLimitedError()
                elif response.status_code >= 500:
                    logger.warning("Server returned %d on attempt %d/%d",
                                   response.status_code, attempt + 1, self.max_attempts)
                    last_error = ServerError()
                else:
                    return response

            if attempt < self.max_attempts - 1:
                delay = self.backoff_seconds * (2 ** attempt)
                if self.clock() + delay >= deadline:
                    logger.error("No time left to retry within %.1fs", self.deadline_seconds)
                    break
                self.sleep(delay)

        logger.error("Lookup failed (%s)", last_error.kind)
        raise last_error

    def _fetch_payload(self, code: str, deadline: float) -> Optional[Mapping[str, Any]]:
        response = self._get(f"{self.api_base}/{code}.json", {'fields': PRODUCT_FIELDS}, deadline)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            logger.error("Unexpected status %d for %s", response.status_code, code)
            raise UnknownLookupError(f"Failed to fetch product (HTTP {response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise UnknownLookupError("The product database sent an unreadable response.") from e

        if not isinstance(data, Mapping) or data.get('status') == 0 or not data.get('product'):
            return None
        return data['product']

    def fetch_product(self, barcode: Any) -> Product:
        """Look up a product by barcode, trying the UPC/EAN variants in turn"""
        code = normalize_barcode(barcode)
        deadline = self._deadline()

        for candidate in barcode_candidates(code):
            logger.info("Looking up product %s", candidate)
            payload = self._fetch_payload(candidate, deadline)
            if payload is not None:
                return parse_product(candidate, payload)

        logger.info("Product %s not found", code)
        raise ProductNotFoundError()

    def search_products(self, query: str, page_size: int = 10) -> List[SearchHit]:
        """Search by product name, the fallback when a barcode isn't found"""
        if not query or not query.strip():
            return []

        response = self._get(self.search_url, {
            'search_terms': query.strip(),
            'search_simple': 1,
            'action': 'process',
            'json': 1,
            'page_size': page_size,
            'fields': 'code,product_name,brands,image_front_small_url',
        }, self._deadline())
        if response.status_code != 200:
            raise UnknownLookupError(f"Search failed (HTTP {response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise UnknownLookupError("The product database sent an unreadable response.") from e

        hits = []
        for product in (data or {}).get('products', []) or []:
            code = product.get('code')
            name = product.get('product_name')
            if not code or not name:
                continue
            hits.append(SearchHit(
                code=str(code),
                name=name,
                brand=product.get('brands') or None,
                image_url=product.get('image_front_small_url') or None,
            ))
        logger.info("Search '%s' returned %d products", query.strip(), len(hits))
        return hits
