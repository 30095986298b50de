"""
Tests for the Open Food Facts client: barcode handling, payload
normalization, retries and the lookup error taxonomy.
"""
from unittest.mock import MagicMock

import pytest
import requests

from product_client import (
    InvalidBarcodeError,
    NetworkError,
    ProductClient,
    ProductNotFoundError,
    RateLimitedError,
    ServerError,
    UnknownLookupError,
    barcode_candidates,
    normalize_barcode,
    parse_ingredients_list,
    parse_nutrition,
    parse_product,
)

API_BASE = "https://off.test/api/v2/product"

COLA_PAYLOAD = {
    "status": 1,
    "product": {
        "product_name": "Cola",
        "brands": "Fizz Co",
        "ingredients_text": "Carbonated Water, High Fructose Corn Syrup, Caramel Color, Phosphoric Acid",
        "nutriments": {"sodium_100g": 0.012, "sugars_100g": 10.6, "energy-kcal_100g": 42},
        "image_front_url": "https://images.test/cola.jpg",
        "nova_group": 4,
    },
}


def _response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def _client(*responses, max_attempts=3):
    session = MagicMock()
    session.get.side_effect = list(responses)
    sleeps = []
    client = ProductClient(
        session=session,
        api_base=API_BASE,
        search_url="https://off.test/cgi/search.pl",
        max_attempts=max_attempts,
        backoff_seconds=0.5,
        sleep=sleeps.append,
    )
    return client, session, sleeps


class TestBarcodes:
    """Barcode validation and UPC/EAN variants."""

    def test_normalize_strips_spacing_and_dashes(self):
        assert normalize_barcode(" 0490-0000 6346 ") == "049000006346"

    def test_normalize_accepts_ints(self):
        assert normalize_barcode(12345678) == "12345678"

    @pytest.mark.parametrize("raw", [None, "", "abc", "1234567", "123456789012345", "12345abc"])
    def test_invalid_barcodes(self, raw):
        with pytest.raises(InvalidBarcodeError):
            normalize_barcode(raw)

    def test_upc_adds_ean_variant(self):
        assert barcode_candidates("049000006346") == ("049000006346", "0049000006346")

    def test_ean_with_leading_zero_adds_upc_variant(self):
        assert barcode_candidates("0049000006346") == ("0049000006346", "049000006346")

    def test_other_lengths_have_one_candidate(self):
        assert barcode_candidates("5449000000996") == ("5449000000996",)
        assert barcode_candidates("12345678") == ("12345678",)


class TestParsing:
    """Raw payload to normalized product record."""

    def test_ingredients_from_raw_text(self):
        tokens = parse_ingredients_list("Water, Sugar (cane), Salt; Spices,  ")
        assert tokens == ("water", "sugar", "salt", "spices")

    def test_structured_ingredients_preferred(self):
        structured = [{"id": "en:water", "text": "Water"}, {"id": "en:salt", "text": " Sea Salt "}]
        assert parse_ingredients_list("ignored, text", structured) == ("water", "sea salt")

    def test_structured_without_text_falls_back(self):
        assert parse_ingredients_list("Water, Salt", [{"id": "en:water"}, "junk"]) == ("water", "salt")

    def test_no_ingredients(self):
        assert parse_ingredients_list(None) == ()
        assert parse_ingredients_list("") == ()

    def test_sodium_grams_to_milligrams(self):
        assert parse_nutrition({"sodium_100g": 0.8}).sodium == 800
        assert parse_nutrition({"sodium_100g": "0.5"}).sodium == 500

    def test_missing_sodium_stays_missing(self):
        assert parse_nutrition({"sugars_100g": 3}).sodium is None
        assert parse_nutrition(None).sodium is None
        assert parse_nutrition({"sodium_100g": -1}).sodium is None

    def test_nutrition_fields(self):
        nutrition = parse_nutrition(COLA_PAYLOAD["product"]["nutriments"])

        assert nutrition.sodium == 12
        assert nutrition.sugars == 10.6
        assert nutrition.calories == 42
        assert nutrition.fat is None

    def test_product_fields(self):
        product = parse_product("049000006346", COLA_PAYLOAD["product"])

        assert product.code == "049000006346"
        assert product.name == "Cola"
        assert product.brand == "Fizz Co"
        assert product.ingredients_list[:2] == ("carbonated water", "high fructose corn syrup")
        assert product.nova_group == 4

    def test_product_defaults(self):
        product = parse_product("12345678", {"nova_group": 7})

        assert product.name == "Unknown Product"
        assert product.brand == "Unknown Brand"
        assert product.ingredients == "No ingredients listed"
        assert product.ingredients_list == ()
        assert product.nova_group is None

    def test_nova_group_from_string(self):
        assert parse_product("12345678", {"nova_group": "3"}).nova_group == 3

    @pytest.mark.parametrize("value", ["nan", float("nan"), "inf", float("-inf")])
    def test_non_finite_nova_group_is_dropped(self, value):
        assert parse_product("12345678", {"nova_group": value}).nova_group is None

    @pytest.mark.parametrize("value", [float("inf"), "nan", "Infinity"])
    def test_non_finite_sodium_is_dropped(self, value):
        nutrition = parse_nutrition({"sodium_100g": value, "fat_100g": float("nan")})

        assert nutrition.sodium is None
        assert nutrition.fat is None


class TestFetchProduct:
    """Barcode lookup against a stubbed HTTP session."""

    def test_found_on_first_candidate(self):
        client, session, sleeps = _client(_response(200, COLA_PAYLOAD))
        product = client.fetch_product("049000006346")

        assert product.name == "Cola"
        assert session.get.call_count == 1
        assert session.get.call_args[0][0] == f"{API_BASE}/049000006346.json"
        assert sleeps == []

    def test_falls_back_to_ean_variant(self):
        client, session, _ = _client(_response(404), _response(200, COLA_PAYLOAD))
        product = client.fetch_product("049000006346")

        assert product.code == "0049000006346"
        assert session.get.call_args[0][0] == f"{API_BASE}/0049000006346.json"

    def test_status_zero_is_not_found(self):
        client, session, _ = _client(_response(200, {"status": 0}), _response(200, {"status": 0}))

        with pytest.raises(ProductNotFoundError) as exc:
            client.fetch_product("0049000006346")

        assert session.get.call_count == 2
        assert exc.value.to_payload().offer_search is True

    def test_invalid_barcode_makes_no_request(self):
        client, session, _ = _client()

        with pytest.raises(InvalidBarcodeError) as exc:
            client.fetch_product("abc")

        session.get.assert_not_called()
        assert exc.value.to_payload().offer_search is False

    def test_retries_server_errors(self):
        client, session, sleeps = _client(_response(503), _response(200, COLA_PAYLOAD))
        product = client.fetch_product("5449000000996")

        assert product.name == "Cola"
        assert session.get.call_count == 2
        assert sleeps == [0.5]

    def test_rate_limited_after_all_attempts(self):
        client, session, sleeps = _client(_response(429), _response(429), _response(429))

        with pytest.raises(RateLimitedError):
            client.fetch_product("5449000000996")

        assert session.get.call_count == 3
        assert sleeps == [0.5, 1.0]

    def test_server_error_after_all_attempts(self):
        client, _, _ = _client(_response(500), _response(502), max_attempts=2)

        with pytest.raises(ServerError):
            client.fetch_product("5449000000996")

    def test_connection_error_is_network_error(self):
        client, session, _ = _client(
            requests.exceptions.ConnectionError("down"),
            requests.exceptions.Timeout("slow"),
            max_attempts=2,
        )

        with pytest.raises(NetworkError):
            client.fetch_product("5449000000996")

        assert session.get.call_count == 2

    def test_unexpected_status_is_unknown(self):
        client, _, _ = _client(_response(403))

        with pytest.raises(UnknownLookupError):
            client.fetch_product("5449000000996")

    def test_unreadable_json_is_unknown(self):
        response = _response(200)
        response.json.side_effect = ValueError("not json")
        client, _, _ = _client(response)

        with pytest.raises(UnknownLookupError) as exc:
            client.fetch_product("5449000000996")

        assert exc.value.kind == "unknown"


class TestSearch:
    """Product name search."""

    def test_blank_query_makes_no_request(self):
        client, session, _ = _client()

        assert client.search_products("   ") == []
        session.get.assert_not_called()

    def test_hits(self):
        client, session, _ = _client(_response(200, {"products": [
            {"code": "5449000000996", "product_name": "Cola", "brands": "Fizz Co"},
            {"code": "", "product_name": "No code"},
            {"code": "12345678"},
        ]}))
        hits = client.search_products(" cola ", page_size=5)

        assert [hit.code for hit in hits] == ["5449000000996"]
        assert hits[0].brand == "Fizz Co"
        assert hits[0].image_url is None
        params = session.get.call_args[1]["params"]
        assert params["search_terms"] == "cola"
        assert params["page_size"] == 5


class FakeClock:
    """Monotonic clock that only moves when a request or a sleep spends time."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class TestDeadline:
    """The whole lookup, retries and candidates included, fits one time budget."""

    def _client(self, clock, request_seconds, responses, deadline_seconds=10):
        session = MagicMock()
        remaining = list(responses)

        def get(url, params=None, timeout=None):
            clock.now += request_seconds
            outcome = remaining.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        session.get.side_effect = get
        client = ProductClient(
            session=session,
            api_base=API_BASE,
            timeout=8,
            max_attempts=3,
            backoff_seconds=0.5,
            deadline_seconds=deadline_seconds,
            sleep=clock.sleep,
            clock=clock,
        )
        return client, session

    def test_request_timeout_capped_by_remaining_time(self):
        clock = FakeClock()
        client, session = self._client(clock, 8, [requests.exceptions.Timeout("slow")] * 3)

        with pytest.raises(NetworkError):
            client.fetch_product("5449000000996")

        timeouts = [call[1]["timeout"] for call in session.get.call_args_list]
        assert timeouts == [8, 1.5]
        assert clock.now <= 10 + 8

    def test_no_retry_sleep_past_deadline(self):
        clock = FakeClock()
        client, session = self._client(clock, 9.8, [_response(503), _response(200, COLA_PAYLOAD)])

        with pytest.raises(ServerError):
            client.fetch_product("5449000000996")

        assert session.get.call_count == 1
        assert clock.now == 9.8

    def test_deadline_covers_every_candidate(self):
        clock = FakeClock()
        client, session = self._client(clock, 11, [_response(404), _response(200, COLA_PAYLOAD)])

        with pytest.raises(NetworkError):
            client.fetch_product("049000006346")

        assert session.get.call_count == 1

    def test_fast_lookup_unaffected(self):
        clock = FakeClock()
        client, _ = self._client(clock, 0.2, [_response(404), _response(200, COLA_PAYLOAD)])

        assert client.fetch_product("049000006346").code == "0049000006346"
